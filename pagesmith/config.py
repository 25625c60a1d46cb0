from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

CONFIG_FILENAME = "pagesmith.yml"


class HomePageConfig(BaseModel):
    """The seeded page served by the template itself."""

    name: str = Field(default="Strona główna", min_length=1)
    slug: str = Field(default="home", min_length=1)

    @field_validator("name", "slug")
    def _strip(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("Home page name and slug must not be blank.")
        return text


class VerifyConfig(BaseModel):
    """Options for scanning the frontend tree after generation."""

    ignore_prefixes: list[str] = Field(
        default_factory=lambda: ["/api/", "/uploads/"],
        description="Root-relative prefixes served by the backend rather than the static tree.",
    )

    @field_validator("ignore_prefixes")
    def _normalize_prefixes(cls, value: list[str]) -> list[str]:
        prefixes: list[str] = []
        for raw in value:
            text = raw.strip()
            if not text:
                continue
            if not text.startswith("/"):
                text = f"/{text}"
            prefixes.append(text)
        return prefixes


class Config(BaseModel):
    project_name: str = Field(default="pagesmith project")
    frontend_dir: Path = Field(
        default=Path("frontend"),
        description="Static root served to visitors; generated pages are written beneath it.",
    )
    template_name: str = Field(
        default="index.html",
        description="Template document located inside frontend_dir.",
    )
    registry_path: Path = Field(default=Path("pages.json"))
    home: HomePageConfig = Field(default_factory=HomePageConfig)
    verify: VerifyConfig = Field(default_factory=VerifyConfig)

    @field_validator("frontend_dir", "registry_path", mode="before")
    def _ensure_path(cls, value: Any) -> Path:
        return Path(value)

    @field_validator("template_name")
    def _relative_template(cls, value: str) -> str:
        candidate = Path(value)
        if not value.strip() or candidate.is_absolute() or ".." in candidate.parts:
            raise ValueError("template_name must be a relative path inside frontend_dir.")
        return candidate.as_posix()

    @property
    def template_path(self) -> Path:
        return self.frontend_dir / self.template_name


def load_config(path: str | Path) -> Config:
    """Load configuration and resolve relative paths based on the config location.

    The ``path`` argument may point to a file (e.g., ``/site/pagesmith.yml``) or a
    directory containing that file. All relative paths inside the configuration
    are interpreted relative to the directory holding the config file.
    """
    candidate = Path(path)
    data: dict[str, Any] = {}
    base_dir: Path
    if candidate.is_dir():
        # Allow pointing at a project directory without a config file; use defaults.
        config_file = candidate / CONFIG_FILENAME
        if config_file.exists():
            with config_file.open("r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle) or {}
        base_dir = candidate.resolve()
    else:
        if not candidate.exists():
            raise FileNotFoundError(candidate)
        with candidate.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
        base_dir = candidate.parent.resolve()

    if not isinstance(data, dict):
        raise ValueError(f"Configuration {candidate} must define a mapping at the top level.")

    cfg = Config(**data)

    def _abs_required(value: Path) -> Path:
        return value if value.is_absolute() else (base_dir / value).resolve()

    cfg.frontend_dir = _abs_required(cfg.frontend_dir)
    cfg.registry_path = _abs_required(cfg.registry_path)
    return cfg
