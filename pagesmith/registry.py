"""Page registration backed by a JSON document next to the project config."""

from __future__ import annotations

import contextlib
import json
import logging
import threading
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Iterator

from filelock import FileLock, Timeout
from pydantic import BaseModel, Field, ValidationError

from .config import Config
from .errors import MaterializeError, PageNotFound, RegistryError, SlugTaken
from .materializer import MaterializedPage, materialize, page_document_name, read_template
from .slugs import resolve_slug, validate_slug
from .writer import write_json_atomic

logger = logging.getLogger(__name__)

REGISTRY_VERSION = 1
HOME_PAGE_ID = 1
LOCK_TIMEOUT_SECONDS = 30.0
# Top-level frontend directories a page folder must not shadow.
RESERVED_SLUGS = frozenset({"api", "fonts", "images", "js", "style", "uploads", "videos"})


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


class PageStatus(str, Enum):
    """Whether a registered page has a servable document yet."""

    PENDING = "pending"
    READY = "ready"


class PageRecord(BaseModel):
    """A registered page and the document serving it."""

    id: int = Field(ge=1)
    name: str = Field(min_length=1)
    slug: str = Field(min_length=1)
    status: PageStatus = Field(default=PageStatus.PENDING)
    document: str | None = Field(
        default=None,
        description="Document path relative to the frontend root, set once the page is servable.",
    )
    created_at: datetime = Field(default_factory=utc_now)


class RegistryState(BaseModel):
    """Serialized registry contents."""

    version: int = Field(default=REGISTRY_VERSION)
    next_id: int = Field(default=HOME_PAGE_ID + 1, ge=1)
    pages: list[PageRecord] = Field(default_factory=list)


class PageRegistry:
    """Assign page ids, enforce slug uniqueness, and generate page documents.

    Registration and generation succeed or fail together: a page whose document
    cannot be produced is removed from the registry before the error propagates.
    Mutations hold a lock file beside the registry and re-read it first, so
    several registries (or processes) sharing one file never hand out the same id.
    """

    def __init__(self, config: Config) -> None:
        self._config = config
        self._path = config.registry_path
        self._lock = threading.RLock()
        self._file_lock = FileLock(f"{self._path}.lock", timeout=LOCK_TIMEOUT_SECONDS)
        self._state = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def list_pages(self) -> list[PageRecord]:
        with self._lock:
            self._state = self._load()
            return [record.model_copy() for record in sorted(self._state.pages, key=lambda page: page.id)]

    def get(self, slug: str) -> PageRecord:
        with self._lock:
            self._state = self._load()
            record = self._find(slug)
            if record is None:
                raise PageNotFound(f"No page registered with slug '{slug}'.")
            return record.model_copy()

    def register(self, name: str, slug: str | None = None) -> MaterializedPage:
        """Register a page and write its document under the frontend root."""
        display_name = name.strip()
        if not display_name:
            raise RegistryError("Page name must not be blank.")
        resolved = resolve_slug(display_name, slug)

        with self._exclusive():
            if resolved in RESERVED_SLUGS:
                raise SlugTaken(f"Slug '{resolved}' is reserved for frontend assets.")
            if self._find(resolved) is not None:
                raise SlugTaken(f"Slug '{resolved}' is already registered.")
            template_source = read_template(self._config.template_path)

            record = PageRecord(id=self._state.next_id, name=display_name, slug=resolved)
            self._state.next_id += 1
            self._state.pages.append(record)
            try:
                self._save()
            except RegistryError:
                self._state.pages.remove(record)
                raise
            logger.info("Registered page %d (%s) as pending", record.id, record.slug)

            try:
                page = materialize(
                    record.id,
                    record.slug,
                    record.name,
                    template_source,
                    self._config.frontend_dir,
                )
            except MaterializeError:
                self._state.pages.remove(record)
                try:
                    self._save()
                except RegistryError:
                    logger.exception("Unable to roll back page %d (%s)", record.id, record.slug)
                else:
                    logger.warning("Rolled back registration of page %d (%s)", record.id, record.slug)
                raise

            record.status = PageStatus.READY
            record.document = page_document_name(record.slug)
            self._save()
            return page

    def rebuild(self, slug: str | None = None) -> list[MaterializedPage]:
        """Regenerate documents from the current template for one or all pages."""
        with self._exclusive():
            if slug is None:
                targets = [record for record in self._state.pages if record.id != HOME_PAGE_ID]
            else:
                record = self._find(validate_slug(slug))
                if record is None:
                    raise PageNotFound(f"No page registered with slug '{slug}'.")
                if record.id == HOME_PAGE_ID:
                    raise RegistryError(f"Page '{slug}' is served by the template itself.")
                targets = [record]

            if not targets:
                return []

            template_source = read_template(self._config.template_path)
            written: list[MaterializedPage] = []
            for record in sorted(targets, key=lambda page: page.id):
                written.append(
                    materialize(
                        record.id,
                        record.slug,
                        record.name,
                        template_source,
                        self._config.frontend_dir,
                    )
                )
                record.status = PageStatus.READY
                record.document = page_document_name(record.slug)
            self._save()
            return written

    @contextlib.contextmanager
    def _exclusive(self) -> Iterator[None]:
        """Hold the in-process and on-disk locks with freshly loaded state."""
        with self._lock:
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                self._file_lock.acquire()
            except (OSError, Timeout) as exc:
                raise RegistryError(f"Unable to lock page registry {self._path}: {exc}") from exc
            try:
                self._state = self._load()
                yield
            finally:
                self._file_lock.release()

    def _find(self, slug: str) -> PageRecord | None:
        for record in self._state.pages:
            if record.slug == slug:
                return record
        return None

    def _home_record(self) -> PageRecord:
        home = self._config.home
        return PageRecord(
            id=HOME_PAGE_ID,
            name=home.name,
            slug=home.slug,
            status=PageStatus.READY,
            document=self._config.template_name,
        )

    def _load(self) -> RegistryState:
        if not self._path.exists():
            return RegistryState(pages=[self._home_record()])
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
            state = RegistryState.model_validate(payload)
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            raise RegistryError(f"Unable to read page registry {self._path}: {exc}") from exc

        if state.version != REGISTRY_VERSION:
            raise RegistryError(
                f"Page registry {self._path} has version {state.version}; expected {REGISTRY_VERSION}."
            )
        highest = max((record.id for record in state.pages), default=HOME_PAGE_ID)
        state.next_id = max(state.next_id, highest + 1)
        return state

    def _save(self) -> None:
        try:
            write_json_atomic(self._path, self._state.model_dump(mode="json"))
        except OSError as exc:
            raise RegistryError(f"Unable to write page registry {self._path}: {exc}") from exc


def register_page(config: Config, name: str, slug: str | None = None) -> MaterializedPage:
    """Register ``name`` in the configured registry and generate its document."""
    return PageRegistry(config).register(name, slug)
