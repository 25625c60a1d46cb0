"""Check that documents under the frontend root resolve their references."""

from __future__ import annotations

from dataclasses import dataclass, field
from html.parser import HTMLParser
from pathlib import Path
from typing import Iterable, Sequence
from urllib.parse import unquote, urlsplit

# Attributes whose values must resolve inside the frontend root, per tag.
CHECKED_ATTRIBUTES: dict[str, tuple[str, ...]] = {
    "a": ("href",),
    "link": ("href",),
    "script": ("src",),
    "img": ("src", "srcset"),
    "source": ("src", "srcset"),
    "video": ("src",),
    "audio": ("src",),
}
EXTERNAL_SCHEMES = frozenset({"http", "https", "mailto", "tel", "data", "javascript"})


@dataclass(slots=True)
class VerificationIssue:
    """A reference in ``source`` that does not resolve."""

    kind: str
    source: Path
    target: str
    message: str


@dataclass(slots=True)
class VerificationReport:
    scanned_files: int
    issues: list[VerificationIssue] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.issues)


@dataclass(frozen=True, slots=True)
class _Reference:
    tag: str
    attribute: str
    value: str


class _ReferenceScanner(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.references: list[_Reference] = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        checked = CHECKED_ATTRIBUTES.get(tag)
        if not checked:
            return
        for name, value in attrs:
            if name not in checked or not value:
                continue
            if name == "srcset":
                # "a.png 1x, b.png 2x" -> each candidate URL
                for candidate in value.split(","):
                    url = candidate.strip().split(" ", 1)[0]
                    if url:
                        self.references.append(_Reference(tag, name, url))
            else:
                self.references.append(_Reference(tag, name, value))


def verify_site(root: Path, ignore_prefixes: Sequence[str] = ()) -> VerificationReport:
    """Verify every HTML document below ``root``."""
    return verify_documents(root, sorted(root.resolve().rglob("*.html")), ignore_prefixes)


def verify_documents(
    root: Path,
    documents: Iterable[Path],
    ignore_prefixes: Sequence[str] = (),
) -> VerificationReport:
    """Verify the given HTML documents against the files under ``root``.

    Generated pages sit one directory below the template, so their ``../``
    references are resolved relative to the document itself. Root-relative
    references starting with one of ``ignore_prefixes`` belong to the backend
    (API calls, uploads) and are not expected on disk.
    """
    root = root.resolve()
    paths = [document.resolve() for document in documents]
    report = VerificationReport(scanned_files=len(paths))

    for document in paths:
        try:
            html = document.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            report.issues.append(
                VerificationIssue("error", document, str(document), f"Unable to read HTML file: {exc}")
            )
            continue

        scanner = _ReferenceScanner()
        scanner.feed(html)
        scanner.close()
        for reference in scanner.references:
            issue = _check_reference(reference, document, root, ignore_prefixes)
            if issue is not None:
                report.issues.append(issue)

    return report


def _check_reference(
    reference: _Reference,
    document: Path,
    root: Path,
    ignore_prefixes: Sequence[str],
) -> VerificationIssue | None:
    parts = urlsplit(reference.value.strip())
    if parts.scheme in EXTERNAL_SCHEMES or parts.netloc:
        return None
    path = unquote(parts.path)
    if not path:
        # Fragment or query on the current document.
        return None
    if path.startswith("/") and any(path.startswith(prefix) for prefix in ignore_prefixes):
        return None

    base = root if path.startswith("/") else document.parent
    target = (base / path.lstrip("/")).resolve()
    if not target.is_relative_to(root):
        return VerificationIssue(
            "out-of-bounds",
            document,
            reference.value,
            f"Reference points outside the frontend root: '{reference.value}'",
        )

    if target.is_file() or (target / "index.html").is_file():
        return None
    kind = "missing-page" if reference.tag == "a" else "missing-asset"
    return VerificationIssue(
        kind,
        document,
        reference.value,
        f"Missing target for {reference.tag} {reference.attribute} '{reference.value}'",
    )
