"""Generate per-page static documents from the shared frontend template.

A generated page lives one directory below the template (``<slug>/<slug>.html``),
declares the id it loads content for, and points its assets back at the
frontend root. Edits are applied to the raw text of real start tags located by
the standard library HTML tokenizer, so text, comments and inline scripts pass
through byte for byte.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from html.parser import HTMLParser
from pathlib import Path
from typing import Sequence
from urllib.parse import urlsplit

from .errors import PersistFailure, TemplateMalformed, TemplateUnavailable
from .slugs import validate_slug
from .writer import write_text_atomic

logger = logging.getLogger(__name__)

PAGE_ID_GLOBAL = "PAGE_ID"
DATA_LOADER_FILENAME = "dataLoader.js"
DATA_LOADER_PATH = f"js/{DATA_LOADER_FILENAME}"
PARENT_PREFIX = "../"

STALE_IDENTITY_PATTERN = re.compile(
    rf"<script>\s*window\.{PAGE_ID_GLOBAL}\s*=\s*[^<]*</script>\s*",
    re.IGNORECASE,
)
TAG_NAME_PATTERN = re.compile(r"<[^\s/>]+")
ATTRIBUTE_PATTERN = re.compile(
    r"(?P<name>[^\s\"'>/=]+)"
    r"(?:\s*=\s*(?:(?P<quote>[\"'])(?P<value>.*?)(?P=quote)|[^\s\"'=<>`]+))?",
    re.DOTALL,
)


@dataclass(frozen=True, slots=True)
class AssetRule:
    """Root-relative asset prefix rewritten for a single attribute."""

    attribute: str
    root_path: str

    def applies_to(self, attribute: str, value: str) -> bool:
        return attribute == self.attribute and value.startswith(self.root_path)

    def rewrite(self, value: str) -> str:
        return PARENT_PREFIX + value[1:]


ASSET_RULES: tuple[AssetRule, ...] = (
    AssetRule("href", "/style/"),
    AssetRule("src", "/script.js"),
    AssetRule("src", f"/{DATA_LOADER_PATH}"),
    AssetRule("href", "/images/"),
    AssetRule("src", "/images/"),
    AssetRule("href", "/videos/"),
    AssetRule("src", "/videos/"),
    AssetRule("href", "/fonts/"),
    AssetRule("src", "/fonts/"),
)


@dataclass(frozen=True, slots=True)
class RenderedDocument:
    """Generated markup plus a summary of the edits applied to the template."""

    html: str
    rewritten_references: int
    stale_markers_removed: int
    data_loader_added: bool


@dataclass(frozen=True, slots=True)
class MaterializedPage:
    """A generated document written to its slug location."""

    page_id: int
    slug: str
    name: str
    path: Path
    document: RenderedDocument

    @property
    def html(self) -> str:
        return self.document.html


@dataclass(slots=True)
class _StartTag:
    tag: str
    offset: int
    raw: str
    attrs: list[tuple[str, str | None]] = field(default_factory=list)

    def attribute(self, name: str) -> str | None:
        for key, value in self.attrs:
            if key == name:
                return value
        return None


class _TemplateScanner(HTMLParser):
    """Record start tags and closing head/body positions as source offsets."""

    def __init__(self, source: str) -> None:
        super().__init__(convert_charrefs=True)
        self._line_starts = [0]
        self._line_starts.extend(index + 1 for index, char in enumerate(source) if char == "\n")
        self.start_tags: list[_StartTag] = []
        self.head_close: int | None = None
        self.body_close: int | None = None

    @classmethod
    def scan(cls, source: str) -> "_TemplateScanner":
        scanner = cls(source)
        scanner.feed(source)
        scanner.close()
        return scanner

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        raw = self.get_starttag_text()
        if raw:
            self.start_tags.append(_StartTag(tag=tag, offset=self._offset(), raw=raw, attrs=attrs))

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self.handle_starttag(tag, attrs)

    def handle_endtag(self, tag: str) -> None:
        if tag == "head" and self.head_close is None:
            self.head_close = self._offset()
        elif tag == "body" and self.body_close is None:
            self.body_close = self._offset()

    def references_data_loader(self) -> bool:
        for start_tag in self.start_tags:
            if start_tag.tag != "script":
                continue
            src = start_tag.attribute("src")
            if src and urlsplit(src.strip()).path.rsplit("/", 1)[-1] == DATA_LOADER_FILENAME:
                return True
        return False

    def _offset(self) -> int:
        line, column = self.getpos()
        return self._line_starts[line - 1] + column


def identity_declaration(page_id: int) -> str:
    """Script tag assigning the page identifier global."""
    return f"<script>window.{PAGE_ID_GLOBAL} = {page_id};</script>"


def data_loader_reference() -> str:
    return f'<script src="{PARENT_PREFIX}{DATA_LOADER_PATH}"></script>'


def page_document_name(slug: str) -> str:
    """Location of a generated page relative to the frontend root."""
    return f"{slug}/{slug}.html"


def page_document_path(output_root: Path, slug: str) -> Path:
    return output_root / slug / f"{slug}.html"


def render_document(template_source: str, page_id: int) -> RenderedDocument:
    """Transform template markup into a page document for ``page_id``.

    Pure function of its inputs: stale identity declarations are dropped, a fresh
    one is inserted before ``</head>``, enumerated root-relative asset references
    become parent-relative, and a data-loader script is added before ``</body>``
    when the template does not already load one.
    """
    _check_page_id(page_id)
    source, stale_removed = STALE_IDENTITY_PATTERN.subn("", template_source)
    if stale_removed:
        logger.debug("Removed %d stale %s declaration(s) from template", stale_removed, PAGE_ID_GLOBAL)

    scanner = _TemplateScanner.scan(source)
    if scanner.head_close is None:
        raise TemplateMalformed("Template is missing a closing </head> tag.")
    if scanner.body_close is None:
        raise TemplateMalformed("Template is missing a closing </body> tag.")

    edits: list[tuple[int, int, str]] = []
    rewritten = 0
    for start_tag in scanner.start_tags:
        if source[start_tag.offset : start_tag.offset + len(start_tag.raw)] != start_tag.raw:
            logger.warning("Skipping <%s> at offset %d; tag text not found in source", start_tag.tag, start_tag.offset)
            continue
        replacement, count = _rewrite_start_tag(start_tag.raw)
        if count:
            edits.append((start_tag.offset, start_tag.offset + len(start_tag.raw), replacement))
            rewritten += count

    edits.append((scanner.head_close, scanner.head_close, identity_declaration(page_id) + "\n"))

    add_loader = not scanner.references_data_loader()
    if add_loader:
        edits.append((scanner.body_close, scanner.body_close, data_loader_reference() + "\n"))

    return RenderedDocument(
        html=_apply_edits(source, edits),
        rewritten_references=rewritten,
        stale_markers_removed=stale_removed,
        data_loader_added=add_loader,
    )


def materialize(
    page_id: int,
    slug: str,
    name: str,
    template_source: str,
    output_root: Path,
) -> MaterializedPage:
    """Render the template for a page and store it at ``<output_root>/<slug>/<slug>.html``.

    Raises ``InvalidSlug`` or ``TemplateMalformed`` before touching the filesystem
    and ``PersistFailure`` when the write fails. An existing document for the slug
    is replaced atomically.
    """
    slug = validate_slug(slug)
    document = render_document(template_source, page_id)
    destination = page_document_path(Path(output_root), slug)
    try:
        write_text_atomic(destination, document.html)
    except OSError as exc:
        raise PersistFailure(f"Unable to write page '{slug}' to {destination}: {exc}") from exc

    logger.info("Created static page for slug %s (%s) at %s", slug, name, destination)
    return MaterializedPage(page_id=page_id, slug=slug, name=name, path=destination, document=document)


def read_template(path: Path) -> str:
    """Read the canonical template text."""
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise TemplateUnavailable(f"Unable to read template {path}: {exc}") from exc


def _check_page_id(page_id: int) -> None:
    if isinstance(page_id, bool) or not isinstance(page_id, int) or page_id < 1:
        raise ValueError(f"Page id must be a positive integer, received {page_id!r}.")


def _rewrite_start_tag(raw: str) -> tuple[str, int]:
    name_match = TAG_NAME_PATTERN.match(raw)
    if name_match is None:
        return raw, 0

    edits: list[tuple[int, int, str]] = []
    for match in ATTRIBUTE_PATTERN.finditer(raw, name_match.end()):
        if match.group("quote") is None:
            continue
        attribute = match.group("name").lower()
        value = match.group("value")
        for rule in ASSET_RULES:
            if rule.applies_to(attribute, value):
                edits.append((match.start("value"), match.end("value"), rule.rewrite(value)))
                break
    return _apply_edits(raw, edits), len(edits)


def _apply_edits(text: str, edits: Sequence[tuple[int, int, str]]) -> str:
    result = text
    for start, end, replacement in sorted(edits, key=lambda edit: edit[0], reverse=True):
        result = result[:start] + replacement + result[end:]
    return result
