"""CLI entrypoints for pagesmith page generation."""

import webbrowser
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from .config import Config, load_config
from .errors import (
    InvalidSlug,
    PageNotFound,
    PersistFailure,
    RegistryError,
    SlugTaken,
    TemplateMalformed,
    TemplateUnavailable,
)
from .materializer import MaterializedPage
from .preview_server import make_request_handler, serve, server_url
from .registry import PageRecord, PageRegistry, PageStatus
from .slugs import derive_slug
from .verify import VerificationReport, verify_documents, verify_site

console = Console()
app = typer.Typer(help="Generate and maintain static pages for the content panel.")

ConfigPathOption = Annotated[
    str,
    typer.Option("--config", "-c", help="Path to configuration file or project directory."),
]
SlugOption = Annotated[
    str | None,
    typer.Option("--slug", "-s", help="Explicit slug; derived from the name when omitted."),
]


@app.command()
def new(
    name: Annotated[
        str,
        typer.Argument(..., help="Display name of the page."),
    ],
    slug: SlugOption = None,
    config_path: ConfigPathOption = "pagesmith.yml",
) -> None:
    """Register a page and generate its static document."""
    config: Config = _load(config_path)
    registry = _open_registry(config)

    try:
        page = registry.register(name, slug)
    except InvalidSlug as exc:
        console.print(f"[bold red]Invalid slug[/]: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    except SlugTaken as exc:
        console.print(f"[bold red]Slug unavailable[/]: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    except TemplateUnavailable as exc:
        console.print(f"[bold red]Template missing[/]: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    except TemplateMalformed as exc:
        console.print(f"[bold red]Template malformed[/]: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    except PersistFailure as exc:
        console.print(f"[bold red]Page not written[/]: {escape(str(exc))}")
        console.print("The registration was rolled back; fix the problem and run 'new' again.")
        raise typer.Exit(code=1) from exc
    except RegistryError as exc:
        console.print(f"[bold red]Registry error[/]: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    if slug is None:
        console.print(f"[bold yellow]Note[/]: slug derived as '{page.slug}'.")
    console.print(f"[bold green]Page created[/]: #{page.page_id} '{escape(page.name)}'")
    _print_materialized(page)


@app.command()
def pages(
    config_path: ConfigPathOption = "pagesmith.yml",
) -> None:
    """List registered pages."""
    config: Config = _load(config_path)
    registry = _open_registry(config)
    records = registry.list_pages()

    console.print(f"[bold blue]Pages[/]: {len(records)} registered in {_display_path(registry.path)}")
    for record in records:
        console.print(_format_record(record))


@app.command()
def build(
    slug: SlugOption = None,
    config_path: ConfigPathOption = "pagesmith.yml",
) -> None:
    """Regenerate page documents from the current template."""
    config: Config = _load(config_path)
    registry = _open_registry(config)

    try:
        written = registry.rebuild(slug)
    except (InvalidSlug, PageNotFound) as exc:
        console.print(f"[bold red]Unknown page[/]: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    except TemplateUnavailable as exc:
        console.print(f"[bold red]Template missing[/]: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    except TemplateMalformed as exc:
        console.print(f"[bold red]Template malformed[/]: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    except PersistFailure as exc:
        console.print(f"[bold red]Page not written[/]: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    except RegistryError as exc:
        console.print(f"[bold red]Registry error[/]: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    if not written:
        console.print("[bold yellow]Nothing to build[/]: no generated pages are registered.")
        return

    for page in written:
        _print_materialized(page)
    console.print(f"[bold green]Build complete[/]: regenerated {len(written)} page(s).")


@app.command()
def verify(
    config_path: ConfigPathOption = "pagesmith.yml",
    pages_only: Annotated[
        bool,
        typer.Option(
            "--pages-only",
            help="Only check generated page documents instead of every HTML file.",
        ),
    ] = False,
) -> None:
    """Scan the frontend tree for references that do not resolve."""
    config: Config = _load(config_path)
    frontend_dir = config.frontend_dir

    if not frontend_dir.exists():
        console.print(f"[bold red]Frontend directory not found[/]: {_display_path(frontend_dir)}")
        raise typer.Exit(code=1)

    ignore = config.verify.ignore_prefixes
    if pages_only:
        registry = _open_registry(config)
        documents = [
            frontend_dir / record.document
            for record in registry.list_pages()
            if record.document and record.status is PageStatus.READY
        ]
        console.print(f"[bold blue]Verifying[/]: {len(documents)} registered page document(s)")
        report = verify_documents(frontend_dir, documents, ignore)
    else:
        console.print(f"[bold blue]Verifying[/]: scanning HTML files under {_display_path(frontend_dir)}")
        report = verify_site(frontend_dir, ignore)

    _print_verification_report(report)
    raise typer.Exit(code=1 if report.error_count > 0 else 0)


@app.command()
def preview(
    config_path: ConfigPathOption = "pagesmith.yml",
    host: Annotated[
        str,
        typer.Option("--host", help="Host interface to bind the preview server."),
    ] = "127.0.0.1",
    port: Annotated[
        int,
        typer.Option("--port", "-p", help="Port for the preview server."),
    ] = 8000,
    open_browser: Annotated[
        bool,
        typer.Option(
            "--open-browser/--no-open-browser",
            help="Automatically open the site in a browser after starting.",
        ),
    ] = False,
) -> None:
    """Serve the frontend directory with a simple HTTP server."""
    config: Config = _load(config_path)
    if port < 0 or port > 65535:
        raise typer.BadParameter("Port must be between 0 and 65535.")

    frontend_dir = config.frontend_dir
    if not frontend_dir.exists():
        console.print(f"[bold red]Frontend directory not found[/]: {frontend_dir}")
        raise typer.Exit(code=1)

    handler = make_request_handler(frontend_dir)

    try:
        with serve(host, port, handler) as server:
            site_url = server_url(server)
            console.print(
                f"[bold green]Preview server[/]: serving {frontend_dir} at {site_url} "
                "(press Ctrl+C to stop)"
            )
            if open_browser:
                webbrowser.open(site_url)
            try:
                server.serve_forever()
            except KeyboardInterrupt:
                console.print("\n[bold yellow]Stopping preview server...[/]")
    except OSError as exc:
        console.print(f"[bold red]Failed to start preview server[/]: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc


@app.command()
def slug(
    name: Annotated[
        str,
        typer.Argument(..., help="Display name to derive a slug from."),
    ],
) -> None:
    """Show the slug a page name would receive."""
    try:
        console.print(derive_slug(name))
    except InvalidSlug as exc:
        console.print(f"[bold red]Invalid slug[/]: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc


def _print_materialized(page: MaterializedPage) -> None:
    document = page.document
    details = f"{document.rewritten_references} asset reference(s) rewritten"
    if document.stale_markers_removed:
        details += f", {document.stale_markers_removed} stale page id declaration(s) removed"
    if document.data_loader_added:
        details += ", data loader added"
    console.print(f"- {_display_path(page.path)} (page id {page.page_id}; {details})")


def _format_record(record: PageRecord) -> str:
    style = "green" if record.status is PageStatus.READY else "yellow"
    document = record.document or "no document"
    return f"- #{record.id} [bold]{record.slug}[/] '{escape(record.name)}' [{style}]{record.status.value}[/] ({document})"


def _print_verification_report(report: VerificationReport) -> None:
    if not report.issues:
        console.print(
            "[bold green]Verification complete[/]: "
            f"{report.scanned_files} HTML file(s) scanned; no issues found."
        )
        return

    console.print(
        "[bold red]Verification issues[/]: "
        f"{len(report.issues)} issue(s) detected across {report.scanned_files} file(s)."
    )
    for issue in report.issues:
        console.print(
            f"[bold red]{issue.kind}[/] "
            f"{_display_path(issue.source)} -> {escape(issue.target)} :: {escape(issue.message)}"
        )


def _display_path(path: Path) -> str:
    try:
        return path.relative_to(Path.cwd()).as_posix()
    except ValueError:
        return path.as_posix()


def _load(path: str) -> Config:
    try:
        return load_config(path)
    except FileNotFoundError as exc:
        raise typer.BadParameter(f"Config file not found: {path}") from exc
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _open_registry(config: Config) -> PageRegistry:
    try:
        return PageRegistry(config)
    except RegistryError as exc:
        console.print(f"[bold red]Registry error[/]: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

