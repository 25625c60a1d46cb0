"""Serve the frontend root locally so generated pages can be checked in a browser."""

from __future__ import annotations

import contextlib
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any, Iterator


class _ThreadingHTTPServer(ThreadingHTTPServer):
    daemon_threads = True
    allow_reuse_address = True


def make_request_handler(directory: Path) -> type[SimpleHTTPRequestHandler]:
    """Create a request handler rooted at ``directory`` with explicit asset MIME types."""
    directory_path = str(directory)

    class PreviewRequestHandler(SimpleHTTPRequestHandler):
        def __init__(self, *args: Any, **kwargs: Any) -> None:
            super().__init__(*args, directory=directory_path, **kwargs)

        extensions_map = dict(SimpleHTTPRequestHandler.extensions_map)
        extensions_map.update(
            {
                ".html": "text/html; charset=utf-8",
                ".js": "application/javascript; charset=utf-8",
                ".css": "text/css; charset=utf-8",
                ".json": "application/json; charset=utf-8",
                ".svg": "image/svg+xml",
                ".webp": "image/webp",
                ".jpg": "image/jpeg",
                ".jpeg": "image/jpeg",
                ".png": "image/png",
                ".mp4": "video/mp4",
                ".webm": "video/webm",
                ".woff": "font/woff",
                ".woff2": "font/woff2",
                ".ttf": "font/ttf",
                ".otf": "font/otf",
            }
        )

    return PreviewRequestHandler


@contextlib.contextmanager
def serve(
    host: str,
    port: int,
    handler: type[SimpleHTTPRequestHandler],
) -> Iterator[ThreadingHTTPServer]:
    """Context manager that creates and cleans up the HTTP server."""
    server = _ThreadingHTTPServer((host, port), handler)
    try:
        yield server
    finally:
        try:
            server.shutdown()
        finally:
            server.server_close()


def server_url(server: ThreadingHTTPServer) -> str:
    """Browser URL for a bound server, mapping wildcard hosts to loopback."""
    raw_host = server.server_address[0]
    bound_host = raw_host.decode("utf-8", "ignore") if isinstance(raw_host, bytes) else str(raw_host)
    bound_port = int(server.server_address[1])
    url_host = "127.0.0.1" if bound_host in {"0.0.0.0", ""} else bound_host
    return f"http://{url_host}:{bound_port}/"
