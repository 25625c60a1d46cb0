from __future__ import annotations

import threading
import urllib.request
from pathlib import Path

from pagesmith.preview_server import make_request_handler, serve, server_url


def test_preview_server_serves_generated_pages(tmp_path: Path) -> None:
    page = tmp_path / "oferta" / "oferta.html"
    page.parent.mkdir()
    page.write_text("<html><body>Oferta</body></html>", encoding="utf-8")
    (tmp_path / "fonts").mkdir()
    (tmp_path / "fonts" / "inter.woff2").write_bytes(b"wOF2")

    with serve("127.0.0.1", 0, make_request_handler(tmp_path)) as server:
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        base = server_url(server)

        with urllib.request.urlopen(f"{base}oferta/oferta.html", timeout=5) as response:
            assert response.headers["Content-Type"] == "text/html; charset=utf-8"
            assert b"Oferta" in response.read()

        with urllib.request.urlopen(f"{base}fonts/inter.woff2", timeout=5) as response:
            assert response.headers["Content-Type"] == "font/woff2"

    thread.join(timeout=5)
    assert not thread.is_alive()


def test_server_url_maps_wildcard_host_to_loopback(tmp_path: Path) -> None:
    with serve("0.0.0.0", 0, make_request_handler(tmp_path)) as server:
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        url = server_url(server)

    assert url.startswith("http://127.0.0.1:")
    assert url.endswith("/")
