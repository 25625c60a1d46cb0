from pathlib import Path

from pagesmith.verify import verify_documents, verify_site


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_verify_site_detects_missing_internal_links_and_assets(tmp_path: Path) -> None:
    frontend = tmp_path / "frontend"
    _write(
        frontend / "index.html",
        """
        <html>
          <body>
            <a href="/oferta/oferta.html">Oferta</a>
            <img src="/images/photo.jpg" alt="Example" />
            <script src="./js/dataLoader.js"></script>
          </body>
        </html>
        """,
    )
    _write(frontend / "js" / "dataLoader.js", "console.log('ok');")

    report = verify_site(frontend)

    assert report.scanned_files == 1
    kinds = {issue.kind for issue in report.issues}
    targets = {issue.target for issue in report.issues}

    assert "missing-page" in kinds
    assert "missing-asset" in kinds
    assert "/oferta/oferta.html" in targets
    assert "/images/photo.jpg" in targets
    assert report.error_count == 2


def test_verify_site_resolves_parent_relative_page_assets(tmp_path: Path) -> None:
    frontend = tmp_path / "frontend"
    _write(frontend / "style" / "style.css", "body {}")
    _write(frontend / "script.js", "")
    _write(
        frontend / "oferta" / "oferta.html",
        """
        <html>
          <head><link rel="stylesheet" href="../style/style.css"></head>
          <body>
            <script src="../script.js"></script>
            <script src="../js/dataLoader.js"></script>
          </body>
        </html>
        """,
    )

    report = verify_site(frontend)

    assert [issue.target for issue in report.issues] == ["../js/dataLoader.js"]
    assert report.issues[0].kind == "missing-asset"


def test_verify_site_skips_external_fragments_and_backend_prefixes(tmp_path: Path) -> None:
    frontend = tmp_path / "frontend"
    _write(
        frontend / "index.html",
        """
        <html>
          <body>
            <a href="https://example.com">External</a>
            <a href="#details">Section</a>
            <img src="data:image/png;base64,abcd" />
            <img src="/uploads/frame.jpg" />
            <a href="/api/pages">Pages</a>
          </body>
        </html>
        """,
    )

    report = verify_site(frontend, ["/api/", "/uploads/"])

    assert report.scanned_files == 1
    assert report.issues == []


def test_verify_site_reports_backend_paths_without_ignore_prefixes(tmp_path: Path) -> None:
    frontend = tmp_path / "frontend"
    _write(frontend / "index.html", '<html><body><img src="/uploads/frame.jpg"></body></html>')

    report = verify_site(frontend)

    assert [issue.target for issue in report.issues] == ["/uploads/frame.jpg"]


def test_verify_site_flags_out_of_bounds_references(tmp_path: Path) -> None:
    frontend = tmp_path / "frontend"
    _write(
        frontend / "oferta" / "oferta.html",
        """
        <html>
          <body>
            <a href="../../secrets/admin.html">Forbidden</a>
          </body>
        </html>
        """,
    )

    report = verify_site(frontend)

    assert report.issues
    assert report.issues[0].kind == "out-of-bounds"


def test_verify_documents_checks_only_given_files(tmp_path: Path) -> None:
    frontend = tmp_path / "frontend"
    _write(frontend / "index.html", '<html><body><img src="/images/missing.png"></body></html>')
    _write(frontend / "kontakt" / "kontakt.html", "<html><body><p>Kontakt</p></body></html>")

    report = verify_documents(frontend, [frontend / "kontakt" / "kontakt.html"])

    assert report.scanned_files == 1
    assert report.issues == []


def test_verify_documents_reports_unreadable_files(tmp_path: Path) -> None:
    frontend = tmp_path / "frontend"
    frontend.mkdir()

    report = verify_documents(frontend, [frontend / "brak" / "brak.html"])

    assert report.error_count == 1
    assert report.issues[0].kind == "error"


def test_verify_checks_srcset_candidates_and_media_sources(tmp_path: Path) -> None:
    frontend = tmp_path / "frontend"
    _write(frontend / "images" / "small.png", "")
    _write(
        frontend / "kontakt" / "kontakt.html",
        """
        <html>
          <body>
            <img src="../images/small.png" srcset="../images/small.png 1x, ../images/large.png 2x">
            <video src="../videos/intro.mp4"></video>
            <iframe src="../embed/map.html"></iframe>
          </body>
        </html>
        """,
    )

    report = verify_site(frontend)

    assert sorted(issue.target for issue in report.issues) == ["../images/large.png", "../videos/intro.mp4"]
    assert {issue.kind for issue in report.issues} == {"missing-asset"}
