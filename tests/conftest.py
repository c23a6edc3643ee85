"""Pytest fixtures for the site_assets test suite."""

from pathlib import Path

import pytest

from site_assets.config import SiteConfig, default_config

INDEX_HTML = """<!doctype html>
<html>
<head>
  <link rel="stylesheet" href="/assets/tailwind.css">
  <style>
    @font-face { src: url("/fonts/Cormorant Variable Font.woff2") format("woff2"); }
    @font-face { src: url("/fonts/Cormorant Italic Variable Font.woff2") format("woff2"); }
  </style>
</head>
<body><p>Hello</p></body>
</html>
"""


@pytest.fixture
def site(tmp_path: Path) -> Path:
    """Site root with an index page, a stylesheet and both fonts.

    Returns:
        Path to the site root.
    """
    (tmp_path / "assets").mkdir()
    (tmp_path / "fonts").mkdir()
    (tmp_path / "assets" / "tailwind.css").write_text("body{color:red}", encoding="utf-8")
    (tmp_path / "fonts" / "Cormorant Variable Font.woff2").write_bytes(b"wOF2regular")
    (tmp_path / "fonts" / "Cormorant Italic Variable Font.woff2").write_bytes(b"wOF2italic")
    (tmp_path / "index.html").write_text(INDEX_HTML, encoding="utf-8")
    return tmp_path


@pytest.fixture
def site_config(site: Path) -> SiteConfig:
    return default_config(site)


@pytest.fixture(autouse=True)
def _clear_skip_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's environment from skipping steps under test."""
    monkeypatch.delenv("SKIP_FINGERPRINT", raising=False)
    monkeypatch.delenv("SKIP_FONT_SUBSET", raising=False)
