"""End-to-end tests for pipeline.py."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from site_assets.config import FingerprintConfig, GlyphConfig, SiteConfig, SubsetConfig
from site_assets.fingerprint import content_digest
from site_assets.pipeline import make_subsetter, run_fingerprint, run_subset
from site_assets.ranges import parse_unicode_ranges
from site_assets.results import StepStatus
from site_assets.subset import FontSubsetter, NullInstaller, PipInstaller, SubsetEngine


def _snapshot(root: Path) -> dict[Path, bytes]:
    return {p: p.read_bytes() for p in sorted(root.rglob("*")) if p.is_file()}


class TestRunFingerprint:
    """Tests for run_fingerprint."""

    def test_first_run(self, site: Path, site_config: SiteConfig) -> None:
        """Hashed copy written and the bare reference rewritten."""
        (site / "assets" / "tailwind.css").write_text("X")
        digest = content_digest(b"X")

        result = run_fingerprint(site_config, environ={})

        assert result.status is StepStatus.OK
        assert (site / "assets" / f"tailwind.{digest}.css").read_text() == "X"
        html = (site / "index.html").read_text()
        assert f"/assets/tailwind.{digest}.css" in html
        assert "/assets/tailwind.css" not in html

    def test_content_change(self, site: Path, site_config: SiteConfig) -> None:
        """New digest referenced, old artifact kept untouched."""
        css = site / "assets" / "tailwind.css"
        css.write_text("X")
        run_fingerprint(site_config, environ={})
        old = site / "assets" / f"tailwind.{content_digest(b'X')}.css"

        css.write_text("Y")
        run_fingerprint(site_config, environ={})

        new = site / "assets" / f"tailwind.{content_digest(b'Y')}.css"
        assert new.read_text() == "Y"
        assert old.read_text() == "X"
        html = (site / "index.html").read_text()
        assert f"/assets/tailwind.{content_digest(b'Y')}.css" in html
        assert content_digest(b"X") not in html

    def test_fonts_with_spaces(self, site: Path, site_config: SiteConfig) -> None:
        run_fingerprint(site_config, environ={})

        digest = content_digest(b"wOF2italic")
        html = (site / "index.html").read_text()
        assert f"/fonts/Cormorant Italic Variable Font.{digest}.woff2" in html
        assert "/fonts/Cormorant Italic Variable Font.woff2" not in html

    def test_rerun_is_noop(self, site: Path, site_config: SiteConfig) -> None:
        run_fingerprint(site_config, environ={})
        before = _snapshot(site)

        result = run_fingerprint(site_config, environ={})

        assert result.status is StepStatus.OK
        assert _snapshot(site) == before

    def test_escaped_legacy_reference(self, site: Path, site_config: SiteConfig) -> None:
        digest = content_digest(b"wOF2regular")
        current = f"/fonts/Cormorant Variable Font.{digest}.woff2"
        escaped = current.replace("/", "\\/").replace(".", "\\.")
        (site / "index.html").write_text(f'<script>var f = "{escaped}";</script>')

        run_fingerprint(site_config, environ={})

        assert (site / "index.html").read_text() == f'<script>var f = "{current}";</script>'

    def test_skip_flag(self, site: Path, site_config: SiteConfig, caplog: pytest.LogCaptureFixture) -> None:
        """No files are created or modified when SKIP_FINGERPRINT is set."""
        caplog.set_level("INFO")
        before = _snapshot(site)

        result = run_fingerprint(site_config, environ={"SKIP_FINGERPRINT": "1"})

        assert result.status is StepStatus.SKIPPED
        assert _snapshot(site) == before
        assert "SKIP_FINGERPRINT set; skipping" in caplog.text

    def test_malformed_skip_setting_is_caught(self, site: Path) -> None:
        """A non-string skip variable name warns instead of escaping the step."""
        config = SiteConfig(root=site, fingerprint=FingerprintConfig(skip_env=5))
        before = _snapshot(site)

        result = run_fingerprint(config)

        assert result.status is StepStatus.WARNED
        assert _snapshot(site) == before

    def test_crlf_line_endings_kept(self, site: Path, site_config: SiteConfig) -> None:
        (site / "index.html").write_bytes(b'<link href="/assets/tailwind.css">\r\n<p>x</p>\r\n')
        digest = content_digest(b"body{color:red}")

        run_fingerprint(site_config, environ={})

        data = (site / "index.html").read_bytes()
        assert data == f'<link href="/assets/tailwind.{digest}.css">\r\n<p>x</p>\r\n'.encode()
        assert data.count(b"\r\n") == 2

    def test_skip_flag_from_process_env(
        self, site: Path, site_config: SiteConfig, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SKIP_FINGERPRINT", "true")

        assert run_fingerprint(site_config).status is StepStatus.SKIPPED

    def test_no_assets(self, tmp_path: Path) -> None:
        result = run_fingerprint(SiteConfig(root=tmp_path), environ={})

        assert result.status is StepStatus.SKIPPED
        assert result.reason == "no assets found"

    def test_missing_index(self, site: Path, site_config: SiteConfig) -> None:
        (site / "index.html").unlink()

        result = run_fingerprint(site_config, environ={})

        assert result.status is StepStatus.SKIPPED
        assert len(result.outputs) == 3

    def test_write_failure_leaves_html_untouched(self, site: Path, site_config: SiteConfig) -> None:
        before = (site / "index.html").read_bytes()

        with patch("site_assets.pipeline.write_text_atomic", side_effect=OSError("disk full")):
            result = run_fingerprint(site_config, environ={})

        assert result.status is StepStatus.WARNED
        assert "disk full" in result.reason
        assert (site / "index.html").read_bytes() == before

    def test_unexpected_error_is_caught(self, site_config: SiteConfig) -> None:
        with patch("site_assets.pipeline.Fingerprinter.fingerprint", side_effect=RuntimeError("boom")):
            result = run_fingerprint(site_config, environ={})

        assert result.status is StepStatus.WARNED
        assert result.reason == "boom"


class TestRunSubset:
    """Tests for run_subset."""

    def _subsetter(self, status: int = 0) -> tuple[FontSubsetter, MagicMock]:
        engine = MagicMock(spec=SubsetEngine)

        def run(src, out, unicodes):
            if status == 0:
                Path(out).write_bytes(b"subset:" + Path(src).read_bytes())
            return status

        engine.run.side_effect = run
        return FontSubsetter(engine, NullInstaller()), engine

    @patch("site_assets.subset._count_glyphs", return_value=None)
    def test_cafe(self, _count: MagicMock, site: Path, site_config: SiteConfig) -> None:
        """é from the page text reaches the engine's --unicodes argument."""
        (site / "index.html").write_text("<html><body><p>Café</p></body></html>", encoding="utf-8")
        subsetter, engine = self._subsetter()

        result = run_subset(site_config, environ={}, subsetter=subsetter)

        assert result.status is StepStatus.OK
        assert engine.run.call_count == 2
        unicodes = engine.run.call_args.args[2]
        assert 0xE9 in parse_unicode_ranges(unicodes)
        assert (site / "fonts" / "Cormorant Variable Font.woff2").read_bytes() == b"subset:wOF2regular"

    @patch("site_assets.subset._count_glyphs", return_value=None)
    def test_configured_unicodes_reach_engine(self, _count: MagicMock, site: Path) -> None:
        """Ranges from the config are kept even when the page text lacks them."""
        config = SiteConfig(
            root=site,
            subset=SubsetConfig(glyphs=GlyphConfig(unicodes=("U+2192", "U+2600-2601"))),
        )
        subsetter, engine = self._subsetter()

        run_subset(config, environ={}, subsetter=subsetter)

        cps = set(parse_unicode_ranges(engine.run.call_args.args[2]))
        assert {0x2192, 0x2600, 0x2601} <= cps
        assert 0xA0 in cps

    def test_malformed_skip_setting_is_caught(self, site: Path) -> None:
        config = SiteConfig(root=site, subset=SubsetConfig(skip_env=None))
        subsetter, engine = self._subsetter()

        result = run_subset(config, subsetter=subsetter)

        assert result.status is StepStatus.WARNED
        engine.run.assert_not_called()

    def test_engine_failure_keeps_fonts(self, site: Path, site_config: SiteConfig) -> None:
        subsetter, _ = self._subsetter(status=1)
        before = _snapshot(site / "fonts")

        result = run_subset(site_config, environ={}, subsetter=subsetter)

        assert result.status is StepStatus.WARNED
        assert _snapshot(site / "fonts") == before
        assert result.outputs["failed"] == [
            "Cormorant Variable Font.woff2",
            "Cormorant Italic Variable Font.woff2",
        ]

    @patch("site_assets.subset._count_glyphs", return_value=None)
    def test_missing_font_skipped(self, _count: MagicMock, site: Path, site_config: SiteConfig) -> None:
        (site / "fonts" / "Cormorant Italic Variable Font.woff2").unlink()
        subsetter, engine = self._subsetter()

        result = run_subset(site_config, environ={}, subsetter=subsetter)

        assert result.status is StepStatus.OK
        assert engine.run.call_count == 1

    def test_no_fonts(self, site: Path, site_config: SiteConfig) -> None:
        for f in (site / "fonts").iterdir():
            f.unlink()
        subsetter, engine = self._subsetter()

        result = run_subset(site_config, environ={}, subsetter=subsetter)

        assert result.status is StepStatus.SKIPPED
        engine.run.assert_not_called()

    def test_skip_flag(self, site: Path, site_config: SiteConfig) -> None:
        subsetter, engine = self._subsetter()
        before = _snapshot(site)

        result = run_subset(site_config, environ={"SKIP_FONT_SUBSET": "1"}, subsetter=subsetter)

        assert result.status is StepStatus.SKIPPED
        assert _snapshot(site) == before
        engine.run.assert_not_called()

    def test_missing_index(self, site: Path, site_config: SiteConfig) -> None:
        (site / "index.html").unlink()
        subsetter, engine = self._subsetter()

        result = run_subset(site_config, environ={}, subsetter=subsetter)

        assert result.status is StepStatus.SKIPPED
        engine.run.assert_not_called()

    def test_unreadable_index_is_caught(self, site: Path, site_config: SiteConfig) -> None:
        (site / "index.html").write_bytes(b"\xff\xfe\xfa not utf-8")
        subsetter, _ = self._subsetter()

        result = run_subset(site_config, environ={}, subsetter=subsetter)

        assert result.status is StepStatus.WARNED


class TestMakeSubsetter:
    """Tests for make_subsetter."""

    def test_pip_installer_by_default(self, site_config: SiteConfig) -> None:
        subsetter = make_subsetter(site_config)

        assert isinstance(subsetter.installer, PipInstaller)
        assert subsetter.engine.flavor == "woff2"
