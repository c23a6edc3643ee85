"""fontTools.subset wrapper: run the subsetter out of process, replace fonts in place."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from collections.abc import Sequence
from pathlib import Path

from fontTools.ttLib import TTFont, TTLibError

log = logging.getLogger(__name__)

ENGINE_MODULE = "fontTools.subset"

# pip distribution name → module the engine interpreter must be able to import
_REQUIREMENT_MODULES = {
    "fonttools": "fontTools",
    "brotli": "brotli",
}


def _in_virtualenv(python: str) -> bool:
    """True if python is this interpreter and it runs from a virtualenv."""
    return python == sys.executable and sys.prefix != sys.base_prefix


class DependencyInstaller:
    """Makes sure the subsetting engine can run. ensure() must be idempotent."""

    def ensure(self) -> bool:
        raise NotImplementedError


class NullInstaller(DependencyInstaller):
    def ensure(self) -> bool:
        return True


class PipInstaller(DependencyInstaller):
    """Installs fonttools + brotli for the engine interpreter if they are missing."""

    def __init__(
        self,
        python: str,
        requirements: Sequence[str] = ("fonttools", "brotli"),
        user: bool | None = None,
    ) -> None:
        self.python = python
        self.requirements = tuple(requirements)
        # pip refuses --user inside a virtualenv
        self.user = not _in_virtualenv(python) if user is None else user
        self._ready = False

    def _modules(self) -> list[str]:
        return [_REQUIREMENT_MODULES.get(r.lower(), r) for r in self.requirements]

    def available(self) -> bool:
        """True if every required module imports under the engine interpreter."""
        probe = "import " + ", ".join(self._modules())
        try:
            res = subprocess.run(
                [self.python, "-c", probe],
                capture_output=True,
            )
        except OSError as exc:
            log.debug("Cannot run %s: %s", self.python, exc)
            return False
        return res.returncode == 0

    def ensure(self) -> bool:
        if self._ready or self.available():
            self._ready = True
            return True

        cmd = [self.python, "-m", "pip", "install"]
        if self.user:
            cmd.append("--user")
        cmd += ["--upgrade", *self.requirements]
        log.info("Installing %s", " ".join(self.requirements))
        try:
            res = subprocess.run(cmd, stdout=subprocess.DEVNULL)
        except OSError as exc:
            log.warning("Could not install %s: %s", " ".join(self.requirements), exc)
            return False
        if res.returncode != 0:
            log.warning(
                "pip exited with status %d installing %s",
                res.returncode, " ".join(self.requirements),
            )
            return False
        self._ready = True
        return True


class SubsetEngine:
    """Command-line boundary of ``python -m fontTools.subset``."""

    def __init__(self, python: str, flavor: str = "woff2") -> None:
        self.python = python
        self.flavor = flavor

    def command(self, src: Path, out: Path, unicodes: str) -> list[str]:
        return [
            self.python,
            "-m",
            ENGINE_MODULE,
            str(src),
            f"--output-file={out}",
            f"--flavor={self.flavor}",
            "--layout-features=*",
            "--no-hinting",
            "--glyph-names",
            f"--unicodes={unicodes}",
        ]

    def run(self, src: Path, out: Path, unicodes: str) -> int:
        """Run the engine to completion and return its exit status."""
        try:
            res = subprocess.run(self.command(src, out, unicodes))
        except OSError as exc:
            log.warning("Could not start %s: %s", ENGINE_MODULE, exc)
            return 127
        return res.returncode


def temp_output_path(font_path: Path) -> Path:
    font_path = Path(font_path)
    return font_path.with_name(f"{font_path.name}.subset.tmp{font_path.suffix}")


def _count_glyphs(font_path: Path) -> int | None:
    try:
        font = TTFont(font_path)
    except (OSError, TTLibError, ImportError) as exc:
        log.debug("Could not read %s: %s", font_path.name, exc)
        return None
    count = len(font.getGlyphOrder())
    font.close()
    return count


class FontSubsetter:
    """Subsets fonts in place, keeping the original whenever anything goes wrong."""

    def __init__(self, engine: SubsetEngine, installer: DependencyInstaller | None = None) -> None:
        self.engine = engine
        self.installer = installer or NullInstaller()

    def prepare(self) -> None:
        # A failed install is not fatal; the engine run will fail and be reported.
        if not self.installer.ensure():
            log.warning("Subsetting dependencies unavailable; attempting anyway")

    def subset(self, font_path: Path, unicodes: str) -> bool:
        """Subset font_path to unicodes in place. Returns True if the file was replaced."""
        font_path = Path(font_path)
        out = temp_output_path(font_path)
        before = font_path.stat().st_size

        status = self.engine.run(font_path, out, unicodes)
        if status != 0 or not out.exists():
            log.warning(
                "Subsetting failed for %s (exit status %d); keeping original file",
                font_path.name, status,
            )
            out.unlink(missing_ok=True)
            return False

        os.replace(out, font_path)
        after = font_path.stat().st_size
        glyphs = _count_glyphs(font_path)
        log.info(
            "Subset %s: %.1f KB -> %.1f KB%s",
            font_path.name, before / 1024, after / 1024,
            f" ({glyphs} glyphs)" if glyphs is not None else "",
        )
        return True
