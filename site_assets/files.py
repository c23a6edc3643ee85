"""Write-and-rename helpers so readers never see a half-written file."""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path


def _discard(tmp_name: str) -> None:
    try:
        os.unlink(tmp_name)
    except OSError:
        pass


def write_text_atomic(path: Path, text: str, encoding: str = "utf-8") -> None:
    """Replace path's contents with text via a temp file in the same directory."""
    with tempfile.NamedTemporaryFile(
        "w", encoding=encoding, newline="", suffix=path.suffix,
        dir=path.parent, delete=False,
    ) as tmp:
        tmp_name = tmp.name
        try:
            tmp.write(text)
            tmp.flush()
            os.fsync(tmp.fileno())
        except Exception:
            tmp.close()
            _discard(tmp_name)
            raise
    try:
        if path.exists():
            shutil.copymode(path, tmp_name)
        os.replace(tmp_name, path)
    except Exception:
        _discard(tmp_name)
        raise


def copy_file_atomic(src: Path, dest: Path) -> None:
    """Copy src to dest through a temp file next to dest."""
    with tempfile.NamedTemporaryFile(
        suffix=dest.suffix, dir=dest.parent, delete=False,
    ) as tmp:
        tmp_name = tmp.name
        try:
            with open(src, "rb") as f:
                shutil.copyfileobj(f, tmp)
            tmp.flush()
            os.fsync(tmp.fileno())
        except Exception:
            tmp.close()
            _discard(tmp_name)
            raise
    try:
        shutil.copymode(src, tmp_name)
        os.replace(tmp_name, dest)
    except Exception:
        _discard(tmp_name)
        raise
