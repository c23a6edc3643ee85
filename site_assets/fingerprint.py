"""Content-addressed copies of static assets: name.css → name.<digest>.css."""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterable
from pathlib import Path

from .config import DEFAULT_DIGEST_LENGTH, FingerprintConfig
from .files import copy_file_atomic

log = logging.getLogger(__name__)


def content_digest(data: bytes, length: int = DEFAULT_DIGEST_LENGTH) -> str:
    """Truncated lowercase SHA-256 hex digest of data."""
    return hashlib.sha256(data).hexdigest()[:length]


def file_digest(path: Path, length: int = DEFAULT_DIGEST_LENGTH) -> str:
    return content_digest(Path(path).read_bytes(), length)


def hashed_path(path: Path, digest: str) -> Path:
    """Insert .<digest> before the extension, keeping the base name (spaces included)."""
    path = Path(path)
    return path.with_name(f"{path.stem}.{digest}{path.suffix}")


def ensure_hashed_copy(path: Path, digest: str) -> tuple[Path, bool]:
    """Copy path to its digest name unless that file already exists.

    Returns (hashed path, created). An existing artifact is never rewritten,
    since an older deployed HTML revision may still point at it.
    """
    target = hashed_path(path, digest)
    if target.exists():
        log.debug("Already fingerprinted: %s", target.name)
        return target, False
    copy_file_atomic(Path(path), target)
    return target, True


def web_path(path: Path, root: Path) -> str:
    """Site-absolute URL path for a file under root, e.g. /fonts/A B.woff2."""
    return "/" + Path(path).resolve().relative_to(Path(root).resolve()).as_posix()


class Fingerprinter:
    """Produces a digest-named copy of every existing asset."""

    def __init__(self, config: FingerprintConfig | None = None) -> None:
        self.config = config or FingerprintConfig()

    def candidates(self, root: Path) -> list[Path]:
        found = []
        for rel in self.config.assets:
            p = Path(root) / rel
            if p.is_file():
                found.append(p)
            else:
                log.debug("Not found, skipping: %s", rel)
        return found

    def fingerprint(self, root: Path, assets: Iterable[Path] | None = None) -> dict[Path, Path]:
        """Return {source path: hashed path} for each existing asset."""
        outputs: dict[Path, Path] = {}
        for src in self.candidates(root) if assets is None else assets:
            digest = file_digest(src, self.config.digest_length)
            target, created = ensure_hashed_copy(src, digest)
            outputs[src] = target
            log.info("%s -> %s%s", src.name, target.name, "" if created else " (exists)")
        return outputs

    def plan(self, root: Path) -> dict[Path, Path]:
        """Like fingerprint() but without writing anything."""
        return {
            src: hashed_path(src, file_digest(src, self.config.digest_length))
            for src in self.candidates(root)
        }
