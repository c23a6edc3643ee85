"""TOML config loading → SiteConfig dataclass."""

from __future__ import annotations

import logging
import os
import sys
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .glyphs import BASELINE_CHARS, EXTRA_CHARS
from .ranges import parse_unicode_ranges

log = logging.getLogger(__name__)

CONFIG_NAME = "site_assets.toml"

DEFAULT_INDEX = "index.html"
DEFAULT_STYLESHEET = "assets/tailwind.css"
DEFAULT_FONTS = (
    "fonts/Cormorant Variable Font.woff2",
    "fonts/Cormorant Italic Variable Font.woff2",
)

# Rewriter recognises 8-12 hex digits, so digests must stay inside that window
MIN_DIGEST_LENGTH = 8
MAX_DIGEST_LENGTH = 12
DEFAULT_DIGEST_LENGTH = 10

FLAVORS = ("woff2", "woff")

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class FingerprintConfig:
    assets: tuple[str, ...] = (DEFAULT_STYLESHEET, *DEFAULT_FONTS)
    digest_length: int = DEFAULT_DIGEST_LENGTH
    skip_env: str = "SKIP_FINGERPRINT"


@dataclass(frozen=True)
class GlyphConfig:
    baseline: str = BASELINE_CHARS
    extras: str = EXTRA_CHARS  # symbols used on the page but not always in its text
    unicodes: tuple[str, ...] = ()  # extra U+XXXX[-YYYY] tokens, e.g. for script-injected text

    @property
    def extra_chars(self) -> str:
        return self.extras + "".join(chr(cp) for cp in parse_unicode_ranges(self.unicodes))


@dataclass(frozen=True)
class SubsetConfig:
    fonts: tuple[str, ...] = DEFAULT_FONTS
    flavor: str = "woff2"
    python: str = sys.executable or "python3"
    install: bool = True
    requirements: tuple[str, ...] = ("fonttools", "brotli")
    skip_env: str = "SKIP_FONT_SUBSET"
    glyphs: GlyphConfig = field(default_factory=GlyphConfig)


@dataclass(frozen=True)
class SiteConfig:
    root: Path
    index: str = DEFAULT_INDEX
    fingerprint: FingerprintConfig = field(default_factory=FingerprintConfig)
    subset: SubsetConfig = field(default_factory=SubsetConfig)

    @property
    def index_path(self) -> Path:
        return self.root / self.index

    @property
    def asset_paths(self) -> list[Path]:
        return [self.root / a for a in self.fingerprint.assets]

    @property
    def font_paths(self) -> list[Path]:
        return [self.root / f for f in self.subset.fonts]


def env_flag(name: str, environ: Mapping[str, str] | None = None) -> bool:
    """True if the environment variable holds a truthy value (1/true/yes/on)."""
    env = os.environ if environ is None else environ
    return env.get(name, "").strip().lower() in _TRUTHY


def default_config(root: Path | str = ".") -> SiteConfig:
    return SiteConfig(root=Path(root))


def _section(raw: Mapping, name: str) -> Mapping:
    value = raw.get(name, {})
    if not isinstance(value, Mapping):
        raise ValueError(f"[{name}] must be a table, got {value!r}")
    return value


def _str(raw: Mapping, key: str, default: str) -> str:
    value = raw.get(key, default)
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string, got {value!r}")
    return value


def _bool(raw: Mapping, key: str, default: bool) -> bool:
    value = raw.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be true or false, got {value!r}")
    return value


def _str_tuple(raw: Mapping, key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = raw.get(key, default)
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"{key} must be a list of strings, got {value!r}")
    return tuple(value)


def _parse_fingerprint(raw: Mapping) -> FingerprintConfig:
    defaults = FingerprintConfig()
    length = raw.get("digest_length", defaults.digest_length)
    if (
        not isinstance(length, int) or isinstance(length, bool)
        or not MIN_DIGEST_LENGTH <= length <= MAX_DIGEST_LENGTH
    ):
        raise ValueError(
            f"digest_length must be between {MIN_DIGEST_LENGTH} and "
            f"{MAX_DIGEST_LENGTH}, got {length!r}"
        )
    return FingerprintConfig(
        assets=_str_tuple(raw, "assets", defaults.assets),
        digest_length=length,
        skip_env=_str(raw, "skip_env", defaults.skip_env),
    )


def _parse_subset(raw: Mapping) -> SubsetConfig:
    defaults = SubsetConfig()
    flavor = raw.get("flavor", defaults.flavor)
    if flavor not in FLAVORS:
        raise ValueError(f"Unknown font flavor {flavor!r} (expected one of {FLAVORS})")
    unicodes = _str_tuple(raw, "unicodes", ())
    parse_unicode_ranges(unicodes)  # reject bad tokens at load time
    return SubsetConfig(
        fonts=_str_tuple(raw, "fonts", defaults.fonts),
        flavor=flavor,
        python=_str(raw, "python", defaults.python),
        install=_bool(raw, "install", defaults.install),
        requirements=_str_tuple(raw, "requirements", defaults.requirements),
        skip_env=_str(raw, "skip_env", defaults.skip_env),
        glyphs=GlyphConfig(
            baseline=_str(raw, "baseline", BASELINE_CHARS),
            extras=_str(raw, "extras", EXTRA_CHARS),
            unicodes=unicodes,
        ),
    )


def load_config(path: Path, root: Path | None = None) -> SiteConfig:
    """Load a TOML config file and return a SiteConfig.

    A relative ``site.root`` is resolved against the config file's directory;
    an explicit ``root`` argument wins over both. Values of the wrong type
    raise ValueError.
    """
    with open(path, "rb") as f:
        raw = tomllib.load(f)

    site = _section(raw, "site")
    if root is None:
        root = Path(_str(site, "root", "."))
        if not root.is_absolute():
            root = path.parent / root

    config = SiteConfig(
        root=root,
        index=_str(site, "index", DEFAULT_INDEX),
        fingerprint=_parse_fingerprint(_section(raw, "fingerprint")),
        subset=_parse_subset(_section(raw, "subset")),
    )

    log.debug(
        "Loaded config: %d assets, %d fonts",
        len(config.fingerprint.assets), len(config.subset.fonts),
    )
    return config


def find_config(root: Path) -> Path | None:
    """Look for site_assets.toml in the site root."""
    candidate = root / CONFIG_NAME
    return candidate if candidate.exists() else None
