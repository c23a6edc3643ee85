"""CLI entry point for site_assets."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import SiteConfig, default_config, find_config, load_config
from .glyphs import GlyphExtractor, extract_glyphs_from_file
from .pipeline import dry_run, run_fingerprint, run_subset
from .ranges import chars_to_unicodes

log = logging.getLogger(__name__)

# Build steps report success no matter what happened; warnings go to stderr.
EXIT_SUCCESS = 0


def _load(args: argparse.Namespace) -> SiteConfig:
    root = args.root
    config_path = args.config or find_config(root or Path("."))
    if config_path is None:
        return default_config(root or Path("."))
    return load_config(config_path, root=root)


def _print_glyphs(config: SiteConfig) -> None:
    glyphs = config.subset.glyphs
    extractor = GlyphExtractor(glyphs.baseline, glyphs.extra_chars)
    chars = extract_glyphs_from_file(config.index_path, extractor)
    print(chars_to_unicodes(chars))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="site-assets",
        description="Fingerprint static assets and subset web fonts for a static site",
    )
    parser.add_argument(
        "command",
        choices=["fingerprint", "subset", "all", "glyphs"],
        help="Step to run (glyphs prints the derived --unicodes spec)",
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Path to site_assets.toml (default: <root>/site_assets.toml if present)",
    )
    parser.add_argument(
        "--root",
        type=Path,
        default=None,
        help="Site root containing index.html (default: current directory)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show build plan without executing",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG; pipeline commands default to INFO)",
    )

    args = parser.parse_args(argv)

    # Logging setup; the build log shows what changed even without -v
    level = logging.WARNING if args.command == "glyphs" else logging.INFO
    if args.verbose >= 2:
        level = logging.DEBUG
    elif args.verbose >= 1:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)-8s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = _load(args)
    except Exception as exc:
        log.warning("Could not load config, skipping %s: %s", args.command, exc)
        return EXIT_SUCCESS

    try:
        if args.dry_run:
            dry_run(config)
            return EXIT_SUCCESS
        if args.command == "glyphs":
            _print_glyphs(config)
            return EXIT_SUCCESS
    except Exception as exc:
        log.warning("%s", exc)
        return EXIT_SUCCESS

    if args.command in ("fingerprint", "all"):
        result = run_fingerprint(config)
        log.debug("%s", result)
    if args.command in ("subset", "all"):
        result = run_subset(config)
        log.debug("%s", result)
    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
