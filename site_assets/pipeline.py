"""Step orchestrators: fingerprint → rewrite, and glyphs → ranges → subset.

Both steps are fail-soft. Whatever happens inside, they return a StepResult
and never raise, so an asset optimisation can't break the site build.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from .config import SiteConfig, env_flag
from .files import write_text_atomic
from .fingerprint import Fingerprinter, web_path
from .glyphs import GlyphExtractor, extract_glyphs_from_file
from .ranges import chars_to_unicodes
from .results import StepResult
from .rewrite import rewrite_references
from .subset import FontSubsetter, NullInstaller, PipInstaller, SubsetEngine

log = logging.getLogger(__name__)

FINGERPRINT = "fingerprint"
SUBSET = "subset-fonts"


def _fingerprint(config: SiteConfig) -> StepResult:
    fingerprinter = Fingerprinter(config.fingerprint)
    outputs = fingerprinter.fingerprint(config.root)
    if not outputs:
        log.info("No assets found to fingerprint. Skipping.")
        return StepResult.skipped(FINGERPRINT, "no assets found")

    index = config.index_path
    if not index.is_file():
        log.info("%s not found; hashed copies written, references not rewritten", config.index)
        return StepResult.skipped(FINGERPRINT, f"{config.index} not found", outputs)

    mapping = {
        web_path(src, config.root): web_path(dest, config.root)
        for src, dest in outputs.items()
    }
    # newline="" keeps CRLF line endings intact on write-back
    with open(index, encoding="utf-8", newline="") as f:
        html = f.read()
    result = rewrite_references(html, mapping)
    for canonical, count in result.counts.items():
        if not count:
            log.debug("No references to %s in %s", canonical, config.index)

    if result.html == html:
        log.info("Asset URLs in %s already up to date", config.index)
    else:
        write_text_atomic(index, result.html)
        log.info("Rewrote asset URLs in %s", config.index)
    return StepResult.ok(FINGERPRINT, outputs)


def run_fingerprint(config: SiteConfig, environ: Mapping[str, str] | None = None) -> StepResult:
    """Fingerprint assets and rewrite their references in the index page."""
    try:
        skip_env = config.fingerprint.skip_env
        if env_flag(skip_env, environ):
            log.info("%s set; skipping", skip_env)
            return StepResult.skipped(FINGERPRINT, f"{skip_env} set")
        return _fingerprint(config)
    except Exception as exc:
        log.warning("Fingerprinting failed, build continues: %s", exc)
        return StepResult.warned(FINGERPRINT, str(exc))


def make_subsetter(config: SiteConfig) -> FontSubsetter:
    sub = config.subset
    installer = PipInstaller(sub.python, sub.requirements) if sub.install else NullInstaller()
    return FontSubsetter(SubsetEngine(sub.python, sub.flavor), installer)


def _subset(
    config: SiteConfig,
    subsetter: FontSubsetter,
    extractor: GlyphExtractor,
) -> StepResult:
    index = config.index_path
    if not index.is_file():
        log.info("%s not found; nothing to derive glyphs from", config.index)
        return StepResult.skipped(SUBSET, f"{config.index} not found")

    chars = extract_glyphs_from_file(index, extractor)
    unicodes = chars_to_unicodes(chars)
    log.info("Derived glyphs: %d chars -> %d unicode spec chars", len(chars), len(unicodes))

    fonts = [f for f in config.font_paths if f.is_file()]
    for f in config.font_paths:
        if f not in fonts:
            log.info("Skip: %s not found.", f.name)
    if not fonts:
        return StepResult.skipped(SUBSET, "no fonts found", {"unicodes": unicodes})

    subsetter.prepare()

    failed = []
    for f in fonts:
        log.info("Subsetting %s ...", f.name)
        if not subsetter.subset(f, unicodes):
            failed.append(f.name)
    log.info("Done.")

    outputs = {"unicodes": unicodes, "fonts": fonts, "failed": failed}
    if failed:
        return StepResult.warned(SUBSET, "subsetting failed for " + ", ".join(failed), outputs)
    return StepResult.ok(SUBSET, outputs)


def run_subset(
    config: SiteConfig,
    environ: Mapping[str, str] | None = None,
    subsetter: FontSubsetter | None = None,
    extractor: GlyphExtractor | None = None,
) -> StepResult:
    """Subset the configured fonts to the glyphs the index page needs."""
    try:
        skip_env = config.subset.skip_env
        if env_flag(skip_env, environ):
            log.info("%s set; skipping subsetting", skip_env)
            return StepResult.skipped(SUBSET, f"{skip_env} set")
        glyphs = config.subset.glyphs
        return _subset(
            config,
            subsetter or make_subsetter(config),
            extractor or GlyphExtractor(glyphs.baseline, glyphs.extra_chars),
        )
    except Exception as exc:
        log.warning("Font subsetting failed, keeping original fonts: %s", exc)
        return StepResult.warned(SUBSET, str(exc))


def dry_run(config: SiteConfig) -> None:
    """Print what both steps would do without writing anything."""
    print(f"Root: {config.root}")
    print(f"Index: {config.index}")

    plan = Fingerprinter(config.fingerprint).plan(config.root)
    print(f"\nFingerprint ({len(plan)} assets):")
    for src, dest in plan.items():
        status = "exists" if dest.exists() else "create"
        print(f"  [{status}] {web_path(src, config.root)} -> {web_path(dest, config.root)}")

    print("\nSubset fonts:")
    for f in config.font_paths:
        print(f"  [{'found' if f.is_file() else 'missing'}] {f.name}")
    index = config.index_path
    if index.is_file():
        glyphs = config.subset.glyphs
        chars = extract_glyphs_from_file(index, GlyphExtractor(glyphs.baseline, glyphs.extra_chars))
        print(f"\n{len(chars)} glyphs: {chars_to_unicodes(chars)}")
