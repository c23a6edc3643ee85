"""Derive the set of characters a page needs from its HTML."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from pathlib import Path

log = logging.getLogger(__name__)

BASELINE_CHARS = (
    " \n\t"
    "0123456789"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "abcdefghijklmnopqrstuvwxyz"
    ".,;:!?\"'()[]{}<>-–—‑/+*&%#@^$=_`~|\\"
)

# ©, curly single quotes, en/em dash, non-breaking hyphen, no-break space
EXTRA_CHARS = "©‘’–—‑\u00a0"

# Only the entities this site's markup actually uses; anything else stays literal.
HTML_ENTITIES: Mapping[str, str] = {
    "&nbsp;": " ",
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
    "&#39;": "'",
}

_SCRIPT_RE = re.compile(r"<script[\s\S]*?</script>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style[\s\S]*?</style>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")


def strip_markup(html: str) -> str:
    """Drop script/style bodies and all tags, leaving a space for each.

    Deliberately permissive: this is a regex strip, not an HTML parser.
    """
    text = _SCRIPT_RE.sub(" ", html)
    text = _STYLE_RE.sub(" ", text)
    return _TAG_RE.sub(" ", text)


def decode_entities(text: str, entities: Mapping[str, str] = HTML_ENTITIES) -> str:
    # &amp; last so "&amp;lt;" decodes to the literal "&lt;", not "<"
    for entity, char in sorted(entities.items(), key=lambda kv: kv[0] == "&amp;"):
        text = text.replace(entity, char)
    return text


class GlyphExtractor:
    """Computes the glyph set for a page: visible text ∪ baseline ∪ extras."""

    def __init__(
        self,
        baseline: str = BASELINE_CHARS,
        extras: str = EXTRA_CHARS,
        entities: Mapping[str, str] = HTML_ENTITIES,
    ) -> None:
        self.baseline = baseline
        self.extras = extras
        self.entities = dict(entities)

    def page_text(self, html: str) -> str:
        return decode_entities(strip_markup(html), self.entities)

    def extract(self, html: str) -> list[str]:
        """Return the distinct characters needed to render html, sorted by codepoint."""
        chars = set(self.page_text(html))
        chars.update(self.baseline)
        chars.update(self.extras)
        return sorted(chars)

    def extract_file(self, path: Path) -> list[str]:
        html = Path(path).read_text(encoding="utf-8")
        chars = self.extract(html)
        log.debug("%s: %d distinct characters", Path(path).name, len(chars))
        return chars


def extract_glyphs_from_file(path: Path, extractor: GlyphExtractor | None = None) -> list[str]:
    return (extractor or GlyphExtractor()).extract_file(path)
