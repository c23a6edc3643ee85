"""Point every known reference form of an asset in the HTML at its current hashed path.

Reference forms are listed in REFERENCE_FORMS, oldest-compatible last. A new
legacy spelling left behind by some earlier build is handled by appending a
form, not by touching the rewrite loop.
"""

from __future__ import annotations

import logging
import posixpath
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

log = logging.getLogger(__name__)

# Digest window: wide enough for any length an earlier run may have used,
# narrow enough not to eat unrelated dotted names like app.min.css.
DIGEST_MIN = 8
DIGEST_MAX = 12


class ReferenceForm:
    """One recognisable spelling of an asset reference."""

    name = "base"
    version = 0

    def apply(self, html: str, canonical: str, current: str) -> tuple[str, int]:
        """Rewrite occurrences in html; return (new html, replacements made)."""
        raise NotImplementedError


class HashedPathForm(ReferenceForm):
    """/dir/name.ext or /dir/name.<hex digest>.ext, all occurrences."""

    name = "hashed-path"
    version = 1

    def __init__(self, min_digits: int = DIGEST_MIN, max_digits: int = DIGEST_MAX) -> None:
        self.min_digits = min_digits
        self.max_digits = max_digits

    def pattern(self, canonical: str) -> re.Pattern[str]:
        stem, ext = posixpath.splitext(canonical)
        return re.compile(
            re.escape(stem)
            + rf"(?:\.[a-f0-9]{{{self.min_digits},{self.max_digits}}})?"
            + re.escape(ext)
        )

    def apply(self, html: str, canonical: str, current: str) -> tuple[str, int]:
        return self.pattern(canonical).subn(lambda _m: current, html)


class EscapedPathForm(ReferenceForm):
    r"""The current hashed path written as \/dir\/name\.<digest>\.ext by older tooling."""

    name = "escaped-path"
    version = 0

    @staticmethod
    def escape(path: str) -> str:
        return path.replace("/", "\\/").replace(".", "\\.")

    def apply(self, html: str, canonical: str, current: str) -> tuple[str, int]:
        escaped = self.escape(current)
        count = html.count(escaped)
        if count:
            html = html.replace(escaped, current)
        return html, count


REFERENCE_FORMS: tuple[ReferenceForm, ...] = (
    HashedPathForm(),
    EscapedPathForm(),
)


@dataclass
class RewriteResult:
    html: str
    counts: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.counts.values())


def rewrite_references(
    html: str,
    mapping: Mapping[str, str],
    forms: Sequence[ReferenceForm] = REFERENCE_FORMS,
) -> RewriteResult:
    """Rewrite references for each {canonical web path: hashed web path} pair.

    Assets are processed in mapping order, forms in list order. Pure text in,
    text out; identical inputs give identical output.
    """
    counts: dict[str, int] = {}
    for canonical, current in mapping.items():
        n = 0
        for form in forms:
            html, made = form.apply(html, canonical, current)
            if made:
                log.debug("%s: %d %s reference(s)", canonical, made, form.name)
            n += made
        counts[canonical] = n
    return RewriteResult(html, counts)
