"""Codepoint range compaction and the U+XXXX-YYYY syntax fontTools.subset takes."""

from __future__ import annotations

from collections.abc import Iterable


def compact_ranges(codepoints: Iterable[int]) -> list[tuple[int, int]]:
    """Merge codepoints into sorted, disjoint, maximal closed intervals."""
    ranges: list[tuple[int, int]] = []
    for cp in sorted(set(codepoints)):
        if ranges and cp == ranges[-1][1] + 1:
            ranges[-1] = (ranges[-1][0], cp)
        else:
            ranges.append((cp, cp))
    return ranges


def _fmt(cp: int) -> str:
    return f"{cp:04X}"


def format_unicodes(ranges: Iterable[tuple[int, int]]) -> str:
    """Serialize intervals as comma-joined U+XXXX / U+XXXX-YYYY tokens.

    Only one leading U+ per token; fontTools rejects U+XXXX-U+YYYY.
    """
    return ",".join(
        f"U+{_fmt(start)}" if start == end else f"U+{_fmt(start)}-{_fmt(end)}"
        for start, end in ranges
    )


def chars_to_unicodes(chars: Iterable[str]) -> str:
    return format_unicodes(compact_ranges(ord(c) for c in chars))


def parse_unicode_ranges(spec: str | Iterable[str]) -> list[int]:
    """Parse 'U+0041-0043,U+0045' (or a list of tokens) into sorted codepoints."""
    tokens = spec.split(",") if isinstance(spec, str) else spec
    codepoints: set[int] = set()
    for r in tokens:
        r = r.strip().upper()
        if not r:
            continue
        if not r.startswith("U+"):
            raise ValueError(f"Invalid Unicode range: {r!r}")
        r = r[2:]  # strip U+
        if "-" in r:
            start_s, end_s = r.split("-", 1)
            start = int(start_s, 16)
            end = int(end_s, 16)
            if end < start:
                raise ValueError(f"Inverted Unicode range: U+{r}")
            codepoints.update(range(start, end + 1))
        else:
            codepoints.add(int(r, 16))
    return sorted(codepoints)
