"""Heading-anchor indexer.

Scans markdown line by line. A line is a section heading when it starts with one to three ``#``
markers followed by whitespace and non-empty text; deeper headings and everything else are left
to the markdown transform and never enter the outline. Lines inside fenced code blocks are not
headings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator

from researchviewer.models.outline import OutlineEntry

_HEADING_RE = re.compile(r"^(?P<hashes>#{1,3})\s+(?P<text>.+)$")
_FENCE_RE = re.compile(r"^\s{0,3}(?P<fence>`{3,}|~{3,})")
_TAG_RE = re.compile(r"<[^>]*>")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")

FALLBACK_ANCHOR = "section"


@dataclass(frozen=True)
class HeadingLine:
    """A heading found at ``index`` (0-based line number)."""

    index: int
    level: int
    text: str


def generate_heading_id(text: object) -> str:
    """Derive an anchor id from heading text.

    Non-string input is coerced with ``str()`` (``None`` becomes empty). Embedded HTML tags are
    stripped, the rest is lower-cased, runs of non ``[a-z0-9]`` characters collapse to ``-`` and
    leading/trailing ``-`` are trimmed.

    >>> generate_heading_id("Risks & <em>Mitigants</em>")
    'risks-mitigants'
    """

    if isinstance(text, str):
        clean = text
    elif text is None:
        clean = ""
    else:
        clean = str(text)
    stripped = _TAG_RE.sub("", clean)
    return _NON_ALNUM_RE.sub("-", stripped.lower()).strip("-")


class AnchorAllocator:
    """Hands out unique anchor ids in document order.

    The first heading with a given base id keeps it; later duplicates get ``-1``, ``-2`` ...
    skipping any id that is already taken (e.g. a literal heading "Overview 1").
    """

    def __init__(self) -> None:
        self._taken: set[str] = set()
        self._counters: dict[str, int] = {}

    def allocate(self, text: object) -> str:
        base = generate_heading_id(text) or FALLBACK_ANCHOR
        if base not in self._taken:
            self._taken.add(base)
            return base
        n = self._counters.get(base, 0)
        while True:
            n += 1
            candidate = f"{base}-{n}"
            if candidate not in self._taken:
                break
        self._counters[base] = n
        self._taken.add(candidate)
        return candidate


def iter_heading_lines(markup: str) -> Iterator[HeadingLine]:
    """Yield every heading line of ``markup`` in order."""

    if not isinstance(markup, str) or not markup:
        return
    open_fence: str | None = None
    for index, raw in enumerate(markup.split("\n")):
        line = raw.rstrip("\r")
        fence = _FENCE_RE.match(line)
        if fence:
            marker = fence.group("fence")
            if open_fence is None:
                open_fence = marker
            elif marker[0] == open_fence[0] and len(marker) >= len(open_fence):
                open_fence = None
            continue
        if open_fence is not None:
            continue
        m = _HEADING_RE.match(line)
        if not m:
            continue
        text = m.group("text").strip()
        if not text:
            continue
        yield HeadingLine(index=index, level=len(m.group("hashes")), text=text)


def extract_headings(markup: str) -> list[OutlineEntry]:
    """Build the ordered outline of ``markup``.

    Args:
        markup: Raw markdown text.

    Returns:
        One entry per heading line; empty when there are none. Never raises for malformed input.
    """

    allocator = AnchorAllocator()
    return [
        OutlineEntry(level=h.level, text=h.text, anchor_id=allocator.allocate(h.text))
        for h in iter_heading_lines(markup)
    ]
