"""Outline navigator.

The table of contents mirrors the outline one entry per heading. Which entry is "active" follows
either the last click or, while scrolling, the heading closest to a fixed target offset below the
top of the viewport.
"""

from __future__ import annotations

import html
from dataclasses import dataclass
from typing import Mapping, Protocol, Sequence

from researchviewer.logging import get_logger
from researchviewer.models.outline import OutlineEntry

logger = get_logger(__name__)

PROXIMITY_THRESHOLD = 200.0
TARGET_OFFSET = 50.0

EMPTY_TOC_HTML = '<div class="toc-empty">No sections found</div>'


@dataclass(frozen=True)
class TocEntry:
    """One row of the table of contents."""

    anchor_id: str
    text: str
    level: int

    @property
    def indent(self) -> int:
        return self.level


def build_toc(outline: Sequence[OutlineEntry]) -> list[TocEntry]:
    return [TocEntry(anchor_id=e.anchor_id, text=e.text, level=e.level) for e in outline]


def render_toc_html(outline: Sequence[OutlineEntry], *, active: str | None = None) -> str:
    """Render the table of contents, or the "No sections found" placeholder."""

    if not outline:
        return EMPTY_TOC_HTML
    rows = []
    for entry in build_toc(outline):
        classes = f"toc-item toc-level-{entry.level}"
        if entry.anchor_id == active:
            classes += " active"
        rows.append(
            f'<div class="{classes}" data-target="{html.escape(entry.anchor_id)}">'
            f'<span class="toc-text">{html.escape(entry.text)}</span></div>'
        )
    return "\n".join(rows)


class Viewport(Protocol):
    """The scrollable surface that displays the rendered document."""

    def heading_tops(self) -> Mapping[str, float]:
        """Top offset of each heading relative to the viewport top, in document order."""
        ...

    def scroll_to(self, anchor_id: str) -> bool:
        """Align the element's top with the viewport start; False when it does not exist."""
        ...


class StaticViewport:
    """In-memory viewport over headings at fixed absolute offsets."""

    def __init__(self, positions: Mapping[str, float], *, scroll_top: float = 0.0) -> None:
        self._positions = dict(positions)
        self.scroll_top = scroll_top

    def heading_tops(self) -> dict[str, float]:
        return {anchor: pos - self.scroll_top for anchor, pos in self._positions.items()}

    def scroll_to(self, anchor_id: str) -> bool:
        if anchor_id not in self._positions:
            return False
        self.scroll_top = self._positions[anchor_id]
        return True

    def scroll_by(self, delta: float) -> None:
        self.scroll_top = max(0.0, self.scroll_top + delta)


def compute_active_anchor(
    tops: Mapping[str, float],
    *,
    threshold: float = PROXIMITY_THRESHOLD,
    target: float = TARGET_OFFSET,
) -> str | None:
    """Pick the heading closest to ``target`` among those whose top is at most ``threshold``.

    Falls back to the first heading when none qualifies and returns ``None`` when there are no
    headings at all.
    """

    if not tops:
        return None
    active = next(iter(tops))
    min_distance = float("inf")
    for anchor, top in tops.items():
        distance = abs(top - target)
        if distance < min_distance and top <= threshold:
            min_distance = distance
            active = anchor
    return active


class OutlineNavigator:
    """Binds the table of contents to a viewport."""

    def __init__(
        self,
        outline: Sequence[OutlineEntry],
        viewport: Viewport,
        *,
        threshold: float = PROXIMITY_THRESHOLD,
        target: float = TARGET_OFFSET,
    ) -> None:
        self._outline = list(outline)
        self._entries = build_toc(self._outline)
        self._anchors = {e.anchor_id for e in self._entries}
        self._viewport = viewport
        self._threshold = threshold
        self._target = target
        self.active_anchor: str | None = None

    @property
    def entries(self) -> list[TocEntry]:
        return list(self._entries)

    @property
    def is_empty(self) -> bool:
        return not self._entries

    def is_active(self, anchor_id: str) -> bool:
        return self.active_anchor == anchor_id

    def click(self, anchor_id: str) -> bool:
        """Scroll to ``anchor_id`` and make its entry the only active one."""

        if anchor_id not in self._anchors:
            return False
        if not self._viewport.scroll_to(anchor_id):
            logger.debug("TOC target missing from viewport", extra={"anchor": anchor_id})
            return False
        self.active_anchor = anchor_id
        return True

    def update_active(self) -> str | None:
        """Recompute the active entry from the current scroll position."""

        anchor = compute_active_anchor(
            self._viewport.heading_tops(),
            threshold=self._threshold,
            target=self._target,
        )
        if anchor is None:
            return self.active_anchor
        # A heading without a TOC row leaves no entry active.
        self.active_anchor = anchor if anchor in self._anchors else None
        return self.active_anchor

    def render_html(self) -> str:
        return render_toc_html(self._outline, active=self.active_anchor)
