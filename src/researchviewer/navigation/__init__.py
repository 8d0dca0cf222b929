"""Table of contents and scroll tracking."""

from __future__ import annotations

from researchviewer.navigation.toc import (
    OutlineNavigator,
    StaticViewport,
    TocEntry,
    Viewport,
    build_toc,
    compute_active_anchor,
    render_toc_html,
)

__all__ = [
    "OutlineNavigator",
    "StaticViewport",
    "TocEntry",
    "Viewport",
    "build_toc",
    "compute_active_anchor",
    "render_toc_html",
]
