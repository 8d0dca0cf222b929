"""Heading extraction and anchor ids."""

from __future__ import annotations

from researchviewer.outline.indexer import (
    AnchorAllocator,
    extract_headings,
    generate_heading_id,
    iter_heading_lines,
)

__all__ = ["AnchorAllocator", "extract_headings", "generate_heading_id", "iter_heading_lines"]
