"""Markdown to structured document rendering."""

from __future__ import annotations

from researchviewer.render.renderer import (
    DocumentRenderer,
    StructuredDocument,
    add_heading_ids,
    markdown_to_html,
    render_markdown_with_ids,
)

__all__ = [
    "DocumentRenderer",
    "StructuredDocument",
    "add_heading_ids",
    "markdown_to_html",
    "render_markdown_with_ids",
]
