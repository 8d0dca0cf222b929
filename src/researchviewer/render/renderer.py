"""Structured document renderer.

Heading lines are rewritten into explicitly tagged headings (``# Text {: #anchor }``, the
``attr_list`` syntax) before the text goes through the markdown transform, so every outline
entry ends up as exactly one addressable element in the HTML.
"""

from __future__ import annotations

import html
from dataclasses import dataclass, field
from typing import Callable, Sequence

from bs4 import BeautifulSoup, Tag

from researchviewer.errors import RenderError, RendererUnavailableError
from researchviewer.logging import get_logger, log_exception
from researchviewer.models.outline import OutlineEntry
from researchviewer.outline.indexer import extract_headings, iter_heading_lines

logger = get_logger(__name__)

MARKDOWN_EXTENSIONS = ["extra", "tables", "fenced_code", "sane_lists"]

Transform = Callable[[str], str]


def markdown_to_html(markdown_text: str) -> str:
    """Convert markdown to HTML with python-markdown.

    Raises:
        RendererUnavailableError: If the ``markdown`` package cannot be imported.
    """

    try:
        import markdown
    except ImportError as exc:
        raise RendererUnavailableError("Markdown library not loaded") from exc
    return markdown.markdown(markdown_text, extensions=MARKDOWN_EXTENSIONS)


def add_heading_ids(markup: str, outline: Sequence[OutlineEntry] | None = None) -> str:
    """Rewrite every heading line so it carries its anchor id.

    Args:
        markup: Raw markdown.
        outline: Outline previously extracted from the same markup. Recomputed when missing or
            out of step with the markup.
    """

    headings = list(iter_heading_lines(markup))
    if not headings:
        return markup
    entries = list(outline) if outline is not None else []
    if len(entries) != len(headings):
        entries = extract_headings(markup)

    lines = markup.split("\n")
    for heading, entry in zip(headings, entries):
        lines[heading.index] = f"{'#' * heading.level} {heading.text} {{: #{entry.anchor_id} }}"
    return "\n".join(lines)


def render_markdown_with_ids(
    markup: str,
    outline: Sequence[OutlineEntry] | None = None,
    *,
    transform: Transform = markdown_to_html,
) -> str:
    """Render markdown to HTML with ids on the outline headings.

    Raises:
        RendererUnavailableError: If the markdown library is missing.
        RenderError: If the transform fails on this input.
    """

    prepared = add_heading_ids(markup, outline)
    try:
        return transform(prepared)
    except RendererUnavailableError:
        raise
    except Exception as e:
        raise RenderError(str(e)) from e


def error_placeholder(message: str) -> str:
    return f'<div class="error">Failed to render document: {html.escape(message)}</div>'


@dataclass(frozen=True)
class StructuredDocument:
    """Rendered document: outline plus HTML content.

    ``error`` is set when rendering failed; ``html`` then holds an inline error placeholder.
    """

    outline: list[OutlineEntry] = field(default_factory=list)
    html: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def soup(self) -> BeautifulSoup:
        """Parse the content into a fresh tree (callers may mutate it)."""

        return BeautifulSoup(f'<div class="viewer-document">{self.html}</div>', "lxml")

    def content_root(self) -> Tag:
        root = self.soup().find("div", class_="viewer-document")
        assert isinstance(root, Tag)
        return root

    def heading_ids(self) -> list[str]:
        """Ids of the ``h1``-``h3`` elements that carry one, in document order."""

        return [
            str(tag["id"])
            for tag in self.content_root().find_all(["h1", "h2", "h3"])
            if tag.get("id")
        ]


class DocumentRenderer:
    """Turns markup into a :class:`StructuredDocument` without ever raising."""

    def __init__(self, transform: Transform = markdown_to_html) -> None:
        self._transform = transform

    def render(self, markup: str) -> StructuredDocument:
        outline = extract_headings(markup)
        try:
            content = render_markdown_with_ids(markup, outline, transform=self._transform)
        except RendererUnavailableError as e:
            logger.error("Markdown renderer unavailable: %s", e)
            return StructuredDocument(outline=outline, html=error_placeholder(str(e)), error=str(e))
        except RenderError as e:
            log_exception(logger, "Error rendering markdown", markup_len=len(markup or ""))
            return StructuredDocument(outline=outline, html=error_placeholder(str(e)), error=str(e))

        logger.debug("Rendered document", extra={"headings": len(outline), "html_len": len(content)})
        return StructuredDocument(outline=outline, html=content)

