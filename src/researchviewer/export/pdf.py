"""Document export.

Render the markup, copy the content into a detached off-screen container of fixed page width,
restyle the copy from the style table, and hand it to the paginator. The copy is always destroyed
afterwards, whether pagination worked or not.
"""

from __future__ import annotations

import asyncio
import copy
import re
from dataclasses import dataclass
from pathlib import Path

from bs4 import BeautifulSoup, Tag

from researchviewer.config import Settings
from researchviewer.errors import ExportUnavailableError, ResourceUnavailableError
from researchviewer.export.paginator import PageOptions, ReportLabPaginator
from researchviewer.export.styles import apply_inline_styles
from researchviewer.logging import get_logger, log_exception
from researchviewer.protocols import Notifier, Paginator
from researchviewer.render.renderer import DocumentRenderer

logger = get_logger(__name__)

_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9]")

PDF_FAILED_MESSAGE = "Failed to generate PDF. Please try again."
PDF_UNAVAILABLE_MESSAGE = "PDF library not loaded. Please refresh the page."


def sanitize_filename(title: str) -> str:
    """Replace every non-alphanumeric character with ``_``."""

    return _UNSAFE_RE.sub("_", title or "")


@dataclass(frozen=True)
class ExportResult:
    """Outcome of one export action."""

    path: Path | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.path is not None


def build_offscreen_container(html: str, *, page_width: int) -> tuple[BeautifulSoup, Tag]:
    """Create a detached container holding a copy of ``html``."""

    soup = BeautifulSoup("<div></div>", "lxml")
    container = soup.div
    assert isinstance(container, Tag)
    container["class"] = ["export-container"]
    container["style"] = (
        f"position: fixed; left: -10000px; top: 0; width: {page_width}px; background: white; "
        "padding: 60px; font-size: 14px; line-height: 1.6; color: #1f2d3d;"
    )
    content = BeautifulSoup(html, "lxml")
    body = content.body or content
    for child in list(body.children):
        container.append(copy.copy(child))
    return soup, container


class DocumentExporter:
    """Exports the rendered document as a paginated PDF."""

    def __init__(
        self,
        settings: Settings,
        *,
        renderer: DocumentRenderer | None = None,
        paginator: Paginator | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._settings = settings
        self._renderer = renderer or DocumentRenderer()
        self._paginator = paginator or ReportLabPaginator()
        self._notifier = notifier

    async def export(self, markup: str, title: str, *, output_dir: Path | None = None) -> ExportResult:
        """Export ``markup`` to ``<sanitized title>.pdf``.

        Never raises: failures are logged, reported through the notifier and returned as an
        :class:`ExportResult` without a path.
        """

        if not markup:
            logger.error("No content to generate PDF")
            return ExportResult(message="No content to generate PDF")

        try:
            self._paginator.ensure_available()
        except ResourceUnavailableError as e:
            logger.error("Paginator unavailable: %s", e)
            self._alert(PDF_UNAVAILABLE_MESSAGE)
            return ExportResult(message=PDF_UNAVAILABLE_MESSAGE)

        filename = f"{sanitize_filename(title)}.pdf"
        target = (output_dir or self._settings.exports_dir) / filename
        options = PageOptions.from_settings(self._settings, filename=filename, title=title)

        document = self._renderer.render(markup)
        if not document.ok:
            logger.error("PDF generation aborted, document did not render: %s", document.error)
            self._alert(PDF_FAILED_MESSAGE)
            return ExportResult(message=PDF_FAILED_MESSAGE)

        soup, container = build_offscreen_container(document.html, page_width=options.page_width_px)
        try:
            apply_inline_styles(container)
            if self._settings.export_settle_s:
                await asyncio.sleep(self._settings.export_settle_s)
            path = await asyncio.to_thread(self._paginator.save, container, options, target)
        except ExportUnavailableError as e:
            logger.error("Paginator unavailable: %s", e)
            self._alert(PDF_UNAVAILABLE_MESSAGE)
            return ExportResult(message=PDF_UNAVAILABLE_MESSAGE)
        except Exception:
            log_exception(logger, "PDF generation failed", title=title)
            self._alert(PDF_FAILED_MESSAGE)
            return ExportResult(message=PDF_FAILED_MESSAGE)
        finally:
            container.decompose()
            soup.decompose()

        logger.info("Document exported", extra={"path": str(path)})
        return ExportResult(path=path)

    def _alert(self, message: str) -> None:
        if self._notifier is not None:
            self._notifier.alert(message)
