"""Document viewer.

One :class:`DocumentViewer` owns the single open :class:`DocumentContext` and wires the
components around it: indexer and renderer on open, outline navigator for the table of contents,
the chat session controller, both exporters and the follow-up composer.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from researchviewer.chat.format import HtmlChatPane
from researchviewer.chat.session import ChatView, SessionController
from researchviewer.config import Settings
from researchviewer.export.pdf import DocumentExporter, ExportResult
from researchviewer.export.transcript import TranscriptExporter
from researchviewer.followup.composer import FollowUpComposer
from researchviewer.logging import document_context, get_logger
from researchviewer.models.document import DocumentContext
from researchviewer.navigation.toc import OutlineNavigator, StaticViewport, Viewport
from researchviewer.protocols import JobSubmitter, Notifier, Paginator, ResearchSubmitter, StreamOpener
from researchviewer.render.renderer import DocumentRenderer, StructuredDocument

logger = get_logger(__name__)

DEFAULT_TITLE = "Research Document"

Tab = Literal["chat", "followup"]


@dataclass
class PanelState:
    """Side panel state: whether chat is open and which tab is shown."""

    chat_open: bool = False
    tab: Tab = "chat"


class DocumentViewer:
    """Facade over everything that depends on the open document."""

    def __init__(
        self,
        settings: Settings,
        *,
        submitter: JobSubmitter,
        opener: StreamOpener,
        research: ResearchSubmitter,
        notifier: Notifier | None = None,
        paginator: Paginator | None = None,
        renderer: DocumentRenderer | None = None,
        chat_view: ChatView | None = None,
    ) -> None:
        self._settings = settings
        self._context = DocumentContext()
        self._renderer = renderer or DocumentRenderer()
        self._notifier = notifier
        self.panel = PanelState()
        self.document: StructuredDocument | None = None
        self.navigator: OutlineNavigator | None = None

        self.chat_view: ChatView = chat_view if chat_view is not None else HtmlChatPane()
        self.chat = SessionController(self._context, submitter=submitter, opener=opener, view=self.chat_view)
        self.pdf_exporter = DocumentExporter(
            settings,
            renderer=self._renderer,
            paginator=paginator,
            notifier=notifier,
        )
        self.transcript_exporter = TranscriptExporter(settings.exports_dir, notifier=notifier)
        self.followup = FollowUpComposer(lambda: self._context.doc_id, submitter=research, notifier=notifier)

    @property
    def context(self) -> DocumentContext:
        return self._context

    @property
    def is_open(self) -> bool:
        return self._context.is_open

    @property
    def display_title(self) -> str:
        return self._context.title or DEFAULT_TITLE

    def open_viewer(
        self,
        markup: str,
        title: str,
        doc_id: str,
        *,
        viewport: Viewport | None = None,
    ) -> StructuredDocument:
        """Show ``markup`` as the open document.

        Any stream of the previously open document is cancelled before the new document's state
        is populated. Rendering failures leave the viewer open with an error placeholder.
        """

        if self._context.doc_id is not None and self._context.doc_id != doc_id:
            logger.info(
                "Switching documents, closing existing stream",
                extra={"from_doc": self._context.doc_id, "to_doc": doc_id},
            )
        # Reopening the same document also starts from a fresh transcript.
        self.chat.reset()
        self.followup.reset()

        ctx = self._context
        ctx.close()
        ctx.doc_id = doc_id
        ctx.title = title
        ctx.markup = markup or ""
        self.panel = PanelState()

        with document_context(doc_id=doc_id):
            document = self._renderer.render(ctx.markup)
            ctx.outline = list(document.outline)
            self.document = document
            self.navigator = OutlineNavigator(
                document.outline,
                viewport or StaticViewport({}),
                threshold=self._settings.toc_proximity_threshold,
                target=self._settings.toc_target_offset,
            )
            logger.info(
                "Opened document",
                extra={"title": self.display_title, "headings": len(document.outline), "ok": document.ok},
            )
        self.chat.refresh()
        return document

    def close_viewer(self) -> None:
        """Close the document, cancelling any stream and clearing all per-document state."""

        if not self._context.is_open:
            return
        logger.info("Closing viewer", extra={"doc_id": self._context.doc_id})
        self.chat.reset()
        self.followup.reset()
        self._context.close()
        self.document = None
        self.navigator = None
        self.panel = PanelState()
        self.chat.refresh()

    def toggle_chat(self) -> bool:
        self.panel.chat_open = not self.panel.chat_open
        return self.panel.chat_open

    def switch_tab(self, tab: Tab) -> None:
        if tab not in ("chat", "followup"):
            return
        self.panel.tab = tab

    def render_toc(self) -> str:
        if self.navigator is None:
            return ""
        return self.navigator.render_html()

    async def send_message(self, text: str) -> bool:
        return await self.chat.submit_question(text)

    async def generate_pdf(self, *, output_dir: Path | None = None) -> ExportResult:
        if not self._context.is_open:
            return ExportResult(message="No content to generate PDF")
        return await self.pdf_exporter.export(self._context.markup, self._context.title, output_dir=output_dir)

    def download_chat(self) -> ExportResult:
        return self.transcript_exporter.export(self._context.title, self._context.transcript)

    async def generate_followup(self) -> bool:
        return await self.followup.submit()

    async def aclose(self) -> None:
        """Close the viewer and wait for cancelled stream consumers to unwind."""

        self.close_viewer()
        await self.chat.wait_idle()
