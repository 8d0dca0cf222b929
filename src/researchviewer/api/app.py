"""FastAPI app: document rendering, export and a streamed chat proxy."""

from __future__ import annotations

import json
import tempfile
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Literal

from fastapi import FastAPI, HTTPException
from fastapi.responses import Response, StreamingResponse
from pydantic import BaseModel, Field

from researchviewer import __version__
from researchviewer.api.client import ResearchApiClient
from researchviewer.config import Settings, load_settings
from researchviewer.core.concurrency import CancellationToken
from researchviewer.errors import TransportError
from researchviewer.events import StreamEvent
from researchviewer.export.pdf import DocumentExporter
from researchviewer.export.transcript import (
    EMPTY_TRANSCRIPT_MESSAGE,
    build_transcript_markdown,
    transcript_filename,
)
from researchviewer.logging import configure_logging, document_context, get_logger
from researchviewer.models.chat import ChatMessage
from researchviewer.models.outline import OutlineEntry
from researchviewer.navigation.toc import render_toc_html
from researchviewer.protocols import Paginator
from researchviewer.render.renderer import DocumentRenderer


class RenderRequest(BaseModel):
    """Render request."""

    markup: str
    title: str = ""


class RenderResponse(BaseModel):
    outline: list[OutlineEntry]
    html: str
    toc_html: str
    error: str | None = None


class ExportRequest(BaseModel):
    markup: str = Field(min_length=1)
    title: str = "document"


class TranscriptMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class TranscriptRequest(BaseModel):
    title: str = ""
    messages: list[TranscriptMessage] = Field(default_factory=list)


class ChatRequest(BaseModel):
    document_id: str = Field(min_length=1)
    question: str = Field(min_length=1)
    conversation_history: str = ""


def _sse(event: StreamEvent) -> bytes:
    payload = json.dumps(event.model_dump(mode="json"), ensure_ascii=False)
    return f"data: {payload}\n\n".encode("utf-8")


def create_app(
    settings: Settings | None = None,
    *,
    backend: ResearchApiClient | None = None,
    paginator: Paginator | None = None,
) -> FastAPI:
    """Create FastAPI app."""

    settings = settings or load_settings()
    configure_logging(settings.log_level)
    logger = get_logger(__name__)

    renderer = DocumentRenderer()
    exporter = DocumentExporter(settings, renderer=renderer, paginator=paginator)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        if backend is not None:
            await backend.aclose()

    app = FastAPI(title="ResearchViewer", version=__version__, lifespan=lifespan)

    def get_backend() -> ResearchApiClient:
        nonlocal backend
        if backend is None:
            backend = ResearchApiClient(settings)
        return backend

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/documents/render")
    def documents_render(req: RenderRequest) -> RenderResponse:
        logger.info("API render requested", extra={"markup_len": len(req.markup)})
        document = renderer.render(req.markup)
        return RenderResponse(
            outline=document.outline,
            html=document.html,
            toc_html=render_toc_html(document.outline),
            error=document.error,
        )

    @app.post("/documents/export")
    async def documents_export(req: ExportRequest) -> Response:
        logger.info("API export requested", extra={"title": req.title})
        with tempfile.TemporaryDirectory(prefix="researchviewer-") as tmp:
            result = await exporter.export(req.markup, req.title, output_dir=Path(tmp))
            if not result.ok or result.path is None:
                raise HTTPException(status_code=500, detail=result.message or "export failed")
            data = result.path.read_bytes()
            filename = result.path.name
        return Response(
            content=data,
            media_type="application/pdf",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.post("/transcripts/export")
    def transcripts_export(req: TranscriptRequest) -> Response:
        if not req.messages:
            raise HTTPException(status_code=400, detail=EMPTY_TRANSCRIPT_MESSAGE)
        messages = [ChatMessage(role=m.role, content=m.content) for m in req.messages]
        content = build_transcript_markdown(req.title, messages)
        filename = transcript_filename(req.title)
        return Response(
            content=content,
            media_type="text/markdown",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.post("/chat/stream")
    async def chat_stream(req: ChatRequest) -> StreamingResponse:
        client = get_backend()
        with document_context(doc_id=req.document_id):
            logger.info("API chat requested", extra={"question_len": len(req.question)})
            try:
                ref = await client.submit_question(
                    document_id=req.document_id,
                    question=req.question,
                    conversation_history=req.conversation_history,
                )
            except TransportError as e:
                raise HTTPException(status_code=502, detail=str(e)) from e

        async def gen() -> AsyncGenerator[bytes, None]:
            token = CancellationToken()
            try:
                async for ev in client.open_stream(ref.workflow_id, ref.run_id, token):
                    yield _sse(ev)
            except TransportError as e:
                yield _sse(StreamEvent.error(str(e)))
            finally:
                token.cancel()

        return StreamingResponse(gen(), media_type="text/event-stream")

    return app
