"""Tests for the FastAPI app."""

from __future__ import annotations

import json
from pathlib import Path

import httpx
from fakes import FakePaginator
from fastapi.testclient import TestClient

from researchviewer.api.app import create_app
from researchviewer.api.client import ResearchApiClient
from researchviewer.config import Settings
from researchviewer.export.transcript import EMPTY_TRANSCRIPT_MESSAGE

BASE = "https://backend.test/api/v1"


def _settings(tmp_path: Path) -> Settings:
    return Settings(exports_dir=tmp_path, export_settle_s=0.0, api_base_url=BASE)


def test_health(tmp_path: Path) -> None:
    """It should report ok."""

    client = TestClient(create_app(_settings(tmp_path)))
    assert client.get("/health").json() == {"status": "ok"}


def test_render_returns_outline_html_and_toc(tmp_path: Path) -> None:
    """It should render markup into outline, anchored HTML and TOC rows."""

    client = TestClient(create_app(_settings(tmp_path)))
    resp = client.post("/documents/render", json={"markup": "# A\n## B\n## B\n"})

    assert resp.status_code == 200
    data = resp.json()
    assert [e["anchor_id"] for e in data["outline"]] == ["a", "b", "b-1"]
    assert 'id="b-1"' in data["html"]
    assert data["toc_html"].count("toc-item") == 3
    assert data["error"] is None


def test_render_without_headings(tmp_path: Path) -> None:
    """It should return the empty TOC placeholder."""

    client = TestClient(create_app(_settings(tmp_path)))
    data = client.post("/documents/render", json={"markup": "plain"}).json()
    assert "No sections found" in data["toc_html"]


def test_export_returns_pdf_bytes(tmp_path: Path) -> None:
    """It should return the paginated document as an attachment."""

    client = TestClient(create_app(_settings(tmp_path), paginator=FakePaginator()))
    resp = client.post("/documents/export", json={"markup": "# A\ntext", "title": "My Doc"})

    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert 'filename="My_Doc.pdf"' in resp.headers["content-disposition"]
    assert resp.content.startswith(b"%PDF")


def test_export_failure_is_500(tmp_path: Path) -> None:
    """It should surface export failures as server errors."""

    client = TestClient(create_app(_settings(tmp_path), paginator=FakePaginator(fail=True)))
    resp = client.post("/documents/export", json={"markup": "# A", "title": "x"})
    assert resp.status_code == 500


def test_transcript_export(tmp_path: Path) -> None:
    """It should return the transcript markdown, or 400 when empty."""

    client = TestClient(create_app(_settings(tmp_path)))
    resp = client.post(
        "/transcripts/export",
        json={"title": "NVDA", "messages": [{"role": "user", "content": "Q"}, {"role": "assistant", "content": "A"}]},
    )
    assert resp.status_code == 200
    assert resp.text.startswith("# Chat with NVDA\n\n")
    assert "**Assistant**: A" in resp.text

    empty = client.post("/transcripts/export", json={"title": "NVDA", "messages": []})
    assert empty.status_code == 400
    assert empty.json()["detail"] == EMPTY_TRANSCRIPT_MESSAGE


def test_chat_stream_proxies_backend(tmp_path: Path) -> None:
    """It should submit the question and relay the backend stream as SSE."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/execute/async"):
            return httpx.Response(200, json={"workflowId": "wf", "runId": "run"})
        return httpx.Response(
            200,
            text='data: {"type": "answer", "message": "Hi"}\n\ndata: {"type": "complete"}\n\n',
        )

    settings = _settings(tmp_path)
    backend = ResearchApiClient(
        settings,
        client=httpx.AsyncClient(base_url=BASE, transport=httpx.MockTransport(handler)),
    )
    client = TestClient(create_app(settings, backend=backend))

    resp = client.post("/chat/stream", json={"document_id": "doc-1", "question": "Q?"})

    assert resp.status_code == 200
    events = [json.loads(line[len("data: "):]) for line in resp.text.splitlines() if line.startswith("data: ")]
    assert [e["type"] for e in events] == ["answer", "complete"]
    assert events[0]["message"] == "Hi"


def test_chat_stream_submission_failure(tmp_path: Path) -> None:
    """It should answer 502 when the backend rejects the question."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    settings = _settings(tmp_path)
    backend = ResearchApiClient(
        settings,
        client=httpx.AsyncClient(base_url=BASE, transport=httpx.MockTransport(handler)),
    )
    client = TestClient(create_app(settings, backend=backend))

    assert client.post("/chat/stream", json={"document_id": "doc-1", "question": "Q?"}).status_code == 502
