"""Tests for the research backend client."""

from __future__ import annotations

import asyncio
import json
from typing import AsyncIterator

import httpx
import pytest

from researchviewer.api.client import ResearchApiClient, parse_sse_line
from researchviewer.chat.stream import StreamHandle, consume_stream
from researchviewer.config import Settings
from researchviewer.core.concurrency import CancellationToken
from researchviewer.errors import TransportError
from researchviewer.events import StreamEventType
from researchviewer.models.followup import FollowUpRequest

BASE = "https://backend.test/api/v1"


def _client(handler) -> ResearchApiClient:  # type: ignore[no-untyped-def]
    settings = Settings(api_base_url=BASE, api_key="k", environment_id="env-1")
    http = httpx.AsyncClient(base_url=BASE, transport=httpx.MockTransport(handler))
    return ResearchApiClient(settings, client=http)


def test_parse_sse_line() -> None:
    """It should decode data lines and skip everything else."""

    assert parse_sse_line('data: {"type": "answer", "message": "hi"}') == {"type": "answer", "message": "hi"}
    assert parse_sse_line(": keep-alive") is None
    assert parse_sse_line("data: not json") is None
    assert parse_sse_line("data: [DONE]") is None


def test_submit_question_posts_execute_request() -> None:
    """It should start a chat job and return its workflow reference."""

    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v1/execute/async"
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"workflowId": "wf-9", "runId": "run-9"})

    async def scenario() -> None:
        client = _client(handler)
        ref = await client.submit_question(document_id="doc-1", question="Q?", conversation_history="User: Q?")
        assert (ref.workflow_id, ref.run_id) == ("wf-9", "run-9")

    asyncio.run(scenario())
    body = seen[0]
    assert body["interaction"] == "ResearchV2"
    assert body["config"]["environment"] == "env-1"
    assert body["data"]["document_id"] == "doc-1"
    assert body["data"]["question"] == "Q?"
    assert body["data"]["conversation_history"] == "User: Q?"


def test_submit_question_http_error_is_transport_error() -> None:
    """It should raise TransportError for failed requests, without retrying."""

    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(503, json={"error": "unavailable"})

    async def scenario() -> None:
        with pytest.raises(TransportError):
            await _client(handler).submit_question(document_id="d", question="q", conversation_history="")

    asyncio.run(scenario())
    assert len(calls) == 1


def test_submit_question_missing_ids() -> None:
    """It should reject a response without workflow ids."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "ok"})

    async def scenario() -> None:
        with pytest.raises(TransportError):
            await _client(handler).submit_question(document_id="d", question="q", conversation_history="")

    asyncio.run(scenario())


def test_submit_research_sends_followup_payload() -> None:
    """It should forward the follow-up request data."""

    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"workflowId": "wf", "runId": "run"})

    request = FollowUpRequest(context="Compare with AMD", modifiers={"scope": "Market"}, parent_document_id="doc-1")
    asyncio.run(_client(handler).submit_research(request))

    data = seen[0]["data"]
    assert data["context"] == "Compare with AMD"
    assert data["modifiers"] == {"scope": "Market"}
    assert data["parent_document_id"] == "doc-1"


def test_open_stream_yields_events_until_terminal() -> None:
    """It should parse SSE lines into events and stop at the terminal one."""

    body = (
        'data: {"type": "thought", "message": "thinking"}\n\n'
        ": keep-alive\n\n"
        'data: {"type": "answer", "message": "Export controls."}\n\n'
        'data: {"type": "complete"}\n\n'
        'data: {"type": "answer", "message": "after"}\n\n'
    )

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v1/workflows/runs/wf-1/run-1/stream"
        return httpx.Response(200, text=body, headers={"content-type": "text/event-stream"})

    async def scenario() -> list[StreamEventType]:
        client = _client(handler)
        return [ev.type async for ev in client.open_stream("wf-1", "run-1", CancellationToken())]

    assert asyncio.run(scenario()) == [StreamEventType.UPDATE, StreamEventType.ANSWER, StreamEventType.COMPLETE]


def test_open_stream_stops_when_token_cancelled() -> None:
    """It should yield nothing once the token is cancelled."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text='data: {"type": "answer", "message": "x"}\n\n')

    async def scenario() -> list[object]:
        token = CancellationToken()
        token.cancel()
        return [ev async for ev in _client(handler).open_stream("wf", "run", token)]

    assert asyncio.run(scenario()) == []


def test_open_stream_http_error() -> None:
    """It should raise TransportError when the stream cannot be opened."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    async def scenario() -> None:
        with pytest.raises(TransportError):
            async for _ in _client(handler).open_stream("wf", "run", CancellationToken()):
                pass

    asyncio.run(scenario())


def test_cancelling_a_live_stream_stops_the_reader() -> None:
    """It should leave no task reading the response once the turn is cancelled."""

    async def body() -> AsyncIterator[bytes]:
        yield b'data: {"type": "thought", "message": "working"}\n\n'
        await asyncio.Event().wait()

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body(), headers={"content-type": "text/event-stream"})

    async def scenario() -> None:
        client = _client(handler)
        seen: list[StreamEventType] = []
        got_update = asyncio.Event()

        def sink(handle: StreamHandle, event) -> None:  # type: ignore[no-untyped-def]
            seen.append(event.type)
            got_update.set()

        handle = StreamHandle(workflow_id="wf", run_id="run", doc_id="doc-1")
        handle.task = asyncio.create_task(consume_stream(handle, client, sink))
        await asyncio.wait_for(got_update.wait(), timeout=2)

        handle.cancel()
        await asyncio.wait({handle.task}, timeout=2)
        for _ in range(3):
            await asyncio.sleep(0)

        assert handle.task.done()
        assert seen == [StreamEventType.UPDATE]
        assert [t for t in asyncio.all_tasks() if t is not asyncio.current_task()] == []
        await client.aclose()

    asyncio.run(scenario())
