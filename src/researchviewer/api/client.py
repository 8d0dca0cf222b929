"""Research backend client.

Talks to the workflow API that answers questions about documents and runs research jobs.
Jobs are started with ``POST /execute/async`` and their messages are read back from an SSE
stream. There are no retries; every transport or HTTP failure is raised as
:class:`~researchviewer.errors.TransportError`.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, AsyncIterator

import httpx

from researchviewer.config import Settings
from researchviewer.core.concurrency import CancellationToken
from researchviewer.errors import TransportError
from researchviewer.events import StreamEvent
from researchviewer.logging import get_logger
from researchviewer.models.followup import FollowUpRequest
from researchviewer.protocols import WorkflowRef

logger = get_logger(__name__)

CHAT_TASK = "chat_with_document"
RESEARCH_TASK = "follow_up_research"


def parse_sse_line(line: str) -> dict[str, Any] | None:
    """Decode one ``data: {...}`` line; anything else yields None."""

    if not line.startswith("data:"):
        return None
    body = line[len("data:"):].strip()
    if not body or body == "[DONE]":
        return None
    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        logger.debug("Skipping malformed stream line", extra={"line": body[:200]})
        return None
    return payload if isinstance(payload, dict) else None


async def _next_line(lines: AsyncIterator[str]) -> str | None:
    try:
        return await lines.__anext__()
    except StopAsyncIteration:
        return None


class ResearchApiClient:
    """httpx-based implementation of the submitter, stream opener and research submitter."""

    def __init__(self, settings: Settings, *, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=settings.api_base_url.rstrip("/"),
            timeout=httpx.Timeout(settings.http_timeout_s),
            headers=self._headers(settings),
        )

    @staticmethod
    def _headers(settings: Settings) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if settings.api_key:
            headers["Authorization"] = f"Bearer {settings.api_key}"
        return headers

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ResearchApiClient":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    def _execute_body(self, task: str, data: dict[str, Any]) -> dict[str, Any]:
        body: dict[str, Any] = {
            "type": "conversation",
            "interaction": self._settings.interaction_name,
            "data": {"task": task, **data},
            "config": {"model": self._settings.model},
        }
        if self._settings.environment_id:
            body["config"]["environment"] = self._settings.environment_id
        return body

    async def _execute(self, task: str, data: dict[str, Any]) -> dict[str, Any]:
        try:
            resp = await self._client.post("/execute/async", json=self._execute_body(task, data))
            resp.raise_for_status()
            payload = resp.json()
        except httpx.HTTPStatusError as e:
            raise TransportError(f"Execute request failed: HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise TransportError(f"Execute request failed: {e}") from e
        if not isinstance(payload, dict):
            raise TransportError("Execute response is not a JSON object")
        return payload

    async def submit_question(
        self,
        *,
        document_id: str,
        question: str,
        conversation_history: str,
    ) -> WorkflowRef:
        payload = await self._execute(
            CHAT_TASK,
            {
                "document_id": document_id,
                "question": question,
                "conversation_history": conversation_history,
            },
        )
        workflow_id = payload.get("workflowId")
        run_id = payload.get("runId")
        if not workflow_id or not run_id:
            raise TransportError("Execute response is missing workflowId/runId")
        logger.info("Chat job started", extra={"workflow_id": workflow_id, "run_id": run_id})
        return WorkflowRef(workflow_id=str(workflow_id), run_id=str(run_id))

    async def submit_research(self, request: FollowUpRequest) -> None:
        payload = await self._execute(RESEARCH_TASK, request.to_payload())
        logger.info(
            "Follow-up research started",
            extra={"workflow_id": payload.get("workflowId"), "parent": request.parent_document_id},
        )

    async def open_stream(
        self,
        workflow_id: str,
        run_id: str,
        token: CancellationToken,
    ) -> AsyncIterator[StreamEvent]:
        """Yield the job's events until a terminal one, the end of the stream, or cancellation."""

        url = f"/workflows/runs/{workflow_id}/{run_id}/stream"
        try:
            async with self._client.stream(
                "GET",
                url,
                headers={"Accept": "text/event-stream"},
                timeout=httpx.Timeout(self._settings.http_timeout_s, read=None),
            ) as resp:
                if resp.status_code >= 400:
                    raise TransportError(f"Stream request failed: HTTP {resp.status_code}")
                lines = resp.aiter_lines()
                while not token.cancelled:
                    try:
                        line = await token.race(_next_line(lines))
                    except asyncio.CancelledError:
                        if token.cancelled:
                            return
                        raise
                    if line is None:
                        return
                    payload = parse_sse_line(line)
                    if payload is None:
                        continue
                    event = StreamEvent.from_payload(payload)
                    yield event
                    if event.is_terminal:
                        return
        except httpx.HTTPError as e:
            raise TransportError(f"Stream failed: {e}") from e
