"""Conversational session controller.

Owns the chat state of the open document: the transcript (stored on the
:class:`~researchviewer.models.document.DocumentContext`), the thinking indicator, whether input is
enabled, and the single live :class:`StreamHandle`.

State machine per document::

    IDLE -> AWAITING_SUBMISSION -> STREAMING -> IDLE
                      |                |
                      +--> ERRORED <---+--> IDLE

Any deferred effect (the submission response, every stream event) is applied only if the handle
or submission still belongs to the active document, so a stream that outlives its document can
never write into a stale or newly-opened context.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from researchviewer.chat.stream import StreamHandle, consume_stream, new_turn_id
from researchviewer.core.concurrency import TaskTracker
from researchviewer.events import StreamEvent, StreamEventType
from researchviewer.logging import document_context, get_logger, log_exception
from researchviewer.models.chat import ChatMessage
from researchviewer.models.document import DocumentContext
from researchviewer.protocols import JobSubmitter, StreamOpener

logger = get_logger(__name__)

SUBMISSION_ERROR_MESSAGE = "Sorry, there was an error processing your question."
STREAM_ERROR_MESSAGE = "Sorry, there was an error with the response stream."


class ChatState(str, Enum):
    IDLE = "idle"
    AWAITING_SUBMISSION = "awaiting_submission"
    STREAMING = "streaming"
    ERRORED = "errored"


@dataclass(frozen=True)
class ChatSnapshot:
    """Read-only view of the chat pane at one point in time."""

    messages: tuple[ChatMessage, ...]
    thinking: bool
    input_enabled: bool
    state: ChatState


class ChatView(Protocol):
    def render(self, snapshot: ChatSnapshot) -> None:
        ...


class SessionController:
    """Chat controller-of-record for one :class:`DocumentContext`."""

    def __init__(
        self,
        context: DocumentContext,
        *,
        submitter: JobSubmitter,
        opener: StreamOpener,
        view: ChatView | None = None,
    ) -> None:
        self._context = context
        self._submitter = submitter
        self._opener = opener
        self._view = view
        self._tasks = TaskTracker()

        self._state = ChatState.IDLE
        self._thinking = False
        self._input_enabled = True
        self._active: StreamHandle | None = None
        # Bumped on reset so pending submissions can tell their document went away.
        self._epoch = 0

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def state(self) -> ChatState:
        return self._state

    @property
    def thinking(self) -> bool:
        return self._thinking

    @property
    def input_enabled(self) -> bool:
        return self._input_enabled

    @property
    def active_handle(self) -> StreamHandle | None:
        return self._active

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._context.transcript)

    def snapshot(self) -> ChatSnapshot:
        return ChatSnapshot(
            messages=self.messages,
            thinking=self._thinking,
            input_enabled=self._input_enabled,
            state=self._state,
        )

    # ------------------------------------------------------------------
    # Turn lifecycle
    # ------------------------------------------------------------------

    async def submit_question(self, text: str) -> bool:
        """Ask a question about the open document.

        Returns:
            True when a stream was opened for the question. Blank input is ignored and returns
            False without touching any state; so does a question asked with no open document.
        """

        question = (text or "").strip()
        doc_id = self._context.doc_id
        if not question or doc_id is None:
            return False

        epoch = self._epoch
        turn_id = new_turn_id()
        with document_context(doc_id=doc_id, turn=turn_id):
            self._context.append_message("user", question)
            self._input_enabled = False
            self._thinking = True
            self._transition(ChatState.AWAITING_SUBMISSION)
            self._notify()

            history = self._context.conversation_history()
            logger.info("Submitting question", extra={"question_len": len(question)})
            try:
                ref = await self._submitter.submit_question(
                    document_id=doc_id,
                    question=question,
                    conversation_history=history,
                )
            except asyncio.CancelledError:
                raise
            except Exception:
                log_exception(logger, "Chat submission failed", doc_id=doc_id)
                if not self._is_current(doc_id, epoch):
                    return False
                self._fail(SUBMISSION_ERROR_MESSAGE)
                return False

            if not self._is_current(doc_id, epoch):
                logger.info("Document changed during submission; dropping response")
                return False

            self._open_stream(
                StreamHandle(
                    workflow_id=ref.workflow_id,
                    run_id=ref.run_id,
                    doc_id=doc_id,
                    turn_id=turn_id,
                )
            )
            return True

    def _open_stream(self, handle: StreamHandle) -> None:
        previous = self._active
        if previous is not None and previous.live:
            # Its answer is already in; only the completion signal was outstanding.
            logger.debug("Superseding previous stream", extra={"turn": previous.turn_id})
            previous.cancel()

        self._active = handle
        self._transition(ChatState.STREAMING)
        logger.info(
            "Opening stream",
            extra={"workflow_id": handle.workflow_id, "run_id": handle.run_id, "turn": handle.turn_id},
        )
        handle.task = self._tasks.spawn(
            consume_stream(handle, self._opener, self.handle_event),
            name=f"stream-{handle.turn_id}",
        )

    def handle_event(self, handle: StreamHandle, event: StreamEvent) -> None:
        """Reconcile one stream event against the visible chat state."""

        if not self._accepts(handle):
            logger.debug(
                "Ignoring event from stale stream",
                extra={"turn": handle.turn_id, "event_type": event.type.value},
            )
            return

        with document_context(doc_id=handle.doc_id, turn=handle.turn_id):
            if event.type is StreamEventType.ANSWER:
                if not event.carries_answer or handle.answer_received:
                    return
                handle.answer_received = True
                self._thinking = False
                self._context.append_message("assistant", event.message or "")
                self._input_enabled = True
                self._transition(ChatState.IDLE)
                self._notify()
                return

            if event.type is StreamEventType.COMPLETE:
                handle.terminal_received = True
                self._dispose(handle)
                logger.info("Stream completed")
                if not handle.answer_received:
                    self._fail(STREAM_ERROR_MESSAGE)
                return

            if event.type is StreamEventType.ERROR:
                handle.terminal_received = True
                self._dispose(handle)
                logger.error("Stream error", extra={"error": event.message})
                self._fail(STREAM_ERROR_MESSAGE)
                return

            logger.debug("Stream update", extra={"raw_type": event.raw_type})

    def close_stream(self) -> None:
        """Cancel the active stream, if any. Safe to call at any time."""

        handle, self._active = self._active, None
        if handle is None:
            return
        logger.info("Aborting stream", extra={"turn": handle.turn_id})
        handle.cancel()

    def reset(self) -> None:
        """Forget all chat state; used when the document is closed or swapped."""

        self.close_stream()
        self._epoch += 1
        self._thinking = False
        self._input_enabled = True
        self._state = ChatState.IDLE

    def refresh(self) -> None:
        """Push the current state to the view, e.g. after the transcript was cleared."""

        self._notify()

    async def wait_idle(self) -> None:
        """Wait for every stream consumer spawned so far to finish."""

        await self._tasks.wait_all()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _accepts(self, handle: StreamHandle) -> bool:
        return (
            handle is self._active
            and not handle.cancelled
            and not handle.terminal_received
            and handle.doc_id == self._context.doc_id
        )

    def _is_current(self, doc_id: str, epoch: int) -> bool:
        return self._epoch == epoch and self._context.doc_id == doc_id

    def _dispose(self, handle: StreamHandle) -> None:
        if self._active is handle:
            self._active = None

    def _fail(self, message: str) -> None:
        self._thinking = False
        self._context.append_message("assistant", message)
        self._input_enabled = True
        self._transition(ChatState.ERRORED)
        self._notify()
        self._transition(ChatState.IDLE)

    def _transition(self, new_state: ChatState) -> None:
        if new_state is not self._state:
            logger.debug("Chat state %s -> %s", self._state.value, new_state.value)
        self._state = new_state

    def _notify(self) -> None:
        if self._view is None:
            return
        try:
            self._view.render(self.snapshot())
        except Exception:
            log_exception(logger, "Chat view failed to render")
