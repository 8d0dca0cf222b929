"""Stream handles.

Each chat turn gets a fresh :class:`StreamHandle`. The consumer loop below turns whatever the
streaming collaborator does (yield events, end, raise) into a sequence that ends with exactly one
terminal event, unless the handle is cancelled first, in which case nothing more is delivered.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable

from researchviewer.core.concurrency import CancellationToken
from researchviewer.events import StreamEvent
from researchviewer.logging import get_logger
from researchviewer.protocols import StreamOpener

logger = get_logger(__name__)

EventSink = Callable[["StreamHandle", StreamEvent], None]


def new_turn_id() -> str:
    return f"turn-{uuid.uuid4().hex[:8]}"


@dataclass(eq=False)
class StreamHandle:
    """The live, cancellable connection delivering one conversation turn's answer."""

    workflow_id: str
    run_id: str
    doc_id: str
    turn_id: str = field(default_factory=new_turn_id)
    token: CancellationToken = field(default_factory=CancellationToken)
    answer_received: bool = False
    terminal_received: bool = False
    task: asyncio.Task[Any] | None = None

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    @property
    def live(self) -> bool:
        return not self.token.cancelled and not self.terminal_received

    def cancel(self) -> None:
        """Cancel synchronously; no event is delivered afterwards."""

        self.token.cancel()
        if self.task is not None and not self.task.done():
            self.task.cancel()


async def consume_stream(handle: StreamHandle, opener: StreamOpener, sink: EventSink) -> None:
    """Feed the events of ``handle``'s stream into ``sink``.

    Exhaustion without a terminal event is reported as completion, a collaborator exception as an
    error event.
    """

    try:
        async for event in opener.open_stream(handle.workflow_id, handle.run_id, handle.token):
            if handle.cancelled:
                return
            sink(handle, event)
            if event.is_terminal:
                return
    except asyncio.CancelledError:
        if handle.cancelled:
            logger.debug("Stream consumer cancelled", extra={"turn": handle.turn_id})
            return
        raise
    except Exception as e:
        if handle.cancelled:
            return
        logger.warning("Stream failed", extra={"turn": handle.turn_id, "error": str(e)})
        sink(handle, StreamEvent.error(str(e)))
        return

    if not handle.cancelled and not handle.terminal_received:
        sink(handle, StreamEvent.complete())
