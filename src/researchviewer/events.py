"""Stream event model.

A chat turn's answer arrives as a sequence of events from the backend workflow. Only three kinds
matter to the transcript: the answer itself and the two terminal signals (completion, error).
Everything else the backend emits is an intermediate update.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel


class StreamEventType(str, Enum):
    """Event categories of a streamed answer."""

    UPDATE = "update"
    ANSWER = "answer"
    COMPLETE = "complete"
    ERROR = "error"


_TERMINAL = frozenset({StreamEventType.COMPLETE, StreamEventType.ERROR})


class StreamEvent(BaseModel):
    """A single event delivered on a stream handle."""

    type: StreamEventType
    message: str | None = None
    raw_type: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.type in _TERMINAL

    @property
    def carries_answer(self) -> bool:
        return self.type is StreamEventType.ANSWER and bool(self.message)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "StreamEvent":
        """Build an event from a backend payload like ``{"type": "answer", "message": "..."}``.

        Unknown types are kept as intermediate updates with the received tag in ``raw_type``.
        """

        raw = str(payload.get("type") or "")
        try:
            kind = StreamEventType(raw)
        except ValueError:
            kind = StreamEventType.UPDATE
        message = payload.get("message")
        if message is not None and not isinstance(message, str):
            message = str(message)
        return cls(type=kind, message=message, raw_type=raw or None)

    @classmethod
    def answer(cls, message: str) -> "StreamEvent":
        return cls(type=StreamEventType.ANSWER, message=message, raw_type="answer")

    @classmethod
    def complete(cls) -> "StreamEvent":
        return cls(type=StreamEventType.COMPLETE, raw_type="complete")

    @classmethod
    def error(cls, message: str | None = None) -> "StreamEvent":
        return cls(type=StreamEventType.ERROR, message=message, raw_type="error")
