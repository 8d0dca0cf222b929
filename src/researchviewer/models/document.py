"""Document context model."""

from __future__ import annotations

from dataclasses import dataclass, field

from researchviewer.models.chat import ChatMessage, Role
from researchviewer.models.outline import OutlineEntry


@dataclass
class DocumentContext:
    """The single currently-open document.

    Owned by one viewer; other components receive it read-only or go through the viewer's
    methods. ``transcript`` is append-only while the document stays open.
    """

    doc_id: str | None = None
    title: str = ""
    markup: str = ""
    outline: list[OutlineEntry] = field(default_factory=list)
    transcript: list[ChatMessage] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.doc_id is not None

    def append_message(self, role: Role, content: str) -> ChatMessage:
        """Append a message to the transcript and return it."""

        message = ChatMessage(role=role, content=content)
        self.transcript.append(message)
        return message

    def conversation_history(self) -> str:
        """Flatten the transcript into ``Speaker: content`` lines."""

        return "\n".join(f"{m.speaker}: {m.content}" for m in self.transcript)

    def close(self) -> None:
        """Clear every field."""

        self.doc_id = None
        self.title = ""
        self.markup = ""
        self.outline = []
        self.transcript = []
