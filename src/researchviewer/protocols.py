"""Protocols for the external collaborators the viewer depends on."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, AsyncIterator, Protocol, runtime_checkable

if TYPE_CHECKING:  # pragma: no cover
    from bs4 import Tag

    from researchviewer.core.concurrency import CancellationToken
    from researchviewer.events import StreamEvent
    from researchviewer.export.paginator import PageOptions
    from researchviewer.models.followup import FollowUpRequest


@dataclass(frozen=True)
class WorkflowRef:
    """Identifiers of the backend job answering one chat turn."""

    workflow_id: str
    run_id: str


@runtime_checkable
class JobSubmitter(Protocol):
    """Submits a question about a document as an asynchronous backend job."""

    async def submit_question(
        self,
        *,
        document_id: str,
        question: str,
        conversation_history: str,
    ) -> WorkflowRef:
        """Start a job; raise ``TransportError`` on any failure."""
        ...


@runtime_checkable
class StreamOpener(Protocol):
    """Opens the event stream of a running job."""

    def open_stream(
        self,
        workflow_id: str,
        run_id: str,
        token: CancellationToken,
    ) -> AsyncIterator[StreamEvent]:
        """Yield events until a terminal event, exhaustion or cancellation of ``token``."""
        ...


@runtime_checkable
class ResearchSubmitter(Protocol):
    """Starts a follow-up research job."""

    async def submit_research(self, request: FollowUpRequest) -> None:
        """Raise on failure."""
        ...


@runtime_checkable
class Paginator(Protocol):
    """Lays out a styled element tree into pages and saves the result."""

    def ensure_available(self) -> None:
        """Raise ``ExportUnavailableError`` when the layout library is missing."""
        ...

    def save(self, element: Tag, options: PageOptions, path: Path) -> Path:
        """Write the paginated document to ``path`` and return it."""
        ...


@runtime_checkable
class Notifier(Protocol):
    """User-visible notifications."""

    def alert(self, message: str) -> None:
        """Blocking notice."""
        ...

    def toast(self, message: str) -> None:
        """Transient notice."""
        ...
