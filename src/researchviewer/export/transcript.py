"""Chat transcript export."""

from __future__ import annotations

import time
from datetime import date
from pathlib import Path
from typing import Sequence

from researchviewer.export.pdf import ExportResult, sanitize_filename
from researchviewer.logging import get_logger, log_exception
from researchviewer.models.chat import ChatMessage
from researchviewer.protocols import Notifier

logger = get_logger(__name__)

EMPTY_TRANSCRIPT_MESSAGE = "No conversation to download yet."
TRANSCRIPT_FAILED_MESSAGE = "Failed to save the conversation."


def format_long_date(day: date) -> str:
    """``October 19, 2026`` style date, independent of the process locale."""

    return f"{day:%B} {day.day}, {day.year}"


def build_transcript_markdown(title: str, messages: Sequence[ChatMessage], *, today: date | None = None) -> str:
    """Serialize the transcript as a markdown document.

    Layout: a ``# Chat with <title>`` header, a date stamp, a rule, then one paragraph per message
    prefixed with a bold role label.
    """

    lines = [
        f"# Chat with {title}\n\n",
        f"Date: {format_long_date(today or date.today())}\n\n",
        "---\n\n",
    ]
    for msg in messages:
        label = "**You**" if msg.role == "user" else "**Assistant**"
        lines.append(f"{label}: {msg.content}\n\n")
    return "".join(lines)


def transcript_filename(title: str, *, timestamp_ms: int | None = None) -> str:
    stamp = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    return f"chat_{sanitize_filename(title)}_{stamp}.md"


class TranscriptExporter:
    """Writes the chat transcript to a downloadable markdown file."""

    def __init__(self, output_dir: Path, *, notifier: Notifier | None = None) -> None:
        self._output_dir = output_dir
        self._notifier = notifier

    def export(self, title: str, messages: Sequence[ChatMessage]) -> ExportResult:
        if not messages:
            if self._notifier is not None:
                self._notifier.alert(EMPTY_TRANSCRIPT_MESSAGE)
            return ExportResult(message=EMPTY_TRANSCRIPT_MESSAGE)

        content = build_transcript_markdown(title, messages)
        path = self._output_dir / transcript_filename(title)
        try:
            self._output_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            log_exception(logger, "Transcript export failed", path=str(path))
            if self._notifier is not None:
                self._notifier.alert(TRANSCRIPT_FAILED_MESSAGE)
            return ExportResult(message=f"{TRANSCRIPT_FAILED_MESSAGE} ({e})")
        logger.info("Transcript exported", extra={"path": str(path), "messages": len(messages)})
        return ExportResult(path=path)
