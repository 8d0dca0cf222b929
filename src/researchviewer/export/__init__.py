"""Document and transcript export."""

from __future__ import annotations

from researchviewer.export.paginator import PageOptions, ReportLabPaginator
from researchviewer.export.pdf import DocumentExporter, ExportResult, sanitize_filename
from researchviewer.export.styles import STYLE_TABLE, apply_inline_styles
from researchviewer.export.transcript import (
    TranscriptExporter,
    build_transcript_markdown,
    transcript_filename,
)

__all__ = [
    "DocumentExporter",
    "ExportResult",
    "PageOptions",
    "ReportLabPaginator",
    "STYLE_TABLE",
    "TranscriptExporter",
    "apply_inline_styles",
    "build_transcript_markdown",
    "sanitize_filename",
    "transcript_filename",
]
