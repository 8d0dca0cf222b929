"""HTTP surfaces: the research backend client and the FastAPI app."""

from __future__ import annotations

from researchviewer.api.client import ResearchApiClient, parse_sse_line

__all__ = ["ResearchApiClient", "parse_sse_line"]
