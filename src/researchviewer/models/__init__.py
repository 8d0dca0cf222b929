"""Pydantic models used across the project."""

from __future__ import annotations

from researchviewer.models.chat import ChatMessage, Role
from researchviewer.models.document import DocumentContext
from researchviewer.models.followup import FollowUpRequest
from researchviewer.models.outline import HeadingLevel, OutlineEntry

__all__ = [
    "ChatMessage",
    "DocumentContext",
    "FollowUpRequest",
    "HeadingLevel",
    "OutlineEntry",
    "Role",
]
