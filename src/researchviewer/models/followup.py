"""Follow-up research request model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class FollowUpRequest(BaseModel):
    """A derived research request scoped to the currently open document."""

    context: str = Field(min_length=1)
    modifiers: dict[str, str] = Field(default_factory=dict)
    parent_document_id: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "context": self.context,
            "modifiers": dict(self.modifiers),
            "parent_document_id": self.parent_document_id,
        }
