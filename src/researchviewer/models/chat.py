"""Chat transcript models."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["user", "assistant"]


class ChatMessage(BaseModel):
    """A single message of the transcript of the open document."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str
    timestamp: datetime = Field(default_factory=datetime.now)

    @property
    def speaker(self) -> str:
        return "User" if self.role == "user" else "Assistant"

    @property
    def display_time(self) -> str:
        """Clock time as shown under a chat bubble, e.g. ``9:05 PM``."""

        return self.timestamp.strftime("%I:%M %p").lstrip("0")
