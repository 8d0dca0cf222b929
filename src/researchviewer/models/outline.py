"""Outline models."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

HeadingLevel = Literal[1, 2, 3]


class OutlineEntry(BaseModel):
    """One section heading of a document.

    ``anchor_id`` is the addressable id carried by the rendered heading element; it is unique
    within one outline.
    """

    model_config = ConfigDict(frozen=True)

    level: HeadingLevel
    text: str
    anchor_id: str
