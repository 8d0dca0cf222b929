"""Core async primitives."""

from __future__ import annotations

from researchviewer.core.concurrency import CancellationToken, TaskTracker

__all__ = ["CancellationToken", "TaskTracker"]
