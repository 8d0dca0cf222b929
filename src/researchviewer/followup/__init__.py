"""Follow-up research requests."""

from __future__ import annotations

from researchviewer.followup.composer import (
    FOLLOWUP_FAILED_MESSAGE,
    FOLLOWUP_STARTED_MESSAGE,
    FollowUpComposer,
)

__all__ = ["FOLLOWUP_FAILED_MESSAGE", "FOLLOWUP_STARTED_MESSAGE", "FollowUpComposer"]
