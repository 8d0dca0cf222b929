"""Follow-up research form.

Holds the free-text context and the segmented modifier choices (one active value per group), and
turns them into a :class:`~researchviewer.models.followup.FollowUpRequest` scoped to the open
document.
"""

from __future__ import annotations

from typing import Callable

from researchviewer.frameworks import framework_defaults
from researchviewer.logging import document_context, get_logger, log_exception
from researchviewer.models.followup import FollowUpRequest
from researchviewer.protocols import Notifier, ResearchSubmitter

logger = get_logger(__name__)

FOLLOWUP_STARTED_MESSAGE = "Follow-up research started"
FOLLOWUP_FAILED_MESSAGE = "Failed to start follow-up research"


class FollowUpComposer:
    """Follow-up form state plus submission."""

    def __init__(
        self,
        document_id: Callable[[], str | None],
        *,
        submitter: ResearchSubmitter,
        notifier: Notifier | None = None,
    ) -> None:
        self._document_id = document_id
        self._submitter = submitter
        self._notifier = notifier
        self._context = ""
        self._choices: dict[str, str] = {}
        self._submitting = False

    @property
    def context(self) -> str:
        return self._context

    @property
    def char_count(self) -> int:
        return len(self._context)

    @property
    def can_submit(self) -> bool:
        return bool(self._context.strip()) and not self._submitting

    def set_context(self, text: str) -> None:
        self._context = text or ""

    def select(self, group: str, value: str) -> None:
        """Make ``value`` the only active choice of ``group``."""

        if not group or not value:
            return
        self._choices[group] = value

    def modifiers(self) -> dict[str, str]:
        return dict(self._choices)

    def apply_framework_defaults(self, framework: str) -> dict[str, str]:
        """Preselect the modifiers a framework defaults to; returns what was applied."""

        defaults = framework_defaults(framework)
        for group, value in defaults.items():
            self.select(group, value)
        return defaults

    def reset(self) -> None:
        self._context = ""
        self._choices.clear()
        self._submitting = False

    async def submit(self) -> bool:
        """Start follow-up research for the open document.

        Returns:
            True when the backend accepted the request. On success the context text is cleared
            and the modifier choices are kept; on failure the form is left as it was so the user
            can retry.
        """

        context = self._context.strip()
        doc_id = self._document_id()
        if not context or doc_id is None or self._submitting:
            return False

        request = FollowUpRequest(context=context, modifiers=self.modifiers(), parent_document_id=doc_id)
        self._submitting = True
        with document_context(doc_id=doc_id):
            logger.info(
                "Submitting follow-up research",
                extra={"context_len": len(context), "modifiers": request.modifiers},
            )
            try:
                await self._submitter.submit_research(request)
            except Exception:
                log_exception(logger, "Failed to start follow-up research", doc_id=doc_id)
                self._submitting = False
                self._toast(FOLLOWUP_FAILED_MESSAGE)
                return False

        self._submitting = False
        self._context = ""
        self._toast(FOLLOWUP_STARTED_MESSAGE)
        return True

    def _toast(self, message: str) -> None:
        if self._notifier is not None:
            self._notifier.toast(message)
