from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from jobportal.config import Settings, get_settings
from jobportal.core.clock import format_timestamp, utc_now
from jobportal.db.repositories import Repository
from jobportal.errors import ApplicationNotFound, InvalidRequest
from jobportal.types import HUMAN_REVIEW_TYPE, ReviewOutcome

logger = logging.getLogger(__name__)

QUICK_CONFIRM_DECISION = "Qualified"
QUICK_CONFIRM_REASONING = "Quick confirmed via dashboard"


class ReviewReconciler:
    """Applies human review decisions on top of whatever the AI wrote."""

    def __init__(
        self,
        session: Session,
        *,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.repo = Repository(session)
        self.clock = clock

    def finalize(
        self,
        application_id: str,
        *,
        decision: str | None,
        reviewer_id: str | None,
        reasoning_log: str | None = None,
    ) -> ReviewOutcome:
        if not decision or not decision.strip():
            raise InvalidRequest("decision is required")
        if not reviewer_id or not reviewer_id.strip():
            raise InvalidRequest("reviewerId is required")

        application = self.repo.get_application(application_id)
        if application is None:
            raise ApplicationNotFound(f"application {application_id} not found")

        # Merged field by field: fields not listed here (e.g. an earlier AI
        # reasoningLog) stay on the record.
        fields: dict[str, Any] = {
            "applicantId": application.applicant_id,
            "jobId": application.job_id,
            "reviewType": HUMAN_REVIEW_TYPE,
            "decision": decision.strip(),
            "reviewerId": reviewer_id.strip(),
            "reviewTimestamp": format_timestamp(self.clock()),
            "isFinalDecision": True,
        }
        if reasoning_log is not None:
            fields["reasoningLog"] = reasoning_log

        outcome = self.repo.finalize_review(application_id, fields)
        logger.info(
            "Application %s finalized decision=%r reviewer=%s",
            application_id,
            outcome.decision,
            outcome.reviewer_id,
        )
        return outcome

    def quick_confirm(self, application_id: str) -> ReviewOutcome:
        return self.finalize(
            application_id,
            decision=QUICK_CONFIRM_DECISION,
            reviewer_id=self.settings.quick_confirm_reviewer_id,
            reasoning_log=QUICK_CONFIRM_REASONING,
        )
