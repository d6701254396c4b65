from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from jobportal.core.clock import format_timestamp, parse_timestamp, utc_now
from jobportal.db.models import APPLICATIONS, JOB_POSTINGS, REVIEW_OUTCOMES
from jobportal.db.store import DocumentStore, StoredDocument
from jobportal.errors import ApplicationNotFound
from jobportal.types import Application, JobPosting, ReviewOutcome


def _job(doc: StoredDocument) -> JobPosting:
    return JobPosting.model_validate({**doc.data, "id": doc.id})


def _application(doc: StoredDocument) -> Application:
    return Application.model_validate({**doc.data, "id": doc.id})


def _review(doc: StoredDocument) -> ReviewOutcome:
    return ReviewOutcome.model_validate({**doc.data, "id": doc.id})


def review_attempts(data: dict[str, Any]) -> int:
    value = data.get("reviewAttempts")
    return value if isinstance(value, int) and not isinstance(value, bool) else 0


def claim_is_live(data: dict[str, Any], *, now: datetime, lease_sec: int) -> bool:
    if not data.get("claimToken"):
        return False
    claimed_at = data.get("claimedAt")
    if not claimed_at or lease_sec <= 0:
        return True
    try:
        return parse_timestamp(claimed_at) + timedelta(seconds=lease_sec) > now
    except (TypeError, ValueError):
        return False


class Repository:
    def __init__(self, session: Session):
        self.session = session
        self.store = DocumentStore(session)

    # Job postings

    def create_job_posting(self, posting: JobPosting) -> str:
        job_id = self.store.add(JOB_POSTINGS, posting.to_document())
        self.session.commit()
        return job_id

    def get_job_posting(self, job_id: str) -> JobPosting | None:
        doc = self.store.get(JOB_POSTINGS, job_id)
        return _job(doc) if doc else None

    def list_job_postings(self) -> list[JobPosting]:
        return [_job(doc) for doc in self.store.all(JOB_POSTINGS)]

    # Applications

    def create_application(self, application: Application) -> str:
        application_id = self.store.add(APPLICATIONS, application.to_document())
        self.session.commit()
        return application_id

    def get_application(self, application_id: str) -> Application | None:
        doc = self.store.get(APPLICATIONS, application_id)
        return _application(doc) if doc else None

    def list_applications(self) -> list[Application]:
        return [_application(doc) for doc in self.store.all(APPLICATIONS)]

    def list_application_documents(self) -> list[dict[str, Any]]:
        return [{**doc.data, "id": doc.id} for doc in self.store.all(APPLICATIONS)]

    def list_unreviewed_documents(self, *, max_attempts: int = 0) -> list[StoredDocument]:
        """Pending application documents, unvalidated so one bad record cannot hide the rest."""
        pending = self.store.where(APPLICATIONS, "currentStatus", False)
        if max_attempts > 0:
            pending = [doc for doc in pending if review_attempts(doc.data) < max_attempts]
        return pending

    def claim_application(
        self,
        application_id: str,
        claim_token: str,
        *,
        lease_sec: int,
        now: datetime | None = None,
    ) -> bool:
        now = now or utc_now()

        def claimable(data: dict[str, Any]) -> bool:
            return data.get("currentStatus") is False and not claim_is_live(data, now=now, lease_sec=lease_sec)

        claimed = self.store.compare_and_update(
            APPLICATIONS,
            application_id,
            claimable,
            {"claimToken": claim_token, "claimedAt": format_timestamp(now)},
        )
        self.session.commit()
        return claimed

    def record_review_failure(self, application_id: str, error: str, *, claim_token: str | None = None) -> None:
        """Count a failed attempt and give the claim back for the next tick."""
        doc = self.store.get(APPLICATIONS, application_id)
        if doc is None:
            return
        fields: dict[str, Any] = {
            "reviewAttempts": review_attempts(doc.data) + 1,
            "lastReviewError": error,
        }
        if claim_token is not None and doc.data.get("claimToken") == claim_token:
            fields.update({"claimToken": None, "claimedAt": None})
        self.store.update(APPLICATIONS, application_id, fields)
        self.session.commit()

    # Review outcomes

    def get_review(self, application_id: str) -> ReviewOutcome | None:
        doc = self.store.get(REVIEW_OUTCOMES, application_id)
        return _review(doc) if doc else None

    def list_reviews(self) -> list[ReviewOutcome]:
        return [_review(doc) for doc in self.store.all(REVIEW_OUTCOMES)]

    def list_review_documents(self) -> list[dict[str, Any]]:
        return [{**doc.data, "id": doc.id} for doc in self.store.all(REVIEW_OUTCOMES)]

    def record_ai_review(
        self,
        application_id: str,
        outcome: ReviewOutcome,
        *,
        claim_token: str | None = None,
    ) -> bool:
        """Replace the review slot and mark the application reviewed.

        With a claim token the write only lands while that token is still the
        application's claim; a finalize or a newer claim makes it stale.
        """
        if claim_token is not None:
            doc = self.store.get(APPLICATIONS, application_id)
            if doc is None or doc.data.get("claimToken") != claim_token or doc.data.get("currentStatus"):
                self.session.rollback()
                return False

        self.store.set(REVIEW_OUTCOMES, application_id, outcome.to_document())
        self.store.update(
            APPLICATIONS,
            application_id,
            {"currentStatus": True, "claimToken": None, "claimedAt": None, "lastReviewError": None},
        )
        self.session.commit()
        return True

    def finalize_review(self, application_id: str, fields: dict[str, Any]) -> ReviewOutcome:
        if self.store.get(APPLICATIONS, application_id) is None:
            raise ApplicationNotFound(f"application {application_id} not found")

        merged = self.store.set(REVIEW_OUTCOMES, application_id, fields, merge=True)
        self.store.update(
            APPLICATIONS,
            application_id,
            {"currentStatus": True, "claimToken": None, "claimedAt": None},
        )
        self.session.commit()
        return ReviewOutcome.model_validate({**merged, "id": application_id})
