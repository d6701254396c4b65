from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest

from jobportal.config import Settings
from jobportal.core.reconciler import ReviewReconciler
from jobportal.core.scheduler import ReviewScheduler
from jobportal.db.repositories import Repository
from jobportal.db.session import SessionLocal
from jobportal.db.store import DocumentStore
from jobportal.errors import ApplicationNotFound, InvalidRequest

FINALIZED_AT = datetime(2024, 6, 11, 9, 30, 0, tzinfo=UTC)


def _reconciler(db) -> ReviewReconciler:
    return ReviewReconciler(db, settings=Settings(ai_api_key="k"), clock=lambda: FINALIZED_AT)


def _review_after_ai(job_id, create_application, reviewer) -> str:
    application_id = create_application(job_id)
    asyncio.run(ReviewScheduler(reviewer, settings=Settings(ai_api_key="k")).tick())
    return application_id


def test_finalize_overrides_ai_decision_and_keeps_reasoning(job_id, create_application, make_reviewer) -> None:
    application_id = _review_after_ai(job_id, create_application, make_reviewer("Not Qualified"))

    with SessionLocal() as db:
        outcome = _reconciler(db).finalize(application_id, decision="Qualified", reviewer_id="reviewer-7")

    assert outcome.review_type == "Human"
    assert outcome.decision == "Qualified"
    assert outcome.reviewer_id == "reviewer-7"
    assert outcome.is_final_decision is True
    assert outcome.review_timestamp == "2024-06-11T09:30:00Z"
    assert outcome.reasoning_log == "Screened as Not Qualified"


def test_finalize_replaces_reasoning_when_given(job_id, create_application, fake_reviewer) -> None:
    application_id = _review_after_ai(job_id, create_application, fake_reviewer)

    with SessionLocal() as db:
        outcome = _reconciler(db).finalize(
            application_id,
            decision="Not Qualified",
            reviewer_id="reviewer-7",
            reasoning_log="Certification missing",
        )

    assert outcome.reasoning_log == "Certification missing"


def test_finalize_before_ai_review_creates_slot(job_id, create_application) -> None:
    application_id = create_application(job_id)

    with SessionLocal() as db:
        outcome = _reconciler(db).finalize(application_id, decision="Qualified", reviewer_id="r1")
        application = Repository(db).get_application(application_id)

    assert outcome.applicant_id == "applicant-1"
    assert outcome.job_id == job_id
    assert outcome.reasoning_log == ""
    assert application.current_status is True


def test_finalize_is_idempotent(job_id, create_application) -> None:
    application_id = create_application(job_id)

    with SessionLocal() as db:
        first = _reconciler(db).finalize(application_id, decision="Qualified", reviewer_id="r1")
        second = _reconciler(db).finalize(application_id, decision="Qualified", reviewer_id="r1")
        reviews = Repository(db).list_reviews()

    assert first == second
    assert len(reviews) == 1


@pytest.mark.parametrize(
    ("decision", "reviewer_id"),
    [(None, "r1"), ("", "r1"), ("   ", "r1"), ("Qualified", None), ("Qualified", "")],
)
def test_finalize_requires_decision_and_reviewer(job_id, create_application, decision, reviewer_id) -> None:
    application_id = create_application(job_id)

    with SessionLocal() as db:
        with pytest.raises(InvalidRequest):
            _reconciler(db).finalize(application_id, decision=decision, reviewer_id=reviewer_id)
        assert Repository(db).get_review(application_id) is None
        assert Repository(db).get_application(application_id).current_status is False


def test_finalize_unknown_application(job_id) -> None:
    with SessionLocal() as db:
        with pytest.raises(ApplicationNotFound):
            _reconciler(db).finalize("missing", decision="Qualified", reviewer_id="r1")
        assert DocumentStore(db).all("reviewOutcomes") == []


def test_quick_confirm_uses_fixed_reviewer(job_id, create_application, make_reviewer) -> None:
    application_id = _review_after_ai(job_id, create_application, make_reviewer("Human Review Requested"))

    with SessionLocal() as db:
        outcome = _reconciler(db).quick_confirm(application_id)

    assert outcome.decision == "Qualified"
    assert outcome.reviewer_id == "quick-confirm"
    assert outcome.reasoning_log == "Quick confirmed via dashboard"
    assert outcome.review_type == "Human"
    assert outcome.is_final_decision is True
