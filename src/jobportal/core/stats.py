from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy.orm import Session

from jobportal.db.repositories import Repository
from jobportal.types import ReviewerStats

DECISION_BUCKETS = ("Qualified", "NotQualified", "HumanReviewRequested", "Other")
UNKNOWN_JOB = "unknown"


def classify_decision(decision: Any) -> str:
    text = str(decision or "").lower()
    # "not qualified" also contains "qualif".
    if "qualif" in text and "not" not in text:
        return "Qualified"
    if "not" in text:
        return "NotQualified"
    if "human" in text:
        return "HumanReviewRequested"
    return "Other"


def compute_stats(
    applications: Iterable[Mapping[str, Any]],
    reviews: Iterable[Mapping[str, Any]],
) -> ReviewerStats:
    total = 0
    reviewed = 0
    per_job: Counter[str] = Counter()
    for application in applications:
        total += 1
        if application.get("currentStatus") is True:
            reviewed += 1
        per_job[str(application.get("jobId") or UNKNOWN_JOB)] += 1

    decisions: dict[str, int] = dict.fromkeys(DECISION_BUCKETS, 0)
    for review in reviews:
        decisions[classify_decision(review.get("decision"))] += 1

    return ReviewerStats(
        total_applications=total,
        reviewed=reviewed,
        per_job_counts=dict(per_job),
        decision_counts=decisions,
    )


def collect_stats(session: Session) -> ReviewerStats:
    repo = Repository(session)
    return compute_stats(repo.list_application_documents(), repo.list_review_documents())
