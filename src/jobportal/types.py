from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt
from pydantic.alias_generators import to_camel

ReviewType = Literal["AI_screen", "Human"]

AI_REVIEW_TYPE: ReviewType = "AI_screen"
HUMAN_REVIEW_TYPE: ReviewType = "Human"

CANONICAL_DECISIONS = ("Qualified", "Not Qualified", "Human Review Requested")
NO_DOCUMENT_TEXT = "No resume uploaded"
EMPTY_DOCUMENT_TEXT = "Uploaded document contained no extractable text"

# Keys of the per-application bookkeeping that never reach the AI prompt.
CLAIM_FIELDS = frozenset({"claimToken", "claimedAt", "reviewAttempts", "lastReviewError"})


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude={"id"})


class Qualifications(CamelModel):
    education: str = ""
    experience_details: str = ""
    general_experience_years: NonNegativeInt = 0
    specialized_experience_years: NonNegativeInt = 0
    license_or_certification_required: bool = False
    total_years: NonNegativeInt = 0


class JobPosting(CamelModel):
    model_config = ConfigDict(extra="allow")

    id: str | None = None
    title: str
    department: str = ""
    summary: str = ""
    duties: list[str] = Field(default_factory=list)
    qualifications: Qualifications = Field(default_factory=Qualifications)
    substitutions: list[str] = Field(default_factory=list)
    other_requirements: list[str] = Field(default_factory=list)
    salary: str = ""
    location: str = ""
    employment_type: str = ""
    opening_date: str = ""
    closing_date: str = ""


class Application(CamelModel):
    id: str | None = None
    applicant_id: str
    job_id: str
    submission_date: str
    question1: str = ""
    question2: str = ""
    question3: str = ""
    resume_text: str = NO_DOCUMENT_TEXT
    job_application_text: str = NO_DOCUMENT_TEXT
    current_status: bool = False
    claim_token: str | None = None
    claimed_at: str | None = None
    review_attempts: int = 0
    last_review_error: str | None = None

    def prompt_payload(self) -> dict[str, Any]:
        """Application content with identifiers and bookkeeping redacted."""
        payload = self.to_document()
        payload.pop("applicantId", None)
        for key in CLAIM_FIELDS:
            payload.pop(key, None)
        return payload


class ReviewDraft(CamelModel):
    """Raw structured output of the AI reviewer, before the scheduler stamps it."""

    applicant_id: str | None = None
    job_id: str | None = None
    review_type: str
    decision: str
    review_timestamp: str | None
    reviewer_id: str | None
    reasoning_log: str
    is_final_decision: bool


class ReviewOutcome(CamelModel):
    id: str | None = None
    applicant_id: str | None = None
    job_id: str | None = None
    review_type: ReviewType
    decision: str
    review_timestamp: str
    reviewer_id: str | None = None
    reasoning_log: str = ""
    is_final_decision: bool = False


class ReviewerStats(CamelModel):
    total_applications: int = 0
    reviewed: int = 0
    per_job_counts: dict[str, int] = Field(default_factory=dict)
    decision_counts: dict[str, int] = Field(default_factory=dict)


class ModelResponse(BaseModel):
    content: str
    raw: dict[str, Any] = Field(default_factory=dict)
