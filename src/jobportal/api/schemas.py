from __future__ import annotations

from pydantic import Field

from jobportal.types import CamelModel


class JobListingsRequest(CamelModel):
    job_id: str | None = None


class JobPostingsCreatedResponse(CamelModel):
    ids: list[str] = Field(default_factory=list)


class SubmitApplicationResponse(CamelModel):
    application_id: str


class FinalizeRequest(CamelModel):
    # Optional here so a missing field becomes a 400 from the reconciler, not a 422.
    decision: str | None = None
    reviewer_id: str | None = None
    reasoning_log: str | None = None


class FinalizeResponse(CamelModel):
    msg: str
    review: dict


class AITextRequest(CamelModel):
    prompt: str | None = None


class AITextImageRequest(CamelModel):
    prompt: str | None = None
    image: str | None = None


class AITextResponse(CamelModel):
    text: str
