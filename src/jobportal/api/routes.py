from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from jobportal.api.deps import get_app_settings, get_db, get_review_client
from jobportal.api.schemas import (
    AITextImageRequest,
    AITextRequest,
    AITextResponse,
    FinalizeRequest,
    FinalizeResponse,
    JobListingsRequest,
    JobPostingsCreatedResponse,
    SubmitApplicationResponse,
)
from jobportal.config import Settings
from jobportal.core.extraction import UploadedDocument
from jobportal.core.reconciler import ReviewReconciler
from jobportal.core.stats import collect_stats
from jobportal.core.submission import submit_application
from jobportal.db.repositories import Repository
from jobportal.db.seed import import_job_postings
from jobportal.errors import JobLookupFailed
from jobportal.llm.review_client import AIReviewClient

router = APIRouter(prefix="/api", tags=["api"])


async def _read_upload(upload: UploadFile | None) -> UploadedDocument | None:
    if upload is None or not upload.filename:
        return None
    return UploadedDocument(filename=upload.filename, content=await upload.read())


@router.post("/jobListings")
def job_listings(
    payload: JobListingsRequest | None = Body(default=None),
    db: Session = Depends(get_db),
) -> Any:
    repo = Repository(db)
    if payload is not None and payload.job_id:
        job = repo.get_job_posting(payload.job_id)
        if job is None:
            raise JobLookupFailed("Job not found")
        return job.model_dump(by_alias=True)
    return [job.model_dump(by_alias=True) for job in repo.list_job_postings()]


@router.post("/jobPostings", response_model=JobPostingsCreatedResponse)
def create_job_postings(payload: Any = Body(...), db: Session = Depends(get_db)) -> JobPostingsCreatedResponse:
    return JobPostingsCreatedResponse(ids=import_job_postings(db, payload))


@router.post("/submitApplication", response_model=SubmitApplicationResponse)
async def submit_application_route(
    job_id: str = Form("", alias="jobId"),
    applicant_id: str = Form("", alias="applicantId"),
    question1: str = Form(""),
    question2: str = Form(""),
    question3: str = Form(""),
    resume: UploadFile | None = File(None),
    job_application: UploadFile | None = File(None, alias="jobApplication"),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> SubmitApplicationResponse:
    application_id = await submit_application(
        db,
        job_id=job_id,
        applicant_id=applicant_id,
        answers=(question1, question2, question3),
        resume=await _read_upload(resume),
        job_application=await _read_upload(job_application),
        settings=settings,
    )
    return SubmitApplicationResponse(application_id=application_id)


@router.get("/reviewer/applications")
def reviewer_applications(db: Session = Depends(get_db)) -> list[dict[str, Any]]:
    return [application.model_dump(by_alias=True) for application in Repository(db).list_applications()]


@router.get("/reviewer/reviews")
def reviewer_reviews(db: Session = Depends(get_db)) -> list[dict[str, Any]]:
    return [review.model_dump(by_alias=True) for review in Repository(db).list_reviews()]


@router.get("/reviewer/stats")
def reviewer_stats(db: Session = Depends(get_db)) -> dict[str, Any]:
    return collect_stats(db).model_dump(by_alias=True)


@router.put("/reviewer/finalize/{application_id}", response_model=FinalizeResponse)
def finalize_review(
    application_id: str,
    payload: FinalizeRequest | None = Body(default=None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> FinalizeResponse:
    payload = payload or FinalizeRequest()
    outcome = ReviewReconciler(db, settings=settings).finalize(
        application_id,
        decision=payload.decision,
        reviewer_id=payload.reviewer_id,
        reasoning_log=payload.reasoning_log,
    )
    return FinalizeResponse(msg="Review finalized", review=outcome.model_dump(by_alias=True))


@router.put("/reviewer/finalize/{application_id}/quick", response_model=FinalizeResponse)
def quick_confirm_review(
    application_id: str,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> FinalizeResponse:
    outcome = ReviewReconciler(db, settings=settings).quick_confirm(application_id)
    return FinalizeResponse(msg="Review finalized", review=outcome.model_dump(by_alias=True))


@router.post("/ai/text", response_model=AITextResponse)
async def ai_text(
    payload: AITextRequest,
    client: AIReviewClient = Depends(get_review_client),
) -> AITextResponse:
    return AITextResponse(text=await client.generate_text(payload.prompt))


@router.post("/ai/text-image", response_model=AITextResponse)
async def ai_text_image(
    payload: AITextImageRequest,
    client: AIReviewClient = Depends(get_review_client),
) -> AITextResponse:
    return AITextResponse(text=await client.generate_text(payload.prompt, payload.image))
