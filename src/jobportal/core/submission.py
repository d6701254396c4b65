from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from jobportal.config import Settings, get_settings
from jobportal.core.clock import format_timestamp
from jobportal.core.extraction import UploadedDocument, extract_uploaded_document_async
from jobportal.db.repositories import Repository
from jobportal.errors import InvalidRequest
from jobportal.types import EMPTY_DOCUMENT_TEXT, NO_DOCUMENT_TEXT, Application

logger = logging.getLogger(__name__)


async def submit_application(
    session: Session,
    *,
    job_id: str,
    applicant_id: str,
    answers: tuple[str, str, str] = ("", "", ""),
    resume: UploadedDocument | None,
    job_application: UploadedDocument | None = None,
    settings: Settings | None = None,
) -> str:
    """Extract the uploaded documents and store a new unreviewed application."""
    settings = settings or get_settings()
    if not job_id or not job_id.strip():
        raise InvalidRequest("jobId is required")
    if not applicant_id or not applicant_id.strip():
        raise InvalidRequest("applicantId is required")
    if resume is None or not resume.content:
        raise InvalidRequest("No resume uploaded.")

    resume_text = await extract_uploaded_document_async(resume, settings.upload_dir)
    job_application_text = NO_DOCUMENT_TEXT
    if job_application is not None and job_application.content:
        job_application_text = await extract_uploaded_document_async(job_application, settings.upload_dir)

    question1, question2, question3 = answers
    application = Application(
        applicant_id=applicant_id.strip(),
        job_id=job_id.strip(),
        submission_date=format_timestamp(),
        question1=question1,
        question2=question2,
        question3=question3,
        resume_text=resume_text or EMPTY_DOCUMENT_TEXT,
        job_application_text=job_application_text or EMPTY_DOCUMENT_TEXT,
        current_status=False,
    )
    application_id = Repository(session).create_application(application)
    logger.info("Application %s submitted for job %s", application_id, application.job_id)
    return application_id
