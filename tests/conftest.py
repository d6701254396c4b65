from __future__ import annotations

import os
import tempfile
from io import BytesIO

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AI_API_KEY"] = "test-key"
os.environ["APP_ENV"] = "test"
os.environ["REVIEW_SCHEDULER_ENABLED"] = "false"
os.environ["DATA_DIR"] = tempfile.mkdtemp(prefix="jobportal-data-")
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="jobportal-uploads-")

import docx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from jobportal.api.app import create_app  # noqa: E402
from jobportal.core.clock import format_timestamp  # noqa: E402
from jobportal.db.base import Base  # noqa: E402
from jobportal.db.repositories import Repository  # noqa: E402
from jobportal.db.session import SessionLocal, engine  # noqa: E402
from jobportal.types import Application, JobPosting, Qualifications, ReviewDraft  # noqa: E402


@pytest.fixture(autouse=True)
def reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


class FakeReviewer:
    def __init__(self, decision: str = "Qualified", *, error: Exception | None = None):
        self.decision = decision
        self.error = error
        self.calls: list[list[str]] = []

    async def generate_review(self, segments: list[str], schema: dict | None = None) -> ReviewDraft:
        self.calls.append(segments)
        if self.error is not None:
            raise self.error
        return ReviewDraft(
            review_type="AI_screen",
            decision=self.decision,
            review_timestamp="2000-01-01T00:00:00Z",
            reviewer_id="model-made-this-up",
            reasoning_log=f"Screened as {self.decision}",
            is_final_decision=False,
        )


@pytest.fixture
def fake_reviewer() -> FakeReviewer:
    return FakeReviewer()


@pytest.fixture
def make_reviewer():
    return FakeReviewer


def make_job_posting(title: str = "Office Assistant III") -> JobPosting:
    return JobPosting(
        title=title,
        department="Department of Education",
        summary="Performs clerical work",
        duties=["Answers phones", "Maintains filing systems"],
        qualifications=Qualifications(
            education="High school diploma",
            experience_details="Clerical experience",
            general_experience_years=2,
            specialized_experience_years=1,
            license_or_certification_required=False,
            total_years=3,
        ),
        salary="$3,500/month",
        location="Honolulu",
    )


@pytest.fixture
def job_id() -> str:
    with SessionLocal() as db:
        return Repository(db).create_job_posting(make_job_posting())


@pytest.fixture
def create_application():
    def _create(job_id: str, *, applicant_id: str = "applicant-1", current_status: bool = False) -> str:
        with SessionLocal() as db:
            return Repository(db).create_application(
                Application(
                    applicant_id=applicant_id,
                    job_id=job_id,
                    submission_date=format_timestamp(),
                    question1="Five years of filing",
                    question2="Yes",
                    question3="Immediately",
                    resume_text="Clerk at a law office, 2018-2024",
                    current_status=current_status,
                )
            )

    return _create


def build_pdf(text: str) -> bytes:
    stream = f"BT /F1 18 Tf 72 720 Td ({text}) Tj ET".encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R "
        b"/Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref_offset = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_offset)
    return bytes(out)


def build_docx(*paragraphs: str) -> bytes:
    document = docx.Document()
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)
    buffer = BytesIO()
    document.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def pdf_resume() -> bytes:
    return build_pdf("Resume of a seasoned clerk")


@pytest.fixture
def docx_resume() -> bytes:
    return build_docx("Resume of a seasoned clerk", "Filing and records management")


@pytest.fixture
def client(fake_reviewer):
    with TestClient(create_app(review_client=fake_reviewer)) as test_client:
        yield test_client


@pytest.fixture
def blank_docx() -> bytes:
    return build_docx()
