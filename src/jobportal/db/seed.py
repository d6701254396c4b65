from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from sqlalchemy.orm import Session

from jobportal.db.repositories import Repository
from jobportal.errors import InvalidRequest
from jobportal.types import JobPosting


def parse_job_postings(payload: Any) -> list[JobPosting]:
    items = payload if isinstance(payload, list) else [payload]
    postings: list[JobPosting] = []
    for index, item in enumerate(items):
        try:
            postings.append(JobPosting.model_validate(item))
        except ValidationError as exc:
            raise InvalidRequest(f"job posting #{index} is invalid: {exc.errors()[0]['msg']}") from exc
    return postings


def import_job_postings(session: Session, payload: Any) -> list[str]:
    repo = Repository(session)
    return [repo.create_job_posting(posting) for posting in parse_job_postings(payload)]


def import_job_postings_file(session: Session, path: Path) -> list[str]:
    return import_job_postings(session, json.loads(path.read_text(encoding="utf-8")))
