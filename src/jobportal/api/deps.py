from __future__ import annotations

from collections.abc import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from jobportal.config import Settings
from jobportal.db.session import get_db_session
from jobportal.llm.review_client import AIReviewClient


def get_db() -> Generator[Session, None, None]:
    yield from get_db_session()


def get_review_client(request: Request) -> AIReviewClient:
    return request.app.state.review_client


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
