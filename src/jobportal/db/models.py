from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from jobportal.db.base import Base, TimestampMixin

JOB_POSTINGS = "jobPostings"
APPLICATIONS = "applications"
REVIEW_OUTCOMES = "reviewOutcomes"


class Document(TimestampMixin, Base):
    __tablename__ = "documents"

    collection: Mapped[str] = mapped_column(String(80), primary_key=True)
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
