from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, TypeVar
from uuid import uuid4

from pydantic import ValidationError
from sqlalchemy.orm import Session

from jobportal.config import Settings, get_settings
from jobportal.core.clock import format_timestamp, utc_now
from jobportal.db.repositories import Repository
from jobportal.db.session import SessionLocal
from jobportal.db.store import StoredDocument
from jobportal.errors import JobLookupFailed, MalformedApplication, PortalError
from jobportal.llm.prompts import REVIEW_RESPONSE_SCHEMA, build_review_prompt
from jobportal.types import AI_REVIEW_TYPE, Application, JobPosting, ReviewDraft, ReviewOutcome

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Reviewer(Protocol):
    async def generate_review(self, segments: list[str], schema: dict[str, Any] = ...) -> ReviewDraft: ...


@dataclass(slots=True)
class TickReport:
    tick_id: str
    discovered: int = 0
    reviewed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "tick_id": self.tick_id,
            "discovered": self.discovered,
            "reviewed": self.reviewed,
            "skipped": self.skipped,
            "failed": self.failed,
        }


def stamp_ai_review(draft: ReviewDraft, application: Application, now: datetime) -> ReviewOutcome:
    return ReviewOutcome(
        applicant_id=application.applicant_id,
        job_id=application.job_id,
        review_type=AI_REVIEW_TYPE,
        decision=draft.decision,
        review_timestamp=format_timestamp(now),
        reviewer_id=None,
        reasoning_log=draft.reasoning_log,
        is_final_decision=draft.is_final_decision,
    )


class ReviewScheduler:
    """Polls for unreviewed applications and screens each one with the AI reviewer.

    Every ``review_interval_sec`` a new tick starts whether or not earlier
    ticks have finished. Records found in one tick are reviewed concurrently
    and a failure in one record never affects the others; a failed record keeps
    ``currentStatus == false`` and is picked up again by a later tick.

    With ``review_claims_enabled`` a tick must win a compare-and-set claim on
    the application before calling the reviewer, and its result is only
    written while that claim is still held. Without claims, overlapping ticks
    may review the same record and the last completed write wins.

    A stored document that does not validate as an application is a failure
    of that record only.
    """

    def __init__(
        self,
        reviewer: Reviewer,
        *,
        settings: Settings | None = None,
        session_factory: Callable[[], Session] = SessionLocal,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.reviewer = reviewer
        self.settings = settings or get_settings()
        self.session_factory = session_factory
        self.clock = clock
        self._runner: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()
        self._store_lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._runner is not None and not self._runner.done()

    def start(self) -> None:
        if self.running:
            return
        self._runner = asyncio.create_task(self._run_forever(), name="review-scheduler")
        logger.info("Review scheduler started interval=%ss", self.settings.review_interval_sec)

    async def stop(self) -> None:
        if self._runner is not None:
            self._runner.cancel()
            try:
                await self._runner
            except asyncio.CancelledError:
                pass
            self._runner = None
        if self._inflight:
            # In-flight reviews are never cancelled; let them land.
            await asyncio.gather(*list(self._inflight), return_exceptions=True)
        logger.info("Review scheduler stopped")

    async def _run_forever(self) -> None:
        while True:
            await asyncio.sleep(self.settings.review_interval_sec)
            logger.debug("Performing scheduled review check")
            task = asyncio.create_task(self.tick())
            self._inflight.add(task)
            task.add_done_callback(self._tick_finished)

    def _tick_finished(self, task: asyncio.Task) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Review tick failed", exc_info=exc)

    async def tick(self) -> TickReport:
        report = TickReport(tick_id=uuid4().hex)
        pending = await self._store(self._load_pending)
        report.discovered = len(pending)
        if not pending:
            return report

        logger.info("Tick %s found %d unreviewed application(s)", report.tick_id, len(pending))
        results = await asyncio.gather(
            *(self.review_document(doc, tick_id=report.tick_id) for doc in pending),
            return_exceptions=True,
        )
        for doc, result in zip(pending, results):
            if isinstance(result, PortalError):
                report.failed.append(doc.id)
            elif isinstance(result, BaseException):
                logger.error(
                    "Unexpected review failure application_id=%s tick=%s",
                    doc.id,
                    report.tick_id,
                    exc_info=result,
                )
                report.failed.append(doc.id)
            elif result is None:
                report.skipped.append(doc.id)
            else:
                report.reviewed.append(doc.id)
        return report

    async def review_document(self, doc: StoredDocument, *, tick_id: str) -> ReviewOutcome | None:
        try:
            application = Application.model_validate({**doc.data, "id": doc.id})
        except ValidationError as exc:
            fields = ", ".join(".".join(str(part) for part in error["loc"]) for error in exc.errors())
            error = MalformedApplication(f"application {doc.id} is malformed: {fields}")
            logger.warning("Review failed application_id=%s tick=%s error=%s", doc.id, tick_id, error)
            await self._store(self._record_failure, doc.id, str(error), None)
            raise error from exc
        return await self.review_application(application, tick_id=tick_id)

    async def review_application(self, application: Application, *, tick_id: str) -> ReviewOutcome | None:
        application_id = application.id
        claim_token: str | None = None
        if self.settings.review_claims_enabled:
            claim_token = f"{tick_id}:{uuid4().hex}"
            claimed = await self._store(self._claim, application_id, claim_token)
            if not claimed:
                logger.debug("Application %s already claimed or reviewed; skipping", application_id)
                return None

        try:
            job = await self._store(self._lookup_job, application.job_id)
            if job is None:
                raise JobLookupFailed(f"job {application.job_id} not found for application {application_id}")

            draft = await self.reviewer.generate_review(
                build_review_prompt(application, job), REVIEW_RESPONSE_SCHEMA
            )
        except PortalError as exc:
            logger.warning("Review failed application_id=%s tick=%s error=%s", application_id, tick_id, exc)
            await self._store(self._record_failure, application_id, str(exc), claim_token)
            raise
        except Exception as exc:
            await self._store(
                self._record_failure, application_id, f"{type(exc).__name__}: {exc}", claim_token
            )
            raise

        outcome = stamp_ai_review(draft, application, self.clock())
        written = await self._store(self._write_outcome, application_id, outcome, claim_token)
        if not written:
            logger.warning(
                "Discarding stale AI review application_id=%s tick=%s; claim no longer held",
                application_id,
                tick_id,
            )
            return None

        logger.info(
            "Application %s reviewed decision=%r tick=%s", application_id, outcome.decision, tick_id
        )
        return outcome.model_copy(update={"id": application_id})

    async def _store(self, fn: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(self._locked, fn, *args)

    def _locked(self, fn: Callable[..., T], *args: Any) -> T:
        # Store calls run one at a time so a claim's read and write are never
        # interleaved with another tick's.
        with self._store_lock:
            return fn(*args)

    def _load_pending(self) -> list[StoredDocument]:
        with self.session_factory() as db:
            return Repository(db).list_unreviewed_documents(max_attempts=self.settings.review_max_attempts)

    def _claim(self, application_id: str, claim_token: str) -> bool:
        with self.session_factory() as db:
            return Repository(db).claim_application(
                application_id,
                claim_token,
                lease_sec=self.settings.review_claim_lease_sec,
                now=self.clock(),
            )

    def _lookup_job(self, job_id: str) -> JobPosting | None:
        with self.session_factory() as db:
            return Repository(db).get_job_posting(job_id)

    def _write_outcome(self, application_id: str, outcome: ReviewOutcome, claim_token: str | None) -> bool:
        with self.session_factory() as db:
            return Repository(db).record_ai_review(application_id, outcome, claim_token=claim_token)

    def _record_failure(self, application_id: str, error: str, claim_token: str | None) -> None:
        with self.session_factory() as db:
            Repository(db).record_review_failure(application_id, error, claim_token=claim_token)
