from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer
import uvicorn

from jobportal.api.app import create_app
from jobportal.config import get_settings
from jobportal.core.reconciler import ReviewReconciler
from jobportal.core.scheduler import ReviewScheduler
from jobportal.core.stats import collect_stats
from jobportal.db.init import init_database
from jobportal.db.repositories import Repository
from jobportal.db.seed import import_job_postings_file
from jobportal.db.session import SessionLocal
from jobportal.errors import PortalError
from jobportal.llm.review_client import AIReviewClient
from jobportal.logging_config import configure_logging

app = typer.Typer(help="Job portal review pipeline CLI")
jobs_app = typer.Typer(help="Job posting registry commands")
review_app = typer.Typer(help="AI screening and human review commands")

app.add_typer(jobs_app, name="jobs")
app.add_typer(review_app, name="review")

_INITIALIZED = False


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


def _fail(exc: PortalError) -> None:
    typer.echo(json.dumps({"error": str(exc)}, indent=2), err=True)
    raise typer.Exit(code=1)


@app.command("init")
def init_cmd() -> None:
    """Create the data directories and the document table."""
    configure_logging()
    result = init_database()
    typer.echo(json.dumps({"ok": True, **result}, indent=2))


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
) -> None:
    configure_logging()
    settings = get_settings()
    try:
        settings.ensure_credentials()
    except PortalError as exc:
        _fail(exc)
    ensure_initialized()
    uvicorn.run(create_app(settings), host=host or settings.app_host, port=port or settings.app_port)


@jobs_app.command("import")
def jobs_import(file: Path = typer.Option(..., "--file", exists=True, readable=True)) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            ids = import_job_postings_file(db, file)
        except PortalError as exc:
            _fail(exc)
    typer.echo(json.dumps({"imported": ids}, indent=2))


@jobs_app.command("list")
def jobs_list() -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        jobs = Repository(db).list_job_postings()
        typer.echo(
            json.dumps(
                [
                    {"id": job.id, "title": job.title, "department": job.department}
                    for job in jobs
                ],
                indent=2,
            )
        )


@review_app.command("tick")
def review_tick() -> None:
    """Run one review pass over every unreviewed application."""
    configure_logging()
    settings = get_settings()
    try:
        settings.ensure_credentials()
    except PortalError as exc:
        _fail(exc)
    ensure_initialized()
    scheduler = ReviewScheduler(AIReviewClient(settings), settings=settings)
    report = asyncio.run(scheduler.tick())
    typer.echo(json.dumps(report.as_dict(), indent=2))


@review_app.command("stats")
def review_stats() -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        typer.echo(json.dumps(collect_stats(db).model_dump(by_alias=True), indent=2))


@review_app.command("finalize")
def review_finalize(
    application_id: str = typer.Option(..., "--application-id"),
    decision: str = typer.Option(..., "--decision"),
    reviewer_id: str = typer.Option(..., "--reviewer-id"),
    reasoning: str | None = typer.Option(None, "--reasoning"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            outcome = ReviewReconciler(db).finalize(
                application_id,
                decision=decision,
                reviewer_id=reviewer_id,
                reasoning_log=reasoning,
            )
        except PortalError as exc:
            _fail(exc)
        typer.echo(json.dumps(outcome.model_dump(by_alias=True), indent=2))
