from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jobportal.api.routes import router as api_router
from jobportal.config import Settings, get_settings
from jobportal.core.scheduler import ReviewScheduler
from jobportal.db.init import init_database
from jobportal.errors import PortalError
from jobportal.llm.review_client import AIReviewClient

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    review_client: AIReviewClient | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    review_client = review_client or AIReviewClient(settings)

    app = FastAPI(title=settings.app_name)
    app.state.settings = settings
    app.state.review_client = review_client
    app.state.scheduler = ReviewScheduler(review_client, settings=settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list or ["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.exception_handler(PortalError)
    async def _portal_error(request: Request, exc: PortalError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse({"error": str(exc)}, status_code=exc.status_code)

    @app.on_event("startup")
    async def _startup() -> None:
        settings.ensure_credentials()
        init_database()
        if settings.review_scheduler_enabled:
            app.state.scheduler.start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await app.state.scheduler.stop()

    @app.get("/health")
    def health() -> JSONResponse:
        return JSONResponse({"status": "ok", "scheduler": app.state.scheduler.running})

    app.include_router(api_router)
    return app
