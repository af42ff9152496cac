# main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from talentflow.client import TalentFlowClient
from talentflow.config import Settings, get_settings
from talentflow.db import open_storage
from talentflow.errors import DuplicateKey, NotFound, TransientFailure, ValidationError
from talentflow.routers import assessments, candidates, health, jobs
from talentflow.services.seed_service import SeedInitializer


logger = logging.getLogger(__name__)


def _error_handler(status_code: int):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        body: dict = {"detail": str(exc)}
        if isinstance(exc, ValidationError) and exc.errors:
            body["errors"] = exc.errors
        return JSONResponse(status_code=status_code, content=body)

    return handler


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        storage = await open_storage(settings)
        client = TalentFlowClient.from_settings(storage, settings)
        report = await SeedInitializer.from_settings(client.mutations, settings).ensure_seeded()
        logger.info("startup store=%s durable=%s seeded=%s", settings.store_name, storage.durable, report.seeded)
        app.state.storage = storage
        app.state.client = client
        try:
            yield
        finally:
            await storage.close()

    application = FastAPI(
        title=settings.app_name,
        version=settings.version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.add_exception_handler(NotFound, _error_handler(status.HTTP_404_NOT_FOUND))
    application.add_exception_handler(ValidationError, _error_handler(status.HTTP_422_UNPROCESSABLE_ENTITY))
    application.add_exception_handler(TransientFailure, _error_handler(status.HTTP_503_SERVICE_UNAVAILABLE))
    application.add_exception_handler(DuplicateKey, _error_handler(status.HTTP_500_INTERNAL_SERVER_ERROR))

    # Health endpoints (do not depend on API_PREFIX)
    application.include_router(health.router)

    application.include_router(jobs.router, prefix=settings.api_prefix)
    application.include_router(candidates.router, prefix=settings.api_prefix)
    application.include_router(assessments.router, prefix=settings.api_prefix)
    return application


app = create_app()
