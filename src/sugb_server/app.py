"""Application factory and CLI entry point.

``create_app()`` builds the FastAPI application with:
  - Lifespan handler that loads the survey schema and wires the form and
    report components once
  - CORS middleware
  - Global exception handlers (ValueError → 404/409/422/400,
    LookupError → 404, anything else → 500)
  - All API routes mounted under ``/api/v1``
  - A ``/health`` endpoint for readiness probes

The ``cli()`` function is the ``sugb-server`` console-script entry point.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from sugb_db.engine import dispose_engine, get_engine, get_session_factory
from sugb_forms.drafts import DraftService
from sugb_forms.engine import FormEngine
from sugb_forms.schema_store import SchemaStore
from sugb_reports.artifacts import LocalArtifactStore, ReportPublisher
from sugb_reports.queue import ReportQueue
from sugb_reports.renderer import SurveyReportRenderer

from sugb_server.config import ServerSettings, load_settings
from sugb_server.errors import (
    generic_error_handler,
    lookup_error_handler,
    value_error_handler,
)
from sugb_server.routes import register_routes

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Component wiring
# ------------------------------------------------------------------

def build_components(app: FastAPI, settings: ServerSettings) -> None:
    """Load the schema and stash every SDK component on ``app.state``.

    Split out of the lifespan so that tests and the worker can build the
    same object graph.
    """
    store = SchemaStore(settings.schema_path)
    store.load()
    engine = FormEngine(store.schema)

    session_factory = get_session_factory()
    publisher = ReportPublisher(
        SurveyReportRenderer(session_factory),
        LocalArtifactStore(settings.artifact_dir),
        download_prefix=settings.download_prefix,
    )
    queue = ReportQueue(
        session_factory,
        publisher,
        max_attempts=settings.report_max_attempts,
        job_delay=settings.report_job_delay,
        retry_backoff=settings.report_retry_backoff,
        stale_after=settings.report_stale_after,
    )

    app.state.schema_store = store
    app.state.form_engine = engine
    app.state.drafts = DraftService(engine)
    app.state.publisher = publisher
    app.state.report_queue = queue


# ------------------------------------------------------------------
# Lifespan — runs once at startup/shutdown
# ------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialise shared resources at startup, tear down on shutdown.

    Startup:
      1. Load the survey schema into a ``SchemaStore``
      2. Build ``FormEngine``, ``DraftService`` and the report pipeline
      3. Stash them on ``app.state`` for dependency injection

    Shutdown:
      1. Dispose the database engine's connection pool
    """
    settings: ServerSettings = app.state.settings
    build_components(app, settings)
    logger.info(
        "Survey server ready: schema v%s, artifacts in %s",
        app.state.schema_store.schema.version, settings.artifact_dir,
    )

    yield

    # --- Shutdown ---
    await dispose_engine()
    logger.info("Database engine disposed")


# ------------------------------------------------------------------
# Factory
# ------------------------------------------------------------------

def create_app(settings: ServerSettings | None = None) -> FastAPI:
    """Build and return the configured FastAPI application."""
    if settings is None:
        settings = load_settings()

    # --- Configure logging ---
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="SUGB Survey API Server",
        description="REST API for the SUGB pay-equity survey and report pipeline",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store settings so the lifespan handler can read them
    app.state.settings = settings

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Exception handlers ---
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(LookupError, lookup_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    # --- Health check (outside /api/v1 prefix) ---
    @app.get("/health")
    async def health() -> dict:
        """Readiness probe — verifies DB connectivity."""
        try:
            async with get_engine().connect() as conn:
                await conn.execute(text("SELECT 1"))
            return {"status": "ok"}
        except Exception as exc:
            logger.error("Health check failed: %s", exc)
            return {"status": "error", "detail": str(exc)}

    # --- Mount all API routes ---
    register_routes(app)

    return app


# ------------------------------------------------------------------
# Module-level ASGI export (for uvicorn sugb_server.app:app)
# ------------------------------------------------------------------
app = create_app()


# ------------------------------------------------------------------
# CLI entry point
# ------------------------------------------------------------------

def cli() -> None:
    """Console-script entry point: ``sugb-server``."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "sugb_server.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=False,
    )
