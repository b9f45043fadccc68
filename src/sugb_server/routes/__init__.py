"""Route registration — mounts all routers under ``/api/v1``."""

from fastapi import FastAPI

from sugb_server.routes.admin import router as admin_router
from sugb_server.routes.reports import router as reports_router
from sugb_server.routes.survey import router as survey_router

API_PREFIX = "/api/v1"


def register_routes(app: FastAPI) -> None:
    """Include all sub-routers under the versioned API prefix."""
    app.include_router(survey_router, prefix=API_PREFIX)
    app.include_router(reports_router, prefix=API_PREFIX)
    app.include_router(admin_router, prefix=API_PREFIX)
