"""FastAPI dependency injection — DB sessions, SDK components, identity.

Each request that touches the database gets a fresh ``AsyncSession`` via
``get_db()``.  The session is committed on success and rolled back on
error, matching the SDK convention where services and repositories call
``flush()`` but never ``commit()``.

SDK components are built once in the lifespan handler and stashed on
``app.state``; the getters below hand them to routes.
"""

import hmac
from typing import AsyncGenerator

from fastapi import Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from sugb_db.engine import get_session_factory
from sugb_forms.drafts import DraftService
from sugb_forms.engine import FormEngine
from sugb_forms.schema_store import SchemaStore
from sugb_reports.artifacts import ReportPublisher
from sugb_reports.queue import ReportQueue

from sugb_server.config import ServerSettings


# ------------------------------------------------------------------
# Database session — transaction boundary lives here
# ------------------------------------------------------------------

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async DB session; commit on success, rollback on error."""
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ------------------------------------------------------------------
# Components — stashed on app.state during lifespan
# ------------------------------------------------------------------

def get_settings(request: Request) -> ServerSettings:
    return request.app.state.settings


def get_schema_store(request: Request) -> SchemaStore:
    return request.app.state.schema_store


def get_form_engine(request: Request) -> FormEngine:
    return request.app.state.form_engine


def get_draft_service(request: Request) -> DraftService:
    return request.app.state.drafts


def get_report_queue(request: Request) -> ReportQueue:
    return request.app.state.report_queue


def get_publisher(request: Request) -> ReportPublisher:
    return request.app.state.publisher


# ------------------------------------------------------------------
# User identity — extracted from the X-User-ID header
# ------------------------------------------------------------------

async def get_user_id(
    request: Request,
    x_user_id: str | None = Header(None, alias="X-User-ID"),
    x_proxy_secret: str | None = Header(None, alias="X-Proxy-Secret"),
) -> str:
    """Extract user identity from the ``X-User-ID`` header.

    Returns 401 if the header is missing.  When ``TRUSTED_PROXY_SECRET``
    is configured the request must also carry a matching
    ``X-Proxy-Secret``, proving the identity header came from the
    gateway and not from an external client.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="X-User-ID header is required")

    expected_secret: str | None = request.app.state.settings.trusted_proxy_secret
    if expected_secret:
        if not x_proxy_secret:
            raise HTTPException(
                status_code=403,
                detail="X-Proxy-Secret header is required",
            )
        # Constant-time comparison to prevent timing side-channels.
        if not hmac.compare_digest(x_proxy_secret, expected_secret):
            raise HTTPException(status_code=403, detail="Invalid proxy secret")

    return x_user_id


async def require_admin_key(
    request: Request,
    x_admin_key: str | None = Header(None, alias="X-Admin-Key"),
) -> str:
    """Validate ``X-Admin-Key`` against the configured admin key.

    403 when admin endpoints are disabled (no key configured) or the key
    is wrong, 401 when the header is missing.
    """
    expected: str | None = request.app.state.settings.admin_api_key
    if not expected:
        raise HTTPException(
            status_code=403,
            detail="Admin endpoints are disabled (ADMIN_API_KEY not configured)",
        )
    if not x_admin_key:
        raise HTTPException(status_code=401, detail="X-Admin-Key header is required")
    if not hmac.compare_digest(x_admin_key, expected):
        raise HTTPException(status_code=403, detail="Invalid admin key")
    return x_admin_key
