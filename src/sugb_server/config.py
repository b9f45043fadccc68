"""Server configuration — reads settings from environment variables.

All settings have sensible defaults for local development.  In production
the values are typically overridden via env vars or a ``.env`` file.
Report-queue tunables default to the values in ``sugb_reports.constants``.
"""

import os
from dataclasses import dataclass, field

from sugb_reports.constants import (
    DEFAULT_ARTIFACT_DIR,
    DEFAULT_DOWNLOAD_PREFIX,
    DEFAULT_JOB_DELAY_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_BACKOFF_SECONDS,
    DEFAULT_STALE_AFTER_SECONDS,
)


@dataclass(frozen=True)
class ServerSettings:
    """Immutable server configuration read from environment at startup."""

    # Network
    host: str = "0.0.0.0"
    port: int = 8080

    # CORS — comma-separated origins, or "*" for wide-open dev mode
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    # Logging
    log_level: str = "INFO"

    # Survey schema file (None → packaged sugb_forms/data/survey.yaml)
    schema_path: str | None = None

    # Report pipeline
    artifact_dir: str = DEFAULT_ARTIFACT_DIR
    download_prefix: str = DEFAULT_DOWNLOAD_PREFIX
    report_max_attempts: int = DEFAULT_MAX_ATTEMPTS
    report_job_delay: float = DEFAULT_JOB_DELAY_SECONDS
    report_retry_backoff: float = DEFAULT_RETRY_BACKOFF_SECONDS
    report_stale_after: float = DEFAULT_STALE_AFTER_SECONDS
    # Drain the queue in-process right after a report is requested.
    # Disable when a separate sugb-report-worker owns the queue.
    drain_on_request: bool = True

    # Admin API key — shared secret for admin endpoints (None = disabled)
    admin_api_key: str | None = None

    # Trusted proxy secret — when set, every request that carries
    # X-User-ID must also carry X-Proxy-Secret matching this value.
    trusted_proxy_secret: str | None = None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def load_settings() -> ServerSettings:
    """Build settings from ``SERVER_*``, ``REPORT_*`` and ``SUGB_*`` env vars."""
    raw_origins = os.getenv("SERVER_CORS_ORIGINS", "*")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]

    return ServerSettings(
        host=os.getenv("SERVER_HOST", "0.0.0.0"),
        port=int(os.getenv("SERVER_PORT", "8080")),
        cors_origins=origins,
        log_level=os.getenv("SERVER_LOG_LEVEL", "INFO").upper(),
        schema_path=os.getenv("SUGB_SCHEMA_PATH") or None,
        artifact_dir=os.getenv("REPORT_ARTIFACT_DIR", DEFAULT_ARTIFACT_DIR),
        download_prefix=os.getenv("REPORT_DOWNLOAD_PREFIX", DEFAULT_DOWNLOAD_PREFIX),
        report_max_attempts=int(os.getenv("REPORT_MAX_ATTEMPTS", str(DEFAULT_MAX_ATTEMPTS))),
        report_job_delay=float(os.getenv("REPORT_JOB_DELAY", str(DEFAULT_JOB_DELAY_SECONDS))),
        report_retry_backoff=float(
            os.getenv("REPORT_RETRY_BACKOFF", str(DEFAULT_RETRY_BACKOFF_SECONDS))
        ),
        report_stale_after=float(
            os.getenv("REPORT_STALE_AFTER", str(DEFAULT_STALE_AFTER_SECONDS))
        ),
        drain_on_request=_env_bool("REPORT_DRAIN_ON_REQUEST", True),
        admin_api_key=os.getenv("ADMIN_API_KEY") or None,
        trusted_proxy_secret=os.getenv("TRUSTED_PROXY_SECRET") or None,
    )
