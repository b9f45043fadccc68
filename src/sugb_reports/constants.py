"""Report queue constants shared by the queue, publisher and poller.

Tunables can be overridden via environment variables so that operators can
adjust retry pacing without code changes.  ``sugb_server.config`` reads the
same variables when it builds the live queue.
"""

import os
import re

# Attempts per job before it is marked failed.
DEFAULT_MAX_ATTEMPTS = int(os.getenv("REPORT_MAX_ATTEMPTS", "3"))

# Pause between consecutive jobs in one drain (seconds).
DEFAULT_JOB_DELAY_SECONDS = float(os.getenv("REPORT_JOB_DELAY", "1.0"))

# Retry pause after a failed attempt is ``backoff * attempts`` seconds.
DEFAULT_RETRY_BACKOFF_SECONDS = float(os.getenv("REPORT_RETRY_BACKOFF", "1.0"))

# A job stuck in ``processing`` for longer than this is reclaimed.
DEFAULT_STALE_AFTER_SECONDS = float(os.getenv("REPORT_STALE_AFTER", "600"))

# Where the local artifact store writes PDFs.
DEFAULT_ARTIFACT_DIR = os.getenv("REPORT_ARTIFACT_DIR", os.path.join(".cache", "pdfs"))

# Public path prefix under which the API serves artifacts.
DEFAULT_DOWNLOAD_PREFIX = "/api/v1/reports/download"

# Artifact names: sugb-report-<survey_response_id>-<epoch_ms>.pdf
ARTIFACT_PREFIX = "sugb-report-"
ARTIFACT_NAME_RE = re.compile(r"^sugb-report-([0-9a-f-]{36})-(\d+)\.pdf$", re.IGNORECASE)

# Client-side status polling.
POLL_INTERVAL_SECONDS = 1.0
MAX_POLLS = 30
