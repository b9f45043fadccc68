"""Report worker CLI — ``sugb-report-worker``.

Runs the report queue outside the API process.  Use it when the server is
started with ``REPORT_DRAIN_ON_REQUEST=false``, or from cron to sweep up
jobs whose in-process drain never ran (server restarted mid-request).

Examples::

    # Drain once and exit
    uv run sugb-report-worker

    # Keep draining every 5 seconds until interrupted
    uv run sugb-report-worker --loop --interval 5

    # Only release stale processing jobs
    uv run sugb-report-worker --reclaim-only --stale-after 300
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from sugb_server.config import ServerSettings, load_settings

logger = logging.getLogger(__name__)


def build_queue(settings: ServerSettings, *, stale_after: float | None = None):
    """Wire a :class:`ReportQueue` from settings, as the server does."""
    # Lazy imports to avoid loading DB machinery at module import time
    from sugb_db.engine import get_session_factory
    from sugb_reports.artifacts import LocalArtifactStore, ReportPublisher
    from sugb_reports.queue import ReportQueue
    from sugb_reports.renderer import SurveyReportRenderer

    factory = get_session_factory()
    publisher = ReportPublisher(
        SurveyReportRenderer(factory),
        LocalArtifactStore(settings.artifact_dir),
        download_prefix=settings.download_prefix,
    )
    return ReportQueue(
        factory,
        publisher,
        max_attempts=settings.report_max_attempts,
        job_delay=settings.report_job_delay,
        retry_backoff=settings.report_retry_backoff,
        stale_after=settings.report_stale_after if stale_after is None else stale_after,
    )


async def run_worker(
    settings: ServerSettings,
    *,
    loop: bool = False,
    interval: float = 5.0,
    reclaim_only: bool = False,
    stale_after: float | None = None,
    stop: asyncio.Event | None = None,
) -> int:
    """Drain (or reclaim) and return the number of affected jobs."""
    from sugb_db.engine import dispose_engine, session_scope

    queue = build_queue(settings, stale_after=stale_after)
    stop = stop or asyncio.Event()
    total = 0
    try:
        if reclaim_only:
            async with session_scope() as db:
                total = await queue.reclaim_stale(db)
            logger.info("Reclaimed %d stale job(s)", total)
            return total

        while True:
            total += await queue.drain()
            if not loop or stop.is_set():
                break
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue
            break
        logger.info("Worker finished: %d job attempt(s)", total)
        return total
    finally:
        await dispose_engine()


def cli() -> None:
    """Console-script entry point: ``sugb-report-worker``."""
    parser = argparse.ArgumentParser(
        prog="sugb-report-worker",
        description="Process pending SUGB report jobs.",
    )
    parser.add_argument(
        "--loop",
        action="store_true",
        default=False,
        help="Keep draining until interrupted instead of exiting after one drain",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=5.0,
        help="Seconds between drains in --loop mode (default: 5)",
    )
    parser.add_argument(
        "--reclaim-only",
        action="store_true",
        default=False,
        help="Only release jobs stuck in processing, then exit",
    )
    parser.add_argument(
        "--stale-after",
        type=float,
        default=None,
        help="Override the stale threshold in seconds (default: $REPORT_STALE_AFTER or 600)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    try:
        affected = asyncio.run(
            run_worker(
                load_settings(),
                loop=args.loop,
                interval=args.interval,
                reclaim_only=args.reclaim_only,
                stale_after=args.stale_after,
            )
        )
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.exit(130)

    print(f"Affected jobs: {affected}")
    sys.exit(0)
