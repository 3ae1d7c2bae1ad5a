"""
ARQ Job Queue Service - Async Redis-based job queue for background tasks.

Provides:
- Hourly alert checks
- Scheduled report runs every 15 minutes
- Nightly rollup (funnels, geo, retention cleanup)
"""
from datetime import date
from typing import Any, Optional

from arq import cron
from arq.connections import RedisSettings

from footfall.core.config import settings
from footfall.core.database import get_db_context
from footfall.core.logging import get_logger
from footfall.services.alerts import AlertService
from footfall.services.reports import ReportService
from footfall.services.rollup import run_rollup

logger = get_logger(__name__)


def get_redis_settings() -> RedisSettings:
    """Get Redis connection settings from config."""
    redis_url = str(settings.redis_url) if settings.redis_url else "redis://localhost:6379"
    return RedisSettings.from_dsn(redis_url)


# ============================================
# JOB FUNCTIONS
# ============================================

async def check_alerts_job(ctx: dict) -> dict[str, Any]:
    """Evaluate every active alert against today's metrics."""
    logger.info("Starting alert check job")

    async with get_db_context() as session:
        result = await AlertService(session).check_alerts()

    logger.info("Alert check job finished", checked=result.checked, triggered=result.triggered)
    return {"checked": result.checked, "triggered": result.triggered, "failed": result.failed}


async def run_scheduled_reports_job(ctx: dict) -> dict[str, Any]:
    """Run every scheduled report that is due."""
    logger.info("Starting scheduled reports job")

    async with get_db_context() as session:
        results = await ReportService(session).run_due_reports()

    summary = {"run": len(results)}
    for result in results:
        summary[result.status] = summary.get(result.status, 0) + 1
    logger.info("Scheduled reports job finished", **summary)
    return summary


async def daily_rollup_job(ctx: dict, day: Optional[str] = None) -> dict[str, Any]:
    """
    Nightly rollup for the previous day.

    `day` may be passed as an ISO date when the job is enqueued by hand.
    """
    target = date.fromisoformat(day) if day else None

    async with get_db_context() as session:
        return await run_rollup(session, "all", target)


# ============================================
# WORKER SETTINGS
# ============================================

class WorkerSettings:
    """ARQ worker configuration."""

    functions = [
        check_alerts_job,
        run_scheduled_reports_job,
        daily_rollup_job,
    ]

    cron_jobs = [
        # Alerts at the top of every hour
        cron(check_alerts_job, minute=0),
        # Reports every 15 minutes
        cron(run_scheduled_reports_job, minute={0, 15, 30, 45}, max_tries=1),
        # Rollup once a night, after the day has closed in UTC
        cron(daily_rollup_job, hour=1, minute=5),
    ]

    redis_settings = get_redis_settings()

    # Worker settings
    max_jobs = 10
    job_timeout = 600  # 10 minutes
    keep_result = 3600  # 1 hour
    # A missed occurrence waits for the next tick instead of re-running
    retry_jobs = False
    max_tries = 1
