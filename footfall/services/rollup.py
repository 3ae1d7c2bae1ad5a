"""
Daily rollup: funnel evaluation, geo aggregation and retention cleanup.

Shared by the admin worker endpoint and the scheduled background job.
"""
from datetime import date, timedelta
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from footfall.core.clock import Clock, utcnow
from footfall.core.logging import get_logger
from footfall.services.funnels import FunnelService
from footfall.services.geo import GeoService
from footfall.services.maintenance import cleanup_old_data

logger = get_logger(__name__)

WORKER_ACTIONS = ("all", "funnels", "geo", "cleanup")


async def run_rollup(
    session: AsyncSession,
    action: str = "all",
    day: Optional[date] = None,
    clock: Clock = utcnow,
) -> dict[str, Any]:
    """Run the selected rollup steps for `day` (default: yesterday)."""
    if action not in WORKER_ACTIONS:
        raise ValueError(f"Unknown worker action '{action}'")

    day = day or clock().date() - timedelta(days=1)
    logger.info("Analytics worker running", action=action, date=str(day))
    results: dict[str, Any] = {"date": day.isoformat()}

    if action in ("all", "funnels"):
        sweep = await FunnelService(session, clock=clock).evaluate_active(day)
        results["funnels"] = {
            "completed": sweep.count("completed"),
            "skipped": sweep.count("skipped"),
            "failed": sweep.count("failed"),
            "errors": sweep.errors,
        }

    if action in ("all", "geo"):
        results["geo"] = {"countries": await GeoService(session, clock=clock).rollup(day)}
        await session.commit()

    if action in ("all", "cleanup"):
        results["cleanup"] = await cleanup_old_data(session, clock=clock)
        await session.commit()

    logger.info("Analytics worker completed", action=action, date=str(day))
    return results
