"""
Retention cleanup for raw events and aggregate tables.

Sessions and unique visits are kept; their retention is handled outside
this service.
"""
from datetime import timedelta
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from footfall.core.clock import Clock, utcnow
from footfall.core.config import settings
from footfall.core.logging import get_logger
from footfall.models.analytics import AnalyticsEvent, GeoAggregate, HeatmapBucket

logger = get_logger(__name__)


async def cleanup_old_data(
    session: AsyncSession,
    *,
    clock: Clock = utcnow,
    event_retention_days: Optional[int] = None,
    aggregate_retention_days: Optional[int] = None,
) -> dict[str, int]:
    """Delete expired rows. Returns the number removed per table."""
    event_days = event_retention_days or settings.raw_event_retention_days
    aggregate_days = aggregate_retention_days or settings.aggregate_retention_days
    now = clock()
    event_cutoff = now - timedelta(days=event_days)
    aggregate_cutoff = now.date() - timedelta(days=aggregate_days)

    events = await session.execute(
        delete(AnalyticsEvent).where(AnalyticsEvent.created_at < event_cutoff)
    )
    heatmap = await session.execute(
        delete(HeatmapBucket).where(HeatmapBucket.aggregate_date < aggregate_cutoff)
    )
    geo = await session.execute(
        delete(GeoAggregate).where(GeoAggregate.aggregate_date < aggregate_cutoff)
    )

    removed = {
        "events": events.rowcount or 0,
        "heatmap_buckets": heatmap.rowcount or 0,
        "geo_aggregates": geo.rowcount or 0,
    }
    logger.info("Retention cleanup finished", **removed)
    return removed
