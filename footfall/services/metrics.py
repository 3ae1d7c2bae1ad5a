"""
Daily metric queries shared by the summary endpoint and the alert evaluator.
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from footfall.models.alert import AlertMetric
from footfall.models.analytics import AnalyticsEvent, AnalyticsSession, EventType, UniqueVisit


def day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def range_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    """Half-open UTC datetime interval covering start..end inclusive."""
    return day_start(start), day_start(end + timedelta(days=1))


class MetricsService:
    """Counts over the ingestion tables for a date range."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _scalar(self, stmt) -> int:
        result = await self.session.execute(stmt)
        return int(result.scalar() or 0)

    async def unique_visitors(
        self,
        start: date,
        end: date,
        page_filter: Optional[str] = None,
    ) -> int:
        stmt = select(func.count(UniqueVisit.id)).where(
            UniqueVisit.visit_date >= start,
            UniqueVisit.visit_date <= end,
        )
        if page_filter:
            stmt = stmt.where(UniqueVisit.page_slug == page_filter)
        return await self._scalar(stmt)

    async def sessions(self, start: date, end: date) -> int:
        lower, upper = range_bounds(start, end)
        stmt = select(func.count(AnalyticsSession.id)).where(
            AnalyticsSession.started_at >= lower,
            AnalyticsSession.started_at < upper,
        )
        return await self._scalar(stmt)

    async def page_views(
        self,
        start: date,
        end: date,
        page_filter: Optional[str] = None,
    ) -> int:
        lower, upper = range_bounds(start, end)
        stmt = select(func.count(AnalyticsEvent.id)).where(
            AnalyticsEvent.event_type == EventType.PAGE_VIEW,
            AnalyticsEvent.created_at >= lower,
            AnalyticsEvent.created_at < upper,
        )
        if page_filter:
            stmt = stmt.where(AnalyticsEvent.page_path == page_filter)
        return await self._scalar(stmt)

    async def conversions(
        self,
        start: date,
        end: date,
        page_filter: Optional[str] = None,
    ) -> int:
        lower, upper = range_bounds(start, end)
        stmt = select(func.count(AnalyticsEvent.id)).where(
            AnalyticsEvent.event_type.in_(EventType.CONVERSIONS),
            AnalyticsEvent.created_at >= lower,
            AnalyticsEvent.created_at < upper,
        )
        if page_filter:
            stmt = stmt.where(AnalyticsEvent.page_path == page_filter)
        return await self._scalar(stmt)

    async def daily_value(
        self,
        metric: AlertMetric | str,
        day: date,
        page_filter: Optional[str] = None,
    ) -> float:
        """Value of an alert metric for one day. Sessions ignore the page filter."""
        metric = AlertMetric(metric)
        if metric == AlertMetric.UNIQUE_VISITORS:
            return float(await self.unique_visitors(day, day, page_filter))
        if metric == AlertMetric.PAGE_VIEWS:
            return float(await self.page_views(day, day, page_filter))
        if metric == AlertMetric.SESSIONS:
            return float(await self.sessions(day, day))
        return float(await self.conversions(day, day, page_filter))
