"""
Traffic summary and heatmap read models for the public analytics endpoints.
"""
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from footfall.models.analytics import UniqueVisit
from footfall.repositories.analytics import HeatmapRepository
from footfall.schemas.tracking import (
    DateRange,
    HeatmapBucketResponse,
    HeatmapResponse,
    PageStat,
    ReferrerStat,
    SummaryResponse,
)
from footfall.services.metrics import MetricsService

TOP_N = 10
DEFAULT_RANGE_DAYS = 7


class SummaryService:
    """Aggregates the dashboard summary from the ingestion tables."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.metrics = MetricsService(session)

    async def summarize(
        self,
        *,
        today: date,
        start: Optional[date] = None,
        end: Optional[date] = None,
        page_slug: Optional[str] = None,
    ) -> SummaryResponse:
        """
        Build the summary for start..end (default: the last 7 days).

        page_slug scopes unique visitors and page views; the breakdowns
        cover the whole site.
        """
        start = start or today - timedelta(days=DEFAULT_RANGE_DAYS)
        end = end or today

        return SummaryResponse(
            unique_total=await self.metrics.unique_visitors(start, end, page_slug),
            unique_today=await self.metrics.unique_visitors(today, today, page_slug),
            sessions=await self.metrics.sessions(start, end),
            page_views=await self.metrics.page_views(start, end, page_slug),
            conversions=await self.metrics.conversions(start, end),
            device_breakdown=await self._device_breakdown(start, end),
            top_pages=await self._top_pages(start, end),
            top_referrers=await self._top_referrers(start, end),
            date_range=DateRange(start=start, end=end),
        )

    async def _grouped(self, column, start: date, end: date, limit: Optional[int] = None):
        count = func.count(UniqueVisit.id).label("total")
        stmt = (
            select(column, count)
            .where(UniqueVisit.visit_date >= start, UniqueVisit.visit_date <= end)
            .group_by(column)
            .order_by(count.desc(), column)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return result.all()

    async def _device_breakdown(self, start: date, end: date) -> dict[str, int]:
        rows = await self._grouped(UniqueVisit.device, start, end)
        return {(device or "unknown"): total for device, total in rows}

    async def _top_pages(self, start: date, end: date) -> list[PageStat]:
        rows = await self._grouped(UniqueVisit.page_slug, start, end, TOP_N)
        return [PageStat(page=page, unique_visitors=total) for page, total in rows]

    async def _top_referrers(self, start: date, end: date) -> list[ReferrerStat]:
        rows = await self._grouped(UniqueVisit.referrer_category, start, end, TOP_N)
        return [
            ReferrerStat(referrer=referrer or "direct", count=total)
            for referrer, total in rows
        ]

    async def heatmap(self, page_slug: str, day: date) -> HeatmapResponse:
        buckets = await HeatmapRepository(self.session).get_buckets(page_slug, day)
        items = [HeatmapBucketResponse.model_validate(b) for b in buckets]
        return HeatmapResponse(
            page_slug=page_slug,
            date=day,
            total_clicks=sum(b.click_count for b in items),
            buckets=items,
        )
