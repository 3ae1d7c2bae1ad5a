"""
Repositories for ingestion tables: sessions, events, unique visits, heatmap buckets.
"""
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy import select

from footfall.models.analytics import (
    AnalyticsEvent,
    AnalyticsSession,
    GeoAggregate,
    HeatmapBucket,
    UniqueVisit,
)
from footfall.repositories.base import BaseRepository
from footfall.repositories.upsert import (
    insert_ignore,
    insert_or_accumulate,
    insert_or_replace,
)


class SessionRepository(BaseRepository[AnalyticsSession]):
    """Repository for browsing sessions."""

    model = AnalyticsSession

    async def track(
        self,
        *,
        session_id: str,
        identity_hash: str,
        user_agent: str,
        device: str,
        browser: str,
        referrer_category: str,
        country: Optional[str],
        page_views: int,
        now: datetime,
    ) -> None:
        """
        Create the session or add this batch's page views to it.

        A known token only has its page_count and last_activity_at touched.
        """
        await insert_or_accumulate(
            self.session,
            AnalyticsSession,
            values={
                "session_id": session_id,
                "identity_hash": identity_hash,
                "user_agent": user_agent,
                "device": device,
                "browser": browser,
                "referrer_category": referrer_category,
                "country": country,
                "started_at": now,
                "last_activity_at": now,
                "page_count": page_views,
            },
            conflict_columns=["session_id"],
            increments={"page_count": page_views},
            overwrite=("last_activity_at",),
        )


class EventRepository(BaseRepository[AnalyticsEvent]):
    """Append-only event log."""

    model = AnalyticsEvent

    async def append_many(self, records: list[dict[str, Any]]) -> list[AnalyticsEvent]:
        events = [AnalyticsEvent(**record) for record in records]
        self.session.add_all(events)
        await self.session.flush()
        return events


class UniqueVisitRepository(BaseRepository[UniqueVisit]):
    """Per-day unique page visits."""

    model = UniqueVisit

    async def record(
        self,
        *,
        identity_hash: str,
        page_slug: str,
        visit_date: date,
        session_id: str,
        device: str,
        browser: str,
        referrer_category: str,
        country: Optional[str],
    ) -> bool:
        """Record the visit. Returns False when it was already counted that day."""
        return await insert_ignore(
            self.session,
            UniqueVisit,
            values={
                "identity_hash": identity_hash,
                "page_slug": page_slug,
                "visit_date": visit_date,
                "session_id": session_id,
                "device": device,
                "browser": browser,
                "referrer_category": referrer_category,
                "country": country,
            },
            conflict_columns=["identity_hash", "page_slug", "visit_date"],
        )


class HeatmapRepository(BaseRepository[HeatmapBucket]):
    """Grid-bucketed click counters."""

    model = HeatmapBucket

    async def increment(
        self,
        *,
        page_slug: str,
        aggregate_date: date,
        bucket_x: int,
        bucket_y: int,
        viewport_width: int,
        element_id: Optional[str],
        now: datetime,
    ) -> None:
        await insert_or_accumulate(
            self.session,
            HeatmapBucket,
            values={
                "page_slug": page_slug,
                "aggregate_date": aggregate_date,
                "bucket_x": bucket_x,
                "bucket_y": bucket_y,
                "viewport_width": viewport_width,
                "click_count": 1,
                "element_id": element_id,
                "updated_at": now,
            },
            conflict_columns=[
                "page_slug",
                "aggregate_date",
                "bucket_x",
                "bucket_y",
                "viewport_width",
            ],
            increments={"click_count": 1},
            overwrite=("updated_at",),
        )

    async def get_buckets(self, page_slug: str, aggregate_date: date) -> list[HeatmapBucket]:
        stmt = (
            select(HeatmapBucket)
            .where(
                HeatmapBucket.page_slug == page_slug,
                HeatmapBucket.aggregate_date == aggregate_date,
            )
            .order_by(HeatmapBucket.bucket_y, HeatmapBucket.bucket_x, HeatmapBucket.viewport_width)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class GeoAggregateRepository(BaseRepository[GeoAggregate]):
    """Daily per-country rollups."""

    model = GeoAggregate

    async def replace(
        self,
        *,
        aggregate_date: date,
        country: str,
        unique_visitors: int,
        sessions: int,
        page_visits: int,
        now: datetime,
    ) -> None:
        await insert_or_replace(
            self.session,
            GeoAggregate,
            values={
                "aggregate_date": aggregate_date,
                "country": country,
                "unique_visitors": unique_visitors,
                "sessions": sessions,
                "page_visits": page_visits,
                "updated_at": now,
            },
            conflict_columns=["aggregate_date", "country"],
        )

    async def list_range(self, date_from: date, date_to: date) -> list[GeoAggregate]:
        stmt = (
            select(GeoAggregate)
            .where(
                GeoAggregate.aggregate_date >= date_from,
                GeoAggregate.aggregate_date <= date_to,
            )
            .order_by(GeoAggregate.aggregate_date, GeoAggregate.unique_visitors.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
