"""
Daily geographic rollup of unique visits by country.
"""
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from footfall.core.clock import Clock, utcnow
from footfall.core.logging import get_logger
from footfall.models.analytics import UniqueVisit
from footfall.repositories.analytics import GeoAggregateRepository

logger = get_logger(__name__)

UNKNOWN_COUNTRY = "unknown"


class GeoService:
    def __init__(self, session: AsyncSession, clock: Clock = utcnow) -> None:
        self.session = session
        self.clock = clock
        self.repo = GeoAggregateRepository(session)

    async def rollup(self, day: Optional[date] = None) -> int:
        """Recompute the per-country rows for `day` (default: yesterday). Returns the row count."""
        day = day or self.clock().date() - timedelta(days=1)
        stmt = (
            select(
                UniqueVisit.country,
                func.count(distinct(UniqueVisit.identity_hash)),
                func.count(distinct(UniqueVisit.session_id)),
                func.count(UniqueVisit.id),
            )
            .where(UniqueVisit.visit_date == day)
            .group_by(UniqueVisit.country)
        )
        rows = (await self.session.execute(stmt)).all()

        totals: dict[str, list[int]] = {}
        for country, visitors, sessions, visits in rows:
            bucket = totals.setdefault(country or UNKNOWN_COUNTRY, [0, 0, 0])
            bucket[0] += visitors
            bucket[1] += sessions
            bucket[2] += visits

        now = self.clock()
        for country, (visitors, sessions, visits) in totals.items():
            await self.repo.replace(
                aggregate_date=day,
                country=country,
                unique_visitors=visitors,
                sessions=sessions,
                page_visits=visits,
                now=now,
            )

        logger.info("Geo rollup finished", date=str(day), countries=len(totals))
        return len(totals)
