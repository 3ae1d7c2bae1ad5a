"""
Funnel repository for definitions and per-day results.
"""
from datetime import date, datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select, update

from footfall.models.funnel import Funnel, FunnelResult, FunnelRunStatus
from footfall.repositories.base import BaseRepository
from footfall.repositories.upsert import insert_ignore


class FunnelRepository(BaseRepository[Funnel]):
    """Repository for Funnel model operations."""

    model = Funnel

    async def list_active(self) -> list[Funnel]:
        stmt = select(Funnel).where(Funnel.is_active.is_(True)).order_by(Funnel.created_at)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def claim_run(self, funnel_id: UUID, result_date: date) -> bool:
        """
        Move the (funnel, day) result into `running`.

        Returns False if another run already holds it.
        """
        created = await insert_ignore(
            self.session,
            FunnelResult,
            values={
                "funnel_id": funnel_id,
                "result_date": result_date,
                "status": FunnelRunStatus.RUNNING.value,
                "total_sessions": 0,
                "step_results": [],
                "conversion_rate": 0.0,
            },
            conflict_columns=["funnel_id", "result_date"],
        )
        if created:
            return True

        stmt = (
            update(FunnelResult)
            .where(
                FunnelResult.funnel_id == funnel_id,
                FunnelResult.result_date == result_date,
                FunnelResult.status != FunnelRunStatus.RUNNING.value,
            )
            .values(status=FunnelRunStatus.RUNNING.value)
        )
        result = await self.session.execute(stmt)
        return (result.rowcount or 0) > 0

    async def store_result(
        self,
        funnel_id: UUID,
        result_date: date,
        *,
        total_sessions: int,
        step_results: list[dict[str, Any]],
        conversion_rate: float,
        computed_at: datetime,
    ) -> None:
        """Overwrite the claimed result row with freshly computed numbers."""
        stmt = (
            update(FunnelResult)
            .where(
                FunnelResult.funnel_id == funnel_id,
                FunnelResult.result_date == result_date,
            )
            .values(
                status=FunnelRunStatus.COMPLETED.value,
                total_sessions=total_sessions,
                step_results=step_results,
                conversion_rate=conversion_rate,
                error_message=None,
                computed_at=computed_at,
            )
        )
        await self.session.execute(stmt)

    async def mark_failed(self, funnel_id: UUID, result_date: date, error: str) -> None:
        stmt = (
            update(FunnelResult)
            .where(
                FunnelResult.funnel_id == funnel_id,
                FunnelResult.result_date == result_date,
            )
            .values(status=FunnelRunStatus.FAILED.value, error_message=error)
        )
        await self.session.execute(stmt)

    async def list_results(
        self,
        *,
        funnel_id: Optional[UUID] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[tuple[FunnelResult, str]]:
        """Completed results joined with the funnel name, oldest first."""
        stmt = (
            select(FunnelResult, Funnel.name)
            .join(Funnel, Funnel.id == FunnelResult.funnel_id)
            .where(FunnelResult.status == FunnelRunStatus.COMPLETED.value)
        )
        if funnel_id is not None:
            stmt = stmt.where(FunnelResult.funnel_id == funnel_id)
        if date_from is not None:
            stmt = stmt.where(FunnelResult.result_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(FunnelResult.result_date <= date_to)
        stmt = stmt.order_by(FunnelResult.result_date, Funnel.name)

        result = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]
