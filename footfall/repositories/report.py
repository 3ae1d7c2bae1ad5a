"""
Report repository for schedules, execution history and warehouse exports.
"""
from datetime import date, datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update

from footfall.models.report import (
    ReportClaim,
    ReportHistory,
    ReportRunStatus,
    ScheduledReport,
    WarehouseExport,
    WarehouseExportStatus,
)
from footfall.repositories.base import BaseRepository


class ScheduledReportRepository(BaseRepository[ScheduledReport]):
    """Repository for ScheduledReport model operations."""

    model = ScheduledReport

    async def get_due(self, now: datetime) -> list[ScheduledReport]:
        """Active reports whose next run is not in the future."""
        stmt = (
            select(ScheduledReport)
            .where(
                ScheduledReport.is_active.is_(True),
                ScheduledReport.next_run_at <= now,
            )
            .order_by(ScheduledReport.next_run_at)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def claim(self, report_id: UUID) -> bool:
        """Flip run_status idle -> running. False if another run holds the report."""
        stmt = (
            update(ScheduledReport)
            .where(
                ScheduledReport.id == report_id,
                ScheduledReport.run_status == ReportClaim.IDLE.value,
            )
            .values(run_status=ReportClaim.RUNNING.value)
        )
        result = await self.session.execute(stmt)
        return (result.rowcount or 0) > 0

    async def release(
        self,
        report_id: UUID,
        *,
        last_run_at: datetime,
        next_run_at: Optional[datetime] = None,
    ) -> None:
        values: dict = {
            "run_status": ReportClaim.IDLE.value,
            "last_run_at": last_run_at,
        }
        if next_run_at is not None:
            values["next_run_at"] = next_run_at
        stmt = update(ScheduledReport).where(ScheduledReport.id == report_id).values(**values)
        await self.session.execute(stmt)


class ReportHistoryRepository(BaseRepository[ReportHistory]):
    """Repository for ReportHistory model operations."""

    model = ReportHistory

    async def start(self, report_id: UUID, started_at: datetime) -> UUID:
        """Insert a `running` attempt and return its id."""
        history = ReportHistory(
            scheduled_report_id=report_id,
            status=ReportRunStatus.RUNNING.value,
            records_count=0,
            started_at=started_at,
        )
        self.session.add(history)
        await self.session.flush()
        return history.id

    async def complete(
        self,
        history_id: UUID,
        *,
        records_count: int,
        file_url: Optional[str],
        file_size: Optional[int],
        duration_ms: int,
    ) -> None:
        stmt = (
            update(ReportHistory)
            .where(ReportHistory.id == history_id)
            .values(
                status=ReportRunStatus.COMPLETED.value,
                records_count=records_count,
                file_url=file_url,
                file_size=file_size,
                duration_ms=duration_ms,
            )
        )
        await self.session.execute(stmt)

    async def fail(self, history_id: UUID, *, error: str, duration_ms: int) -> None:
        stmt = (
            update(ReportHistory)
            .where(ReportHistory.id == history_id)
            .values(
                status=ReportRunStatus.FAILED.value,
                error_message=error,
                duration_ms=duration_ms,
            )
        )
        await self.session.execute(stmt)

    async def list_for_report(self, report_id: UUID, limit: int = 50) -> list[ReportHistory]:
        stmt = (
            select(ReportHistory)
            .where(ReportHistory.scheduled_report_id == report_id)
            .order_by(ReportHistory.started_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class WarehouseExportRepository(BaseRepository[WarehouseExport]):
    """Repository for WarehouseExport model operations."""

    model = WarehouseExport

    async def enqueue(
        self,
        *,
        export_type: str,
        date_from: date,
        date_to: date,
        status: WarehouseExportStatus,
        error_message: Optional[str] = None,
    ) -> WarehouseExport:
        export = WarehouseExport(
            export_type=export_type,
            date_from=date_from,
            date_to=date_to,
            status=status.value,
            error_message=error_message,
        )
        self.session.add(export)
        await self.session.flush()
        return export

    async def finish(
        self,
        export: WarehouseExport,
        *,
        status: WarehouseExportStatus,
        records_exported: int = 0,
        error_message: Optional[str] = None,
        completed_at: Optional[datetime] = None,
    ) -> WarehouseExport:
        export.status = status.value
        export.records_exported = records_exported
        export.error_message = error_message
        export.completed_at = completed_at
        await self.session.flush()
        return export
