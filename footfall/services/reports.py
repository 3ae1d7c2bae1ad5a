"""
Report/Export Scheduler - due-report sweeps, single runs and ad hoc exports.
"""
from collections import Counter
from dataclasses import dataclass
from datetime import date, time
from time import perf_counter
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from footfall.core.clock import Clock, utcnow
from footfall.core.config import settings
from footfall.core.logging import get_logger
from footfall.models.analytics import AnalyticsEvent, AnalyticsSession, EventType
from footfall.models.report import (
    DeliveryMethod,
    ReportType,
    ScheduledReport,
    WarehouseExportStatus,
)
from footfall.repositories.analytics import GeoAggregateRepository
from footfall.repositories.funnel import FunnelRepository
from footfall.repositories.report import (
    ReportHistoryRepository,
    ScheduledReportRepository,
    WarehouseExportRepository,
)
from footfall.schemas.report import ReportRunResult
from footfall.services.delivery import (
    DeliveryError,
    EmailChannel,
    ReportChannel,
    ReportPayload,
    StorageChannel,
    WarehouseChannel,
    WarehouseClient,
)
from footfall.services.metrics import range_bounds
from footfall.services.notification_service import notification_service
from footfall.services.scheduling import compute_next_run, resolve_date_range

logger = get_logger(__name__)

DETAILED_ROW_LIMIT = 50_000


@dataclass(frozen=True)
class ReportSnapshot:
    """Plain copy of a scheduled report row."""

    id: UUID
    name: str
    report_type: str
    schedule: str
    time_of_day: time
    day_of_week: Optional[int]
    day_of_month: Optional[int]
    date_range: str
    filters: dict[str, Any]
    delivery_method: str
    recipients: tuple[str, ...]

    @classmethod
    def of(cls, report: ScheduledReport) -> "ReportSnapshot":
        return cls(
            id=report.id,
            name=report.name,
            report_type=report.report_type,
            schedule=report.schedule,
            time_of_day=report.time_of_day,
            day_of_week=report.day_of_week,
            day_of_month=report.day_of_month,
            date_range=report.date_range,
            filters=dict(report.filters or {}),
            delivery_method=report.delivery_method,
            recipients=tuple(report.recipients or ()),
        )


def _top(counter: Counter) -> Optional[str]:
    return counter.most_common(1)[0][0] if counter else None


class ReportService:
    """Materializes report data and delivers it through the configured channel."""

    def __init__(
        self,
        session: AsyncSession,
        clock: Clock = utcnow,
        channels: Optional[dict[str, ReportChannel]] = None,
        warehouse: Optional[WarehouseClient] = None,
    ) -> None:
        self.session = session
        self.clock = clock
        self.warehouse = warehouse or WarehouseClient()
        self.channels: dict[str, ReportChannel] = channels or {
            DeliveryMethod.EMAIL.value: EmailChannel(notification_service),
            DeliveryMethod.STORAGE.value: StorageChannel(
                settings.export_storage_dir, settings.export_base_url
            ),
            DeliveryMethod.WAREHOUSE.value: WarehouseChannel(self.warehouse),
        }
        self.reports = ScheduledReportRepository(session)
        self.history = ReportHistoryRepository(session)
        self.exports = WarehouseExportRepository(session)

    # ============================================
    # REPORT DATA
    # ============================================

    async def get_report_data(
        self,
        report_type: ReportType | str,
        date_from: date,
        date_to: date,
        filters: Optional[dict[str, Any]] = None,
    ) -> list[dict[str, Any]]:
        """Rows for a report type over an inclusive date range."""
        report_type = ReportType(report_type)
        filters = filters or {}
        if report_type == ReportType.SUMMARY:
            return [await self._summary_row(date_from, date_to, filters)]
        if report_type == ReportType.DETAILED:
            return await self._detailed_rows(date_from, date_to, filters)
        if report_type == ReportType.GEO:
            return await self._geo_rows(date_from, date_to)
        return await self._funnel_rows(date_from, date_to)

    async def _summary_row(self, date_from: date, date_to: date, filters: dict[str, Any]) -> dict[str, Any]:
        lower, upper = range_bounds(date_from, date_to)
        stmt = (
            select(
                AnalyticsEvent.identity_hash,
                AnalyticsEvent.device,
                AnalyticsEvent.browser,
                AnalyticsSession.country,
            )
            .outerjoin(AnalyticsSession, AnalyticsSession.session_id == AnalyticsEvent.session_id)
            .where(
                AnalyticsEvent.event_type == EventType.PAGE_VIEW,
                AnalyticsEvent.created_at >= lower,
                AnalyticsEvent.created_at < upper,
            )
        )
        if filters.get("page_path"):
            stmt = stmt.where(AnalyticsEvent.page_path == filters["page_path"])
        rows = (await self.session.execute(stmt)).all()

        devices = Counter(r.device or "unknown" for r in rows)
        browsers = Counter(r.browser or "unknown" for r in rows)
        countries = Counter(r.country or "unknown" for r in rows)
        return {
            "date_from": date_from.isoformat(),
            "date_to": date_to.isoformat(),
            "total_page_views": len(rows),
            "unique_visitors": len({r.identity_hash for r in rows}),
            "top_device": _top(devices),
            "top_browser": _top(browsers),
            "top_country": _top(countries),
            "devices": dict(devices),
            "browsers": dict(browsers),
            "countries": dict(countries),
        }

    async def _detailed_rows(self, date_from: date, date_to: date, filters: dict[str, Any]) -> list[dict[str, Any]]:
        lower, upper = range_bounds(date_from, date_to)
        stmt = (
            select(AnalyticsEvent)
            .where(AnalyticsEvent.created_at >= lower, AnalyticsEvent.created_at < upper)
            .order_by(AnalyticsEvent.created_at.desc())
            .limit(DETAILED_ROW_LIMIT)
        )
        if filters.get("event_type"):
            stmt = stmt.where(AnalyticsEvent.event_type == filters["event_type"])
        if filters.get("page_path"):
            stmt = stmt.where(AnalyticsEvent.page_path == filters["page_path"])
        events = (await self.session.execute(stmt)).scalars().all()

        return [
            {
                "created_at": e.created_at.isoformat() if e.created_at else None,
                "session_id": e.session_id,
                "event_type": e.event_type,
                "page_path": e.page_path,
                "page_title": e.page_title,
                "element_id": e.element_id,
                "referrer_category": e.referrer_category,
                "utm_source": e.utm_source,
                "utm_medium": e.utm_medium,
                "utm_campaign": e.utm_campaign,
                "device": e.device,
                "browser": e.browser,
            }
            for e in events
        ]

    async def _geo_rows(self, date_from: date, date_to: date) -> list[dict[str, Any]]:
        aggregates = await GeoAggregateRepository(self.session).list_range(date_from, date_to)
        return [
            {
                "aggregate_date": a.aggregate_date.isoformat(),
                "country": a.country,
                "unique_visitors": a.unique_visitors,
                "sessions": a.sessions,
                "page_visits": a.page_visits,
            }
            for a in aggregates
        ]

    async def _funnel_rows(self, date_from: date, date_to: date) -> list[dict[str, Any]]:
        results = await FunnelRepository(self.session).list_results(date_from=date_from, date_to=date_to)
        return [
            {
                "funnel_name": name,
                "result_date": r.result_date.isoformat(),
                "total_sessions": r.total_sessions,
                "conversion_rate": r.conversion_rate,
                "step_results": r.step_results,
            }
            for r, name in results
        ]

    # ============================================
    # SCHEDULED EXECUTION
    # ============================================

    async def execute_report(
        self,
        report: ReportSnapshot,
        *,
        advance_schedule: bool = True,
    ) -> ReportRunResult:
        """
        Run one report under its claim and record the attempt.

        A failed run is not retried; the schedule still moves on to the
        next occurrence.
        """
        if not await self.reports.claim(report.id):
            await self.session.commit()
            logger.info("Report already running, skipped", report=report.name)
            return ReportRunResult(report_id=report.id, report_name=report.name, status="skipped")

        started = self.clock()
        history_id = await self.history.start(report.id, started)
        await self.session.commit()
        clock_start = perf_counter()

        result: ReportRunResult
        try:
            date_from, date_to = resolve_date_range(report.date_range, started.date())
            rows = await self.get_report_data(report.report_type, date_from, date_to, report.filters)

            channel = self.channels.get(report.delivery_method)
            if channel is None:
                raise DeliveryError(f"Unknown delivery method '{report.delivery_method}'")
            receipt = await channel.deliver(
                ReportPayload(
                    report_id=report.id,
                    report_name=report.name,
                    report_type=report.report_type,
                    recipients=report.recipients,
                    date_from=date_from,
                    date_to=date_to,
                    rows=rows,
                    generated_at=started,
                )
            )

            duration_ms = int((perf_counter() - clock_start) * 1000)
            await self.history.complete(
                history_id,
                records_count=len(rows),
                file_url=receipt.file_url,
                file_size=receipt.file_size,
                duration_ms=duration_ms,
            )
            result = ReportRunResult(
                report_id=report.id,
                report_name=report.name,
                status="completed",
                records=len(rows),
                duration_ms=duration_ms,
                file_url=receipt.file_url,
            )
            logger.info("Report completed", report=report.name, records=len(rows), duration_ms=duration_ms)
        except Exception as e:
            duration_ms = int((perf_counter() - clock_start) * 1000)
            logger.exception("Report failed", report=report.name)
            await self.session.rollback()
            await self.history.fail(history_id, error=str(e), duration_ms=duration_ms)
            result = ReportRunResult(
                report_id=report.id,
                report_name=report.name,
                status="failed",
                duration_ms=duration_ms,
                error=str(e),
            )

        next_run = None
        if advance_schedule:
            next_run = compute_next_run(
                report.schedule,
                report.time_of_day,
                self.clock(),
                day_of_week=report.day_of_week,
                day_of_month=report.day_of_month,
            )
        await self.reports.release(report.id, last_run_at=started, next_run_at=next_run)
        await self.session.commit()
        return result

    async def run_due_reports(self) -> list[ReportRunResult]:
        """Execute every active report whose next run is due."""
        due = [ReportSnapshot.of(r) for r in await self.reports.get_due(self.clock())]
        results = []
        for report in due:
            results.append(await self.execute_report(report))

        logger.info(
            "Scheduled report sweep finished",
            due=len(due),
            failed=sum(1 for r in results if r.status == "failed"),
        )
        return results

    async def run_single_report(self, report_id: UUID) -> Optional[ReportRunResult]:
        """Run one report now without moving its schedule."""
        report = await self.reports.get_by_id(report_id)
        if report is None:
            return None
        return await self.execute_report(ReportSnapshot.of(report), advance_schedule=False)

    # ============================================
    # AD HOC EXPORTS
    # ============================================

    async def export_data(
        self,
        export_type: ReportType | str,
        date_from: date,
        date_to: date,
    ) -> list[dict[str, Any]]:
        return await self.get_report_data(export_type, date_from, date_to)

    async def export_to_warehouse(
        self,
        export_type: ReportType | str,
        date_from: date,
        date_to: date,
    ) -> dict[str, Any]:
        """
        Push rows to the warehouse.

        Without credentials the request is queued as `pending` for later
        processing and reported back as not successful.
        """
        export_type = ReportType(export_type).value
        if not self.warehouse.configured:
            export = await self.exports.enqueue(
                export_type=export_type,
                date_from=date_from,
                date_to=date_to,
                status=WarehouseExportStatus.PENDING,
                error_message="Warehouse credentials not configured",
            )
            logger.warning("Warehouse export queued without credentials", export_type=export_type)
            return {
                "success": False,
                "status": WarehouseExportStatus.PENDING.value,
                "message": "Warehouse export queued - credentials not configured",
                "export_id": str(export.id),
            }

        export = await self.exports.enqueue(
            export_type=export_type,
            date_from=date_from,
            date_to=date_to,
            status=WarehouseExportStatus.PROCESSING,
        )
        export_id = export.id
        rows = await self.export_data(export_type, date_from, date_to)
        try:
            inserted = await self.warehouse.insert_rows(rows)
        except DeliveryError as e:
            await self.exports.finish(
                export,
                status=WarehouseExportStatus.FAILED,
                error_message=str(e),
                completed_at=self.clock(),
            )
            return {
                "success": False,
                "status": WarehouseExportStatus.FAILED.value,
                "error": str(e),
                "export_id": str(export_id),
            }

        await self.exports.finish(
            export,
            status=WarehouseExportStatus.COMPLETED,
            records_exported=inserted,
            completed_at=self.clock(),
        )
        return {
            "success": True,
            "status": WarehouseExportStatus.COMPLETED.value,
            "records_exported": inserted,
            "export_id": str(export_id),
        }
