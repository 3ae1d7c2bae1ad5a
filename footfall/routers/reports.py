"""
Scheduled report API routes (admin).
"""
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from footfall.core.database import DbSession
from footfall.repositories.report import ReportHistoryRepository, ScheduledReportRepository
from footfall.routers.deps import AdminClaims, ClockDep
from footfall.schemas.report import (
    ReportHistoryResponse,
    ScheduledReportCreate,
    ScheduledReportResponse,
)
from footfall.services.scheduling import compute_next_run

router = APIRouter(prefix="/reports", tags=["reports"])


@router.post("", response_model=ScheduledReportResponse, status_code=status.HTTP_201_CREATED)
async def create_report(
    body: ScheduledReportCreate,
    session: DbSession,
    admin: AdminClaims,
    clock: ClockDep,
) -> ScheduledReportResponse:
    """Create a scheduled report; its first run is the next occurrence after now."""
    values = body.model_dump(mode="json")
    values["time_of_day"] = body.time_of_day
    values["next_run_at"] = compute_next_run(
        body.schedule,
        body.time_of_day,
        clock(),
        day_of_week=body.day_of_week,
        day_of_month=body.day_of_month,
    )
    report = await ScheduledReportRepository(session).create(values)
    return ScheduledReportResponse.model_validate(report)


@router.get("", response_model=list[ScheduledReportResponse])
async def list_reports(
    session: DbSession,
    admin: AdminClaims,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
) -> list[ScheduledReportResponse]:
    reports = await ScheduledReportRepository(session).get_all(skip=skip, limit=limit)
    return [ScheduledReportResponse.model_validate(r) for r in reports]


@router.get("/{report_id}/history", response_model=list[ReportHistoryResponse])
async def report_history(
    report_id: UUID,
    session: DbSession,
    admin: AdminClaims,
    limit: int = Query(50, ge=1, le=200),
) -> list[ReportHistoryResponse]:
    if await ScheduledReportRepository(session).get_by_id(report_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found")
    history = await ReportHistoryRepository(session).list_for_report(report_id, limit=limit)
    return [ReportHistoryResponse.model_validate(h) for h in history]
