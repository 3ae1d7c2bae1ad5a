"""
Alert API routes (admin).
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from footfall.core.database import DbSession
from footfall.repositories.alert import AlertConfigRepository, AlertLogRepository
from footfall.routers.deps import AdminClaims, ClockDep
from footfall.schemas.alert import (
    AlertCheckResponse,
    AlertConfigCreate,
    AlertConfigResponse,
    AlertLogResponse,
    PaginatedAlertLogsResponse,
)
from footfall.services.alerts import AlertService

router = APIRouter(prefix="/alerts", tags=["alerts"])


@router.post("", response_model=AlertConfigResponse, status_code=status.HTTP_201_CREATED)
async def create_alert(
    body: AlertConfigCreate,
    session: DbSession,
    admin: AdminClaims,
) -> AlertConfigResponse:
    alert = await AlertConfigRepository(session).create(body.model_dump(mode="json"))
    return AlertConfigResponse.model_validate(alert)


@router.get("", response_model=list[AlertConfigResponse])
async def list_alerts(
    session: DbSession,
    admin: AdminClaims,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
) -> list[AlertConfigResponse]:
    alerts = await AlertConfigRepository(session).get_all(skip=skip, limit=limit)
    return [AlertConfigResponse.model_validate(a) for a in alerts]


@router.post("/check", response_model=AlertCheckResponse)
async def check_alerts(
    session: DbSession,
    admin: AdminClaims,
    clock: ClockDep,
) -> AlertCheckResponse:
    """Evaluate every active alert against today's numbers."""
    return await AlertService(session, clock=clock).check_alerts()


@router.get("/logs", response_model=PaginatedAlertLogsResponse)
async def list_alert_logs(
    session: DbSession,
    admin: AdminClaims,
    alert_config_id: Optional[UUID] = Query(None),
    unacknowledged: bool = Query(False, description="Only logs not yet acknowledged"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
) -> PaginatedAlertLogsResponse:
    logs, total = await AlertLogRepository(session).list_recent(
        alert_config_id=alert_config_id,
        unacknowledged_only=unacknowledged,
        skip=(page - 1) * page_size,
        limit=page_size,
    )
    return PaginatedAlertLogsResponse(
        items=[AlertLogResponse.model_validate(log) for log in logs],
        total=total,
    )


@router.post("/logs/{log_id}/acknowledge", response_model=AlertLogResponse)
async def acknowledge_alert_log(
    log_id: UUID,
    session: DbSession,
    admin: AdminClaims,
    clock: ClockDep,
) -> AlertLogResponse:
    """Acknowledge a triggered alert. Repeating the call keeps the first timestamp."""
    log = await AlertService(session, clock=clock).acknowledge(log_id)
    if log is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Alert log not found")
    return AlertLogResponse.model_validate(log)
