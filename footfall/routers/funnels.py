"""
Funnel API routes (admin).
"""
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from footfall.core.database import DbSession
from footfall.repositories.funnel import FunnelRepository
from footfall.routers.deps import AdminClaims, ClockDep
from footfall.schemas.funnel import (
    FunnelCreate,
    FunnelEvaluationResponse,
    FunnelResponse,
    FunnelResultResponse,
    StepResult,
)
from footfall.services.funnels import FunnelService

router = APIRouter(prefix="/funnels", tags=["funnels"])


@router.post("", response_model=FunnelResponse, status_code=status.HTTP_201_CREATED)
async def create_funnel(
    body: FunnelCreate,
    session: DbSession,
    admin: AdminClaims,
) -> FunnelResponse:
    funnel = await FunnelRepository(session).create(body.model_dump())
    return FunnelResponse.model_validate(funnel)


@router.get("", response_model=list[FunnelResponse])
async def list_funnels(
    session: DbSession,
    admin: AdminClaims,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
) -> list[FunnelResponse]:
    funnels = await FunnelRepository(session).get_all(skip=skip, limit=limit)
    return [FunnelResponse.model_validate(f) for f in funnels]


@router.post("/evaluate", response_model=FunnelEvaluationResponse)
async def evaluate_funnels(
    session: DbSession,
    admin: AdminClaims,
    clock: ClockDep,
    day: Optional[date] = Query(None, alias="date", description="Defaults to yesterday"),
) -> FunnelEvaluationResponse:
    """Evaluate every active funnel for one day, overwriting earlier results."""
    sweep = await FunnelService(session, clock=clock).evaluate_active(day)
    results = [
        FunnelResultResponse(
            funnel_id=outcome.funnel_id,
            funnel_name=outcome.funnel_name,
            result_date=sweep.day,
            total_sessions=outcome.result.total_sessions,
            step_results=[StepResult(**step) for step in outcome.result.step_results],
            conversion_rate=outcome.result.conversion_rate,
        )
        for outcome in sweep.outcomes
        if outcome.result is not None
    ]
    return FunnelEvaluationResponse(
        date=sweep.day,
        evaluated=sweep.count("completed"),
        skipped=sweep.count("skipped"),
        failed=sweep.count("failed"),
        results=results,
        errors=sweep.errors,
    )


@router.get("/{funnel_id}/results", response_model=list[FunnelResultResponse])
async def funnel_results(
    funnel_id: UUID,
    session: DbSession,
    admin: AdminClaims,
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
) -> list[FunnelResultResponse]:
    repo = FunnelRepository(session)
    if await repo.get_by_id(funnel_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Funnel not found")

    rows = await repo.list_results(funnel_id=funnel_id, date_from=date_from, date_to=date_to)
    return [
        FunnelResultResponse(
            funnel_id=result.funnel_id,
            funnel_name=name,
            result_date=result.result_date,
            total_sessions=result.total_sessions,
            step_results=result.step_results,
            conversion_rate=result.conversion_rate,
            computed_at=result.computed_at,
        )
        for result, name in rows
    ]
