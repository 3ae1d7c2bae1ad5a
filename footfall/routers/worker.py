"""
Admin trigger for the nightly analytics rollup.
"""
from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import JSONResponse

from footfall.core.database import DbSession
from footfall.core.logging import get_logger
from footfall.routers.deps import AdminClaims, ClockDep
from footfall.services.rollup import WORKER_ACTIONS, run_rollup

logger = get_logger(__name__)

router = APIRouter(tags=["worker"])


@router.post("/worker")
async def run_worker(
    session: DbSession,
    admin: AdminClaims,
    clock: ClockDep,
    action: str = Query("all", description="all, funnels, geo or cleanup"),
    day: Optional[date] = Query(None, alias="date", description="Defaults to yesterday"),
) -> Any:
    if action not in WORKER_ACTIONS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown action '{action}'")

    try:
        results = await run_rollup(session, action, day, clock=clock)
    except Exception as e:
        logger.exception("Analytics worker failed", action=action)
        await session.rollback()
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": str(e)})

    return {"success": True, "results": results}
