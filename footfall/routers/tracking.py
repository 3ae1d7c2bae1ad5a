"""
Public tracking routes called from the browser: event ingestion, traffic
summary and heatmap reads.
"""
import json
from datetime import date
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from footfall.core.database import DbSession
from footfall.core.logging import get_logger
from footfall.routers.deps import ClockDep, IngestionSettings
from footfall.schemas.tracking import HeatmapResponse, SummaryResponse, TrackResponse
from footfall.services.ingestion import IngestionService
from footfall.services.normalizer import InvalidBatchError
from footfall.services.summary import SummaryService

logger = get_logger(__name__)

router = APIRouter(tags=["tracking"])


@router.post("/track", response_model=TrackResponse)
async def track(
    request: Request,
    session: DbSession,
    config: IngestionSettings,
    clock: ClockDep,
):
    """
    Ingest one batch of events.

    Accepts `{"events": [...]}` or a single event object.
    """
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Invalid JSON body"})

    service = IngestionService(session, config, clock=clock)
    try:
        result = await service.ingest(
            payload,
            user_agent=request.headers.get("user-agent"),
            forwarded_for=request.headers.get("x-forwarded-for"),
            peer_address=request.client.host if request.client else None,
            headers=request.headers,
        )
    except InvalidBatchError as e:
        logger.info("Rejected batch", error=str(e))
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": str(e)})
    except Exception as e:
        logger.exception("Tracking failed")
        await session.rollback()
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": str(e)})

    return TrackResponse(session_id=result.session_id, events_tracked=result.events_tracked)


@router.get("/summary", response_model=SummaryResponse)
async def summary(
    session: DbSession,
    clock: ClockDep,
    start: Optional[date] = Query(None, description="First day, inclusive"),
    end: Optional[date] = Query(None, description="Last day, inclusive"),
    page_slug: Optional[str] = Query(None, description="Scope visitor counts to one page"),
) -> SummaryResponse:
    """Traffic summary for the dashboard (default: the last 7 days)."""
    if start and end and start > end:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start must not be after end")
    return await SummaryService(session).summarize(
        today=clock().date(),
        start=start,
        end=end,
        page_slug=page_slug,
    )


@router.get("/heatmap", response_model=HeatmapResponse)
async def heatmap(
    session: DbSession,
    clock: ClockDep,
    page_slug: Optional[str] = Query(None),
    day: Optional[date] = Query(None, alias="date"),
) -> HeatmapResponse:
    """Click buckets for one page and day (default: today)."""
    if not page_slug:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="page_slug is required")
    return await SummaryService(session).heatmap(page_slug, day or clock().date())
