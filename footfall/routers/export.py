"""
Admin export routes: scheduled report runs, ad hoc exports and warehouse pushes.
"""
from datetime import timedelta
from typing import Any

from fastapi import APIRouter, HTTPException, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response

from footfall.core.database import DbSession
from footfall.core.logging import get_logger
from footfall.routers.deps import AdminClaims, ClockDep
from footfall.schemas.report import ExportRequest
from footfall.services.delivery import to_csv
from footfall.services.reports import ReportService

logger = get_logger(__name__)

router = APIRouter(tags=["export"])

EXPORT_ACTIONS = ("run_scheduled_reports", "run_single_report", "export_data", "export_to_bigquery")


@router.post("/export")
async def export(
    body: ExportRequest,
    session: DbSession,
    admin: AdminClaims,
    clock: ClockDep,
) -> Any:
    """Dispatch one export action."""
    if body.action not in EXPORT_ACTIONS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid action")

    service = ReportService(session, clock=clock)
    today = clock().date()
    date_from = body.date_from or today - timedelta(days=7)
    date_to = body.date_to or today

    try:
        if body.action == "run_scheduled_reports":
            results = await service.run_due_reports()
            return {
                "success": True,
                "reports_executed": len(results),
                "results": [r.model_dump(mode="json") for r in results],
            }

        if body.action == "run_single_report":
            if body.report_id is None:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="report_id is required")
            result = await service.run_single_report(body.report_id)
            if result is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found")
            return {"success": True, "result": result.model_dump(mode="json")}

        if body.action == "export_data":
            rows = await service.export_data(body.export_type, date_from, date_to)
            if body.format == "csv":
                filename = f"analytics_{body.export_type.value}_{date_from}_{date_to}.csv"
                return Response(
                    content=to_csv(rows),
                    media_type="text/csv",
                    headers={"Content-Disposition": f'attachment; filename="{filename}"'},
                )
            return JSONResponse(
                content={"success": True, "data": jsonable_encoder(rows), "count": len(rows)}
            )

        return await service.export_to_warehouse(body.export_type, date_from, date_to)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Analytics export failed", action=body.action)
        await session.rollback()
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": str(e)})
