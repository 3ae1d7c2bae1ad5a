"""
Pydantic schemas package for request/response validation.
"""
from footfall.schemas.alert import (
    AlertCheckResponse,
    AlertConfigCreate,
    AlertConfigResponse,
    AlertLogResponse,
    PaginatedAlertLogsResponse,
)
from footfall.schemas.funnel import (
    FunnelCreate,
    FunnelEvaluationResponse,
    FunnelResponse,
    FunnelResultResponse,
    FunnelStep,
    StepResult,
)
from footfall.schemas.report import (
    ExportRequest,
    ReportHistoryResponse,
    ReportRunResult,
    ScheduledReportCreate,
    ScheduledReportResponse,
)
from footfall.schemas.tracking import (
    HeatmapBucketResponse,
    HeatmapResponse,
    RawEvent,
    SummaryResponse,
    TrackResponse,
)

__all__ = [
    # Tracking
    "RawEvent",
    "TrackResponse",
    "SummaryResponse",
    "HeatmapBucketResponse",
    "HeatmapResponse",
    # Funnels
    "FunnelStep",
    "FunnelCreate",
    "FunnelResponse",
    "StepResult",
    "FunnelResultResponse",
    "FunnelEvaluationResponse",
    # Alerts
    "AlertConfigCreate",
    "AlertConfigResponse",
    "AlertLogResponse",
    "PaginatedAlertLogsResponse",
    "AlertCheckResponse",
    # Reports
    "ScheduledReportCreate",
    "ScheduledReportResponse",
    "ReportHistoryResponse",
    "ReportRunResult",
    "ExportRequest",
]
