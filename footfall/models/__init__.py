"""
SQLAlchemy models package.
All models are imported here for easy access and Alembic discovery.
"""
from footfall.models.alert import (
    AlertCondition,
    AlertConfig,
    AlertLog,
    AlertMetric,
    ComparisonPeriod,
    NotificationChannel,
)
from footfall.models.analytics import (
    AnalyticsEvent,
    AnalyticsSession,
    EventType,
    GeoAggregate,
    HeatmapBucket,
    UniqueVisit,
)
from footfall.models.funnel import Funnel, FunnelResult, FunnelRunStatus
from footfall.models.report import (
    DateRangeKind,
    DeliveryMethod,
    ReportClaim,
    ReportHistory,
    ReportRunStatus,
    ReportSchedule,
    ReportType,
    ScheduledReport,
    WarehouseExport,
    WarehouseExportStatus,
)

__all__ = [
    # Ingestion
    "AnalyticsSession",
    "AnalyticsEvent",
    "EventType",
    "UniqueVisit",
    "HeatmapBucket",
    "GeoAggregate",
    # Funnels
    "Funnel",
    "FunnelResult",
    "FunnelRunStatus",
    # Alerts
    "AlertConfig",
    "AlertLog",
    "AlertMetric",
    "AlertCondition",
    "ComparisonPeriod",
    "NotificationChannel",
    # Reports
    "ScheduledReport",
    "ReportHistory",
    "ReportType",
    "ReportSchedule",
    "DateRangeKind",
    "DeliveryMethod",
    "ReportRunStatus",
    "ReportClaim",
    "WarehouseExport",
    "WarehouseExportStatus",
]
