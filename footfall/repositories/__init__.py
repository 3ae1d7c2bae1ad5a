"""
Repository package for data access layer.
"""
from footfall.repositories.alert import AlertConfigRepository, AlertLogRepository
from footfall.repositories.analytics import (
    EventRepository,
    GeoAggregateRepository,
    HeatmapRepository,
    SessionRepository,
    UniqueVisitRepository,
)
from footfall.repositories.base import BaseRepository
from footfall.repositories.funnel import FunnelRepository
from footfall.repositories.report import (
    ReportHistoryRepository,
    ScheduledReportRepository,
    WarehouseExportRepository,
)

__all__ = [
    "BaseRepository",
    "SessionRepository",
    "EventRepository",
    "UniqueVisitRepository",
    "HeatmapRepository",
    "GeoAggregateRepository",
    "FunnelRepository",
    "AlertConfigRepository",
    "AlertLogRepository",
    "ScheduledReportRepository",
    "ReportHistoryRepository",
    "WarehouseExportRepository",
]
