"""
Services package for business logic layer.
"""
from footfall.services.alerts import AlertService
from footfall.services.funnels import FunnelService
from footfall.services.geo import GeoService
from footfall.services.ingestion import IngestionService
from footfall.services.normalizer import InvalidBatchError
from footfall.services.notification_service import NotificationService
from footfall.services.reports import ReportService
from footfall.services.summary import SummaryService

__all__ = [
    "AlertService",
    "FunnelService",
    "GeoService",
    "IngestionService",
    "InvalidBatchError",
    "NotificationService",
    "ReportService",
    "SummaryService",
]
