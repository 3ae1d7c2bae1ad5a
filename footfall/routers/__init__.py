"""
API routers package.
"""
from footfall.routers.alerts import router as alerts_router
from footfall.routers.export import router as export_router
from footfall.routers.funnels import router as funnels_router
from footfall.routers.health import router as health_router
from footfall.routers.reports import router as reports_router
from footfall.routers.tracking import router as tracking_router
from footfall.routers.worker import router as worker_router

__all__ = [
    "health_router",
    "tracking_router",
    "export_router",
    "funnels_router",
    "alerts_router",
    "reports_router",
    "worker_router",
]
