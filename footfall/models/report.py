"""
Scheduled reports, their execution history, and warehouse export requests.
"""
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Time,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from footfall.core.database import Base, JSONType


class ReportType(str, Enum):
    SUMMARY = "summary"
    DETAILED = "detailed"
    GEO = "geo"
    FUNNEL = "funnel"


class ReportSchedule(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class DateRangeKind(str, Enum):
    YESTERDAY = "yesterday"
    LAST_7_DAYS = "last_7_days"
    LAST_30_DAYS = "last_30_days"
    LAST_MONTH = "last_month"


class DeliveryMethod(str, Enum):
    EMAIL = "email"
    STORAGE = "storage"
    WAREHOUSE = "warehouse"


class ReportRunStatus(str, Enum):
    """Status of one report execution attempt."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ReportClaim(str, Enum):
    """Claim flag preventing two concurrent runs of the same report."""

    IDLE = "idle"
    RUNNING = "running"


class WarehouseExportStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ScheduledReport(Base):
    """A report materialized and delivered on a recurring schedule."""

    __tablename__ = "analytics_scheduled_reports"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    report_type: Mapped[str] = mapped_column(String(20), nullable=False)

    schedule: Mapped[str] = mapped_column(String(20), nullable=False)
    time_of_day: Mapped[time] = mapped_column(Time, nullable=False)
    day_of_week: Mapped[Optional[int]] = mapped_column(Integer)  # 0 = Sunday
    day_of_month: Mapped[Optional[int]] = mapped_column(Integer)
    date_range: Mapped[str] = mapped_column(String(20), default=DateRangeKind.LAST_7_DAYS.value)
    filters: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)

    delivery_method: Mapped[str] = mapped_column(String(20), nullable=False)
    recipients: Mapped[list[str]] = mapped_column(JSONType, default=list)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    run_status: Mapped[str] = mapped_column(String(20), default=ReportClaim.IDLE.value)
    last_run_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    next_run_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    history: Mapped[list["ReportHistory"]] = relationship(
        "ReportHistory",
        back_populates="scheduled_report",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<ScheduledReport {self.name} [{self.schedule}]>"


class ReportHistory(Base):
    """One execution attempt of a scheduled report."""

    __tablename__ = "analytics_report_history"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    scheduled_report_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("analytics_scheduled_reports.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(String(20), default=ReportRunStatus.RUNNING.value)
    records_count: Mapped[int] = mapped_column(Integer, default=0)
    file_url: Mapped[Optional[str]] = mapped_column(Text)
    file_size: Mapped[Optional[int]] = mapped_column(Integer)
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer)
    error_message: Mapped[Optional[str]] = mapped_column(Text)

    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    scheduled_report: Mapped["ScheduledReport"] = relationship(
        "ScheduledReport",
        back_populates="history",
    )


class WarehouseExport(Base):
    """A request to push analytics rows into the external warehouse."""

    __tablename__ = "analytics_warehouse_exports"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    export_type: Mapped[str] = mapped_column(String(20), nullable=False)
    date_from: Mapped[date] = mapped_column(Date, nullable=False)
    date_to: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=WarehouseExportStatus.PENDING.value)
    records_exported: Mapped[int] = mapped_column(Integer, default=0)
    error_message: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
