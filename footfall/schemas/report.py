"""
Report Pydantic schemas for scheduled reports and ad hoc exports.
"""
from datetime import date, datetime, time
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from footfall.models.report import (
    DateRangeKind,
    DeliveryMethod,
    ReportSchedule,
    ReportType,
)


class ScheduledReportCreate(BaseModel):
    """
    Schema for creating a scheduled report.

    day_of_week (0 = Sunday) only applies to weekly schedules and
    day_of_month only to monthly ones; both default to 1.
    """

    name: str = Field(min_length=1, max_length=255)
    report_type: ReportType
    schedule: ReportSchedule
    time_of_day: time = time(9, 0)
    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    day_of_month: Optional[int] = Field(None, ge=1, le=31)
    date_range: DateRangeKind = DateRangeKind.LAST_7_DAYS
    filters: dict[str, Any] = Field(default_factory=dict)
    delivery_method: DeliveryMethod
    recipients: list[str] = Field(default_factory=list)
    is_active: bool = True

    @model_validator(mode="after")
    def align_schedule_days(self) -> "ScheduledReportCreate":
        if self.schedule == ReportSchedule.WEEKLY:
            self.day_of_week = 1 if self.day_of_week is None else self.day_of_week
        else:
            self.day_of_week = None
        if self.schedule == ReportSchedule.MONTHLY:
            self.day_of_month = 1 if self.day_of_month is None else self.day_of_month
        else:
            self.day_of_month = None
        if self.delivery_method == DeliveryMethod.EMAIL and not self.recipients:
            raise ValueError("Email delivery requires at least one recipient")
        return self


class ScheduledReportResponse(BaseModel):
    id: UUID
    name: str
    report_type: str
    schedule: str
    time_of_day: time
    day_of_week: Optional[int] = None
    day_of_month: Optional[int] = None
    date_range: str
    filters: dict[str, Any]
    delivery_method: str
    recipients: list[str]
    is_active: bool
    run_status: str
    last_run_at: Optional[datetime] = None
    next_run_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReportHistoryResponse(BaseModel):
    id: UUID
    scheduled_report_id: UUID
    status: str
    records_count: int
    file_url: Optional[str] = None
    file_size: Optional[int] = None
    duration_ms: Optional[int] = None
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ReportRunResult(BaseModel):
    """Outcome of one report execution, as shown in admin toasts."""

    report_id: UUID
    report_name: str
    status: str
    records: int = 0
    duration_ms: int = 0
    file_url: Optional[str] = None
    error: Optional[str] = None


class ExportRequest(BaseModel):
    """Body of the export endpoint; `action` selects the operation."""

    action: str
    report_id: Optional[UUID] = None
    export_type: ReportType = ReportType.SUMMARY
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    format: Literal["csv", "json"] = "json"

    @model_validator(mode="after")
    def ordered_range(self) -> "ExportRequest":
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        return self
