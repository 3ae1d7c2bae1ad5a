"""
Alert Pydantic schemas for request/response validation.
"""
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from footfall.models.alert import (
    AlertCondition,
    AlertMetric,
    ComparisonPeriod,
    NotificationChannel,
)


class AlertConfigCreate(BaseModel):
    """Schema for creating an alert configuration."""

    name: str = Field(min_length=1, max_length=255)
    metric: AlertMetric
    condition: AlertCondition
    threshold: float
    comparison_period: ComparisonPeriod = ComparisonPeriod.PREVIOUS_DAY
    page_filter: Optional[str] = Field(None, max_length=1024)
    notification_channels: list[NotificationChannel] = Field(default_factory=list)
    recipients: dict[NotificationChannel, list[str]] = Field(default_factory=dict)
    is_active: bool = True


class AlertConfigResponse(BaseModel):
    id: UUID
    name: str
    metric: str
    condition: str
    threshold: float
    comparison_period: str
    page_filter: Optional[str] = None
    notification_channels: list[str]
    recipients: dict[str, list[str]]
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AlertLogResponse(BaseModel):
    id: UUID
    alert_config_id: UUID
    triggered_at: datetime
    metric_value: float
    threshold_value: float
    comparison_value: float
    notification_status: dict[str, Any]
    message: str
    acknowledged_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PaginatedAlertLogsResponse(BaseModel):
    items: list[AlertLogResponse]
    total: int


class AlertCheckResponse(BaseModel):
    """Summary of one alert sweep."""

    checked: int
    triggered: int
    failed: int
    logs: list[AlertLogResponse]
    errors: list[str] = Field(default_factory=list)
