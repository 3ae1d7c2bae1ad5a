"""
Threshold alert configuration and the audit trail of triggered alerts.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from footfall.core.database import Base, JSONType


class AlertMetric(str, Enum):
    UNIQUE_VISITORS = "unique_visitors"
    PAGE_VIEWS = "page_views"
    SESSIONS = "sessions"
    CONVERSIONS = "conversions"


class AlertCondition(str, Enum):
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    EQUALS = "equals"
    CHANGE_PERCENT = "change_percent"


class ComparisonPeriod(str, Enum):
    PREVIOUS_DAY = "previous_day"
    PREVIOUS_WEEK = "previous_week"
    PREVIOUS_MONTH = "previous_month"


class NotificationChannel(str, Enum):
    EMAIL = "email"
    WHATSAPP = "whatsapp"


class AlertConfig(Base):
    """A metric watched against a threshold, with where to send notifications."""

    __tablename__ = "analytics_alert_configs"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    metric: Mapped[str] = mapped_column(String(50), nullable=False)
    condition: Mapped[str] = mapped_column(String(30), nullable=False)
    threshold: Mapped[float] = mapped_column(Float, nullable=False)
    comparison_period: Mapped[str] = mapped_column(
        String(30),
        default=ComparisonPeriod.PREVIOUS_DAY.value,
    )
    page_filter: Mapped[Optional[str]] = mapped_column(String(1024))

    notification_channels: Mapped[list[str]] = mapped_column(JSONType, default=list)
    # {"email": ["ops@example.com"], "whatsapp": ["+911234567890"]}
    recipients: Mapped[dict[str, list[str]]] = mapped_column(JSONType, default=dict)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    logs: Mapped[list["AlertLog"]] = relationship(
        "AlertLog",
        back_populates="alert_config",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<AlertConfig {self.name}: {self.metric} {self.condition} {self.threshold}>"


class AlertLog(Base):
    """One triggered alert. Append-only apart from acknowledgement."""

    __tablename__ = "analytics_alert_logs"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    alert_config_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("analytics_alert_configs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    triggered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    metric_value: Mapped[float] = mapped_column(Float, nullable=False)
    threshold_value: Mapped[float] = mapped_column(Float, nullable=False)
    comparison_value: Mapped[float] = mapped_column(Float, nullable=False)

    # {"email": "sent", "whatsapp": "failed"}
    notification_status: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    acknowledged_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    alert_config: Mapped["AlertConfig"] = relationship("AlertConfig", back_populates="logs")
