"""
Conversion funnel definitions and their per-day results.
"""
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from footfall.core.database import Base, JSONType


class FunnelRunStatus(str, Enum):
    """Lifecycle of a (funnel, day) computation."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class Funnel(Base):
    """Ordered list of path-pattern steps a session is expected to walk through."""

    __tablename__ = "analytics_funnels"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    # [{"name": "Land", "path_pattern": "/"}, {"name": "Book", "path_pattern": "/booking*"}]
    steps: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    results: Mapped[list["FunnelResult"]] = relationship(
        "FunnelResult",
        back_populates="funnel",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Funnel {self.name} steps={len(self.steps or [])}>"


class FunnelResult(Base):
    """
    Step counts for one funnel on one day.
    Fully overwritten on every recomputation.
    """

    __tablename__ = "analytics_funnel_results"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    funnel_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("analytics_funnels.id", ondelete="CASCADE"),
        nullable=False,
    )
    result_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[str] = mapped_column(String(20), default=FunnelRunStatus.RUNNING.value)
    total_sessions: Mapped[int] = mapped_column(Integer, default=0)
    # [{"step": "Land", "count": 100, "drop_off": 0}, ...]
    step_results: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, default=list)
    conversion_rate: Mapped[float] = mapped_column(Float, default=0.0)
    error_message: Mapped[Optional[str]] = mapped_column(Text)

    computed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    funnel: Mapped["Funnel"] = relationship("Funnel", back_populates="results")

    __table_args__ = (
        UniqueConstraint("funnel_id", "result_date", name="uq_funnel_results_funnel_date"),
    )
