"""
Analytics data models for tracking page traffic and visitor behavior.

Only derived fields are stored. Raw client addresses never reach these
tables; visitors are identified by a salted hash.
"""
from datetime import date, datetime
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    Date,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from footfall.core.database import Base, JSONType


class EventType:
    """Well-known event types emitted by the site tracker."""

    PAGE_VIEW = "page_view"
    CLICK = "click"
    SCROLL = "scroll"

    # Counted as conversions in summaries and alerts
    CONVERSIONS = ("booking", "inquiry", "purchase")


class AnalyticsSession(Base):
    """
    Browsing session keyed by the client-held session token.
    Created by the first batch carrying the token, touched by every later one.
    """

    __tablename__ = "analytics_sessions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    session_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    identity_hash: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    user_agent: Mapped[Optional[str]] = mapped_column(Text)
    device: Mapped[str] = mapped_column(String(20), nullable=False)
    browser: Mapped[str] = mapped_column(String(20), nullable=False)
    referrer_category: Mapped[str] = mapped_column(String(50), nullable=False)
    country: Mapped[Optional[str]] = mapped_column(String(2))

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    last_activity_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    page_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<AnalyticsSession {self.session_id} pages={self.page_count}>"


class AnalyticsEvent(Base):
    """Append-only event record, one row per ingested raw event."""

    __tablename__ = "analytics_events"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    session_id: Mapped[str] = mapped_column(String(255), nullable=False)
    identity_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    page_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    page_title: Mapped[Optional[str]] = mapped_column(String(512))
    element_id: Mapped[Optional[str]] = mapped_column(String(255))
    element_class: Mapped[Optional[str]] = mapped_column(String(512))

    # Interaction geometry
    click_x: Mapped[Optional[float]] = mapped_column(Float)
    click_y: Mapped[Optional[float]] = mapped_column(Float)
    viewport_width: Mapped[Optional[int]] = mapped_column(Integer)
    viewport_height: Mapped[Optional[int]] = mapped_column(Integer)
    scroll_depth: Mapped[Optional[float]] = mapped_column(Float)

    # Traffic source
    referrer_category: Mapped[str] = mapped_column(String(50), nullable=False)
    utm_source: Mapped[Optional[str]] = mapped_column(String(255))
    utm_medium: Mapped[Optional[str]] = mapped_column(String(255))
    utm_campaign: Mapped[Optional[str]] = mapped_column(String(255))

    device: Mapped[str] = mapped_column(String(20), nullable=False)
    browser: Mapped[str] = mapped_column(String(20), nullable=False)

    event_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSONType, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("idx_events_created_path", "created_at", "page_path"),
        Index("idx_events_session_created", "session_id", "created_at"),
        Index("idx_events_type_created", "event_type", "created_at"),
    )


class UniqueVisit(Base):
    """
    At most one row per (visitor, page, UTC day).
    Basis for every "unique visitors" figure.
    """

    __tablename__ = "page_unique_visits"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    identity_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    page_slug: Mapped[str] = mapped_column(String(1024), nullable=False)
    visit_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    session_id: Mapped[str] = mapped_column(String(255), nullable=False)
    device: Mapped[str] = mapped_column(String(20), nullable=False)
    browser: Mapped[str] = mapped_column(String(20), nullable=False)
    referrer_category: Mapped[str] = mapped_column(String(50), nullable=False)
    country: Mapped[Optional[str]] = mapped_column(String(2))

    __table_args__ = (
        UniqueConstraint(
            "identity_hash",
            "page_slug",
            "visit_date",
            name="uq_unique_visits_identity_page_date",
        ),
    )


class HeatmapBucket(Base):
    """Click counter for one grid cell of a page, per day and viewport width."""

    __tablename__ = "analytics_heatmap_buckets"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    page_slug: Mapped[str] = mapped_column(String(1024), nullable=False)
    aggregate_date: Mapped[date] = mapped_column(Date, nullable=False)
    bucket_x: Mapped[int] = mapped_column(Integer, nullable=False)
    bucket_y: Mapped[int] = mapped_column(Integer, nullable=False)
    viewport_width: Mapped[int] = mapped_column(Integer, nullable=False)
    click_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    element_id: Mapped[Optional[str]] = mapped_column(String(255))

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint(
            "page_slug",
            "aggregate_date",
            "bucket_x",
            "bucket_y",
            "viewport_width",
            name="uq_heatmap_bucket",
        ),
        Index("idx_heatmap_page_date", "page_slug", "aggregate_date"),
    )


class GeoAggregate(Base):
    """Daily unique-visit rollup per country."""

    __tablename__ = "analytics_geo_aggregates"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    aggregate_date: Mapped[date] = mapped_column(Date, nullable=False)
    country: Mapped[str] = mapped_column(String(16), nullable=False)
    unique_visitors: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    sessions: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    page_visits: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("aggregate_date", "country", name="uq_geo_date_country"),
    )
