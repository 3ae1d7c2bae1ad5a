"""
Tracking Pydantic schemas: raw browser events and the public read models.
"""
from datetime import date
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class RawEvent(BaseModel):
    """
    One behavioral event as sent by the browser.

    Never stored verbatim; only normalized fields reach the database.
    """

    event_type: str = Field("page_view", min_length=1, max_length=50)
    page_path: str = Field("/", max_length=1024)
    page_title: Optional[str] = Field(None, max_length=512)
    element_id: Optional[str] = Field(None, max_length=255)
    element_class: Optional[str] = Field(None, max_length=512)
    click_x: Optional[float] = None
    click_y: Optional[float] = None
    viewport_width: Optional[int] = Field(None, gt=0)
    viewport_height: Optional[int] = Field(None, gt=0)
    scroll_depth: Optional[float] = Field(None, ge=0)
    referrer: Optional[str] = None
    session_id: Optional[str] = Field(
        None,
        max_length=255,
        validation_alias=AliasChoices("session_id", "session_token"),
    )
    user_agent: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("page_path")
    @classmethod
    def default_empty_path(cls, value: str) -> str:
        return value or "/"

    @field_validator("metadata", mode="before")
    @classmethod
    def null_metadata(cls, value: Any) -> Any:
        return {} if value is None else value


class TrackResponse(BaseModel):
    """Response for an accepted event batch."""

    success: bool = True
    session_id: str
    events_tracked: int


class DateRange(BaseModel):
    start: date
    end: date


class PageStat(BaseModel):
    page: str
    unique_visitors: int


class ReferrerStat(BaseModel):
    referrer: str
    count: int


class SummaryResponse(BaseModel):
    """Traffic summary over a date range."""

    unique_total: int
    unique_today: int
    sessions: int
    page_views: int
    conversions: int
    device_breakdown: dict[str, int]
    top_pages: list[PageStat]
    top_referrers: list[ReferrerStat]
    date_range: DateRange


class HeatmapBucketResponse(BaseModel):
    bucket_x: int
    bucket_y: int
    click_count: int
    element_id: Optional[str] = None
    viewport_width: int

    model_config = ConfigDict(from_attributes=True)


class HeatmapResponse(BaseModel):
    page_slug: str
    date: date
    total_clicks: int
    buckets: list[HeatmapBucketResponse]
