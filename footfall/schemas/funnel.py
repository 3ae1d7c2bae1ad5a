"""
Funnel Pydantic schemas for request/response validation.
"""
from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class FunnelStep(BaseModel):
    """A named step matched against page paths."""

    name: str = Field(min_length=1, max_length=100)
    path_pattern: str = Field(min_length=1, max_length=1024)

    model_config = ConfigDict(str_strip_whitespace=True)


class FunnelCreate(BaseModel):
    """Schema for creating a funnel. At least two steps are required."""

    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    steps: list[FunnelStep] = Field(min_length=2)
    is_active: bool = True

    model_config = ConfigDict(str_strip_whitespace=True)


class FunnelResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    steps: list[FunnelStep]
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class StepResult(BaseModel):
    step: str
    count: int
    drop_off: int


class FunnelResultResponse(BaseModel):
    funnel_id: UUID
    funnel_name: str
    result_date: date
    total_sessions: int
    step_results: list[StepResult]
    conversion_rate: float
    computed_at: Optional[datetime] = None


class FunnelEvaluationResponse(BaseModel):
    """Outcome of evaluating the active funnels for a day."""

    date: date
    evaluated: int
    skipped: int
    failed: int
    results: list[FunnelResultResponse]
    errors: list[str] = Field(default_factory=list)
