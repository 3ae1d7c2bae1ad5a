"""
Heatmap bucketing and sampling.
"""
import math
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional

from footfall.core.config import IngestionConfig
from footfall.models.analytics import EventType
from footfall.schemas.tracking import RawEvent

Sampler = Callable[[], float]


@dataclass(frozen=True)
class HeatmapClick:
    page_slug: str
    bucket_x: int
    bucket_y: int
    viewport_width: int
    element_id: Optional[str]


def bucket_for(coordinate: float, grid_size: int = 50) -> int:
    """Lower edge of the grid cell holding the coordinate."""
    return int(math.floor(coordinate / grid_size) * grid_size)


def is_eligible(event: RawEvent) -> bool:
    return (
        event.event_type == EventType.CLICK
        and event.click_x is not None
        and event.click_y is not None
    )


def sample_clicks(
    events: Iterable[RawEvent],
    config: IngestionConfig,
    sampler: Sampler,
) -> Iterator[HeatmapClick]:
    """
    Yield the bucketed clicks admitted by the sampling gate.

    Each eligible click draws independently; rejected clicks are dropped.
    """
    if not config.heatmap_enabled or config.sampling_rate <= 0:
        return
    for event in events:
        if not is_eligible(event):
            continue
        if sampler() >= config.sampling_rate:
            continue
        yield HeatmapClick(
            page_slug=event.page_path,
            bucket_x=bucket_for(event.click_x, config.grid_size),
            bucket_y=bucket_for(event.click_y, config.grid_size),
            viewport_width=event.viewport_width or config.default_viewport_width,
            element_id=event.element_id,
        )
