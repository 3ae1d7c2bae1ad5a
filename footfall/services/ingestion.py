"""
Ingestion pipeline for one event batch.

normalize -> anonymize -> session upsert -> append events -> unique visits
-> heatmap. Everything runs inside the caller's transaction, so a batch is
either fully persisted or not at all.
"""
import random
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from footfall.core.clock import Clock, utcnow
from footfall.core.config import IngestionConfig
from footfall.core.logging import get_logger
from footfall.core.security import resolve_client_address
from footfall.repositories.analytics import (
    EventRepository,
    HeatmapRepository,
    SessionRepository,
    UniqueVisitRepository,
)
from footfall.services.heatmap import Sampler, sample_clicks
from footfall.services.normalizer import NormalizedBatch, normalize_batch, parse_batch

logger = get_logger(__name__)


@dataclass
class IngestResult:
    session_id: str
    events_tracked: int
    unique_visits_recorded: int
    heatmap_clicks: int


class IngestionService:
    """Persists one batch of browser events."""

    def __init__(
        self,
        session: AsyncSession,
        config: IngestionConfig,
        sampler: Sampler = random.random,
        clock: Clock = utcnow,
    ) -> None:
        self.session = session
        self.config = config
        self.sampler = sampler
        self.clock = clock
        self.sessions = SessionRepository(session)
        self.events = EventRepository(session)
        self.unique_visits = UniqueVisitRepository(session)
        self.heatmap = HeatmapRepository(session)

    async def ingest(
        self,
        payload: Any,
        *,
        user_agent: Optional[str] = None,
        forwarded_for: Optional[str] = None,
        peer_address: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> IngestResult:
        """
        Validate and store a request body.

        Raises InvalidBatchError before any write if the batch is rejected.
        """
        raw_events = parse_batch(payload, self.config.max_batch_size)
        country = (headers or {}).get(self.config.country_header)
        batch = normalize_batch(
            raw_events,
            config=self.config,
            user_agent=user_agent,
            client_address=resolve_client_address(forwarded_for, peer_address),
            country=country,
        )

        now = self.clock()
        page_views = batch.page_views

        await self.sessions.track(
            session_id=batch.session_id,
            identity_hash=batch.identity_hash,
            user_agent=batch.user_agent,
            device=batch.device,
            browser=batch.browser,
            referrer_category=batch.referrer_category,
            country=batch.country,
            page_views=len(page_views),
            now=now,
        )

        await self.events.append_many(self._event_records(batch, now))

        recorded = 0
        for event in page_views:
            created = await self.unique_visits.record(
                identity_hash=batch.identity_hash,
                page_slug=event.page_path,
                visit_date=now.date(),
                session_id=batch.session_id,
                device=batch.device,
                browser=batch.browser,
                referrer_category=batch.referrer_category,
                country=batch.country,
            )
            recorded += int(created)

        clicks = 0
        for click in sample_clicks(batch.events, self.config, self.sampler):
            await self.heatmap.increment(
                page_slug=click.page_slug,
                aggregate_date=now.date(),
                bucket_x=click.bucket_x,
                bucket_y=click.bucket_y,
                viewport_width=click.viewport_width,
                element_id=click.element_id,
                now=now,
            )
            clicks += 1

        logger.info(
            "Tracked batch",
            session_id=batch.session_id,
            new_session=batch.session_generated,
            events=len(batch.events),
            unique_visits=recorded,
            heatmap_clicks=clicks,
        )

        return IngestResult(
            session_id=batch.session_id,
            events_tracked=len(batch.events),
            unique_visits_recorded=recorded,
            heatmap_clicks=clicks,
        )

    def _event_records(self, batch: NormalizedBatch, now) -> list[dict[str, Any]]:
        return [
            {
                "session_id": batch.session_id,
                "identity_hash": batch.identity_hash,
                "event_type": event.event_type,
                "page_path": event.page_path,
                "page_title": event.page_title,
                "element_id": event.element_id,
                "element_class": event.element_class,
                "click_x": event.click_x,
                "click_y": event.click_y,
                "viewport_width": event.viewport_width,
                "viewport_height": event.viewport_height,
                "scroll_depth": event.scroll_depth,
                "referrer_category": batch.referrer_category,
                "utm_source": batch.utm["utm_source"],
                "utm_medium": batch.utm["utm_medium"],
                "utm_campaign": batch.utm["utm_campaign"],
                "device": batch.device,
                "browser": batch.browser,
                "event_metadata": event.metadata,
                "created_at": now,
            }
            for event in batch.events
        ]
