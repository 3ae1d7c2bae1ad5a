"""
Tests for the ingestion pipeline and its concurrent accumulators.
"""
import asyncio

import pytest
from sqlalchemy import func, select

from footfall.core.security import hash_identity
from footfall.models.analytics import AnalyticsEvent, AnalyticsSession, HeatmapBucket, UniqueVisit
from footfall.repositories.analytics import HeatmapRepository, UniqueVisitRepository
from footfall.services.ingestion import IngestionService
from footfall.services.normalizer import InvalidBatchError

from tests.conftest import TEST_SALT, frozen


async def _count(session, model) -> int:
    return (await session.execute(select(func.count()).select_from(model))).scalar_one()


@pytest.fixture
def service_factory(ingestion_config, now):
    def build(session, sampler=lambda: 0.0):
        return IngestionService(session, ingestion_config, sampler=sampler, clock=frozen(now))
    return build


async def test_ingest_persists_session_events_visits_and_heatmap(db_session, service_factory, sample_batch):
    result = await service_factory(db_session).ingest(
        sample_batch,
        user_agent="Mozilla/5.0 (iPhone; CPU iPhone OS 17_0) Mobile Safari/604.1",
        forwarded_for="203.0.113.10, 10.0.0.2",
        peer_address="10.0.0.2",
        headers={"cf-ipcountry": "pk"},
    )
    await db_session.commit()

    assert result.session_id == "sess-abc"
    assert result.events_tracked == 2
    assert result.unique_visits_recorded == 1
    assert result.heatmap_clicks == 1

    tracked = (await db_session.execute(select(AnalyticsSession))).scalar_one()
    assert tracked.page_count == 1
    assert tracked.device == "mobile"
    assert tracked.referrer_category == "google"
    assert tracked.country == "PK"
    assert tracked.identity_hash == hash_identity("203.0.113.10", TEST_SALT)

    events = (await db_session.execute(select(AnalyticsEvent))).scalars().all()
    assert {e.event_type for e in events} == {"page_view", "click"}
    assert all(e.identity_hash == tracked.identity_hash for e in events)

    bucket = (await db_session.execute(select(HeatmapBucket))).scalar_one()
    assert (bucket.bucket_x, bucket.bucket_y, bucket.viewport_width) == (100, 450, 1280)
    assert bucket.click_count == 1
    assert bucket.element_id == "book-now"


async def test_second_batch_same_session_accumulates(db_session, service_factory, sample_batch):
    service = service_factory(db_session)
    await service.ingest(sample_batch, peer_address="203.0.113.10")
    await service.ingest(sample_batch, peer_address="203.0.113.10")
    await db_session.commit()

    tracked = (await db_session.execute(select(AnalyticsSession))).scalar_one()
    assert tracked.page_count == 2
    assert await _count(db_session, AnalyticsEvent) == 4
    # Same visitor, page and day
    assert await _count(db_session, UniqueVisit) == 1

    bucket = (await db_session.execute(select(HeatmapBucket))).scalar_one()
    assert bucket.click_count == 2


async def test_distinct_visitors_each_count_once(db_session, service_factory):
    service = service_factory(db_session)
    for address in ("198.51.100.1", "198.51.100.2", "198.51.100.1"):
        await service.ingest({"page_path": "/villages"}, peer_address=address)
    await db_session.commit()

    assert await _count(db_session, UniqueVisit) == 2
    # No session token, so every batch starts a new session
    assert await _count(db_session, AnalyticsSession) == 3


async def test_rejected_batch_writes_nothing(db_session, service_factory):
    payload = {"events": [{"page_path": f"/p/{i}"} for i in range(101)]}

    with pytest.raises(InvalidBatchError):
        await service_factory(db_session).ingest(payload, peer_address="203.0.113.1")

    assert await _count(db_session, AnalyticsEvent) == 0
    assert await _count(db_session, AnalyticsSession) == 0


async def test_unsampled_clicks_are_dropped(db_session, ingestion_config, now):
    service = IngestionService(db_session, ingestion_config, sampler=lambda: 1.0, clock=frozen(now))
    await service.ingest(
        {"event_type": "click", "page_path": "/", "click_x": 10, "click_y": 10},
        peer_address="203.0.113.1",
    )
    await db_session.commit()

    assert await _count(db_session, AnalyticsEvent) == 1
    assert await _count(db_session, HeatmapBucket) == 0


async def test_concurrent_heatmap_increments_are_not_lost(session_factory, now):
    """N writers on separate connections end with click_count == N."""
    writers = 10

    async def click():
        async with session_factory() as session:
            await HeatmapRepository(session).increment(
                page_slug="/",
                aggregate_date=now.date(),
                bucket_x=100,
                bucket_y=200,
                viewport_width=1440,
                element_id=None,
                now=now,
            )
            await session.commit()

    await asyncio.gather(*(click() for _ in range(writers)))

    async with session_factory() as session:
        bucket = (await session.execute(select(HeatmapBucket))).scalar_one()
    assert bucket.click_count == writers


async def test_concurrent_unique_visits_record_once(session_factory, now):
    async def visit():
        async with session_factory() as session:
            created = await UniqueVisitRepository(session).record(
                identity_hash="a" * 64,
                page_slug="/villages/hunza",
                visit_date=now.date(),
                session_id="s-1",
                device="desktop",
                browser="chrome",
                referrer_category="direct",
                country=None,
            )
            await session.commit()
            return created

    outcomes = await asyncio.gather(*(visit() for _ in range(8)))

    assert outcomes.count(True) == 1
    async with session_factory() as session:
        assert await _count(session, UniqueVisit) == 1
