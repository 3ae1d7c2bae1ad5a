"""
Tests for the nightly rollup: geo aggregation, retention cleanup and the worker trigger.
"""
from datetime import date, timedelta

import pytest
from sqlalchemy import select

from footfall.models.analytics import AnalyticsEvent, GeoAggregate, HeatmapBucket, UniqueVisit
from footfall.services.geo import GeoService
from footfall.services.job_queue import WorkerSettings
from footfall.services.maintenance import cleanup_old_data
from footfall.services.rollup import run_rollup

from tests.conftest import frozen

DAY = date(2025, 3, 11)


async def _seed_visits(db_session):
    visits = [
        ("a", "/", "s-1", "PK"),
        ("a", "/villages", "s-1", "PK"),
        ("b", "/", "s-2", "PK"),
        ("c", "/", "s-3", "GB"),
        ("d", "/", "s-4", None),
    ]
    db_session.add_all(
        UniqueVisit(
            identity_hash=identity * 64,
            page_slug=page,
            visit_date=DAY,
            session_id=session_id,
            device="desktop",
            browser="chrome",
            referrer_category="direct",
            country=country,
        )
        for identity, page, session_id, country in visits
    )
    await db_session.commit()


async def _geo_rows(db_session) -> dict[str, tuple[int, int, int]]:
    rows = (await db_session.execute(select(GeoAggregate))).scalars().all()
    return {r.country: (r.unique_visitors, r.sessions, r.page_visits) for r in rows}


async def test_geo_rollup_groups_by_country(db_session, now):
    await _seed_visits(db_session)

    countries = await GeoService(db_session, clock=frozen(now)).rollup(DAY)
    await db_session.commit()

    assert countries == 3
    assert await _geo_rows(db_session) == {
        "PK": (2, 2, 3),
        "GB": (1, 1, 1),
        "unknown": (1, 1, 1),
    }


async def test_geo_rollup_rerun_replaces_counts(db_session, now):
    await _seed_visits(db_session)
    service = GeoService(db_session, clock=frozen(now))
    await service.rollup(DAY)
    await db_session.commit()

    await service.rollup(DAY)
    await db_session.commit()

    assert (await _geo_rows(db_session))["PK"] == (2, 2, 3)


async def test_cleanup_removes_only_expired_rows(db_session, now):
    def event(age_days: int) -> AnalyticsEvent:
        return AnalyticsEvent(
            session_id="s",
            identity_hash="e" * 64,
            event_type="page_view",
            page_path="/",
            referrer_category="direct",
            device="desktop",
            browser="chrome",
            event_metadata={},
            created_at=now - timedelta(days=age_days),
        )

    db_session.add_all([event(40), event(5)])
    db_session.add_all(
        HeatmapBucket(
            page_slug="/",
            aggregate_date=now.date() - timedelta(days=age),
            bucket_x=0,
            bucket_y=0,
            viewport_width=1920,
            click_count=1,
            updated_at=now,
        )
        for age in (100, 10)
    )
    await db_session.commit()

    removed = await cleanup_old_data(
        db_session,
        clock=frozen(now),
        event_retention_days=30,
        aggregate_retention_days=90,
    )
    await db_session.commit()

    assert removed == {"events": 1, "heatmap_buckets": 1, "geo_aggregates": 0}
    remaining = (await db_session.execute(select(AnalyticsEvent))).scalars().all()
    assert len(remaining) == 1


async def test_run_rollup_geo_only(db_session, now):
    await _seed_visits(db_session)

    results = await run_rollup(db_session, "geo", DAY, clock=frozen(now))

    assert results == {"date": "2025-03-11", "geo": {"countries": 3}}


async def test_run_rollup_defaults_to_yesterday(db_session, now):
    results = await run_rollup(db_session, "funnels", clock=frozen(now))

    assert results["date"] == "2025-03-11"
    assert results["funnels"] == {"completed": 0, "skipped": 0, "failed": 0, "errors": []}


async def test_run_rollup_rejects_unknown_action(db_session):
    with pytest.raises(ValueError):
        await run_rollup(db_session, "reindex", DAY)


async def test_worker_endpoint(async_client, admin_headers, db_session):
    await _seed_visits(db_session)

    response = await async_client.post(
        "/api/analytics/worker",
        params={"action": "all", "date": DAY.isoformat()},
        headers=admin_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["results"]["date"] == "2025-03-11"
    assert data["results"]["geo"] == {"countries": 3}
    assert set(data["results"]["cleanup"]) == {"events", "heatmap_buckets", "geo_aggregates"}


async def test_worker_endpoint_rejects_unknown_action(async_client, admin_headers):
    response = await async_client.post(
        "/api/analytics/worker",
        params={"action": "reindex"},
        headers=admin_headers,
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Unknown action 'reindex'"}


def test_worker_schedules_background_jobs():
    names = {job.name for job in WorkerSettings.cron_jobs}

    assert names == {
        "cron:check_alerts_job",
        "cron:run_scheduled_reports_job",
        "cron:daily_rollup_job",
    }


def test_scheduled_jobs_are_not_retried():
    reports_job = next(
        job for job in WorkerSettings.cron_jobs if job.name == "cron:run_scheduled_reports_job"
    )

    assert WorkerSettings.retry_jobs is False
    assert WorkerSettings.max_tries == 1
    assert reports_job.max_tries == 1
