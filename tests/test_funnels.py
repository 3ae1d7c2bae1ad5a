"""
Tests for funnel pattern matching, computation and the evaluation claim.
"""
from datetime import date, datetime, time, timedelta, timezone

import pytest
from sqlalchemy import select

from footfall.models.analytics import AnalyticsEvent
from footfall.models.funnel import Funnel, FunnelResult, FunnelRunStatus
from footfall.services.funnels import FunnelService, compute_funnel, path_matches

from tests.conftest import frozen

DAY = date(2025, 3, 11)

BOOKING_STEPS = [
    {"name": "land", "path_pattern": "/"},
    {"name": "browse", "path_pattern": "/marketplace*"},
    {"name": "book", "path_pattern": "/booking*"},
]


def _scenario_paths() -> dict[str, set[str]]:
    """100 sessions land, 40 browse the marketplace, 10 of those book."""
    paths = {}
    for i in range(100):
        visited = {"/"}
        if i < 40:
            visited.add("/marketplace")
        if i < 10:
            visited.add(f"/booking/{i}")
        paths[f"s-{i}"] = visited
    return paths


@pytest.mark.parametrize(
    "pattern, path, expected",
    [
        ("/", "/", True),
        ("/", "/villages", False),
        ("/marketplace*", "/marketplace", True),
        ("/marketplace*", "/marketplace/pottery", True),
        ("/booking/*", "/booking/42", True),
        ("/booking/*", "/bookings", False),
        ("/villages", "/villages", True),
        ("/villages", "/villages/hunza", True),
        ("/villages", "/villages-map", False),
        ("/villages", "/villages?ref=home", True),
        ("/Villages", "/villages", False),
    ],
)
def test_path_matches(pattern, path, expected):
    assert path_matches(pattern, path) is expected


def test_compute_funnel_booking_scenario():
    result = compute_funnel(BOOKING_STEPS, _scenario_paths())

    assert result.total_sessions == 100
    assert result.step_results == [
        {"step": "land", "count": 100, "drop_off": 0},
        {"step": "browse", "count": 40, "drop_off": 60},
        {"step": "book", "count": 10, "drop_off": 30},
    ]
    assert result.conversion_rate == 10.0


def test_compute_funnel_no_sessions():
    result = compute_funnel(BOOKING_STEPS, {})

    assert result.total_sessions == 0
    assert result.conversion_rate == 0.0
    assert [s["count"] for s in result.step_results] == [0, 0, 0]


def test_compute_funnel_first_step_drop_off_against_universe():
    paths = {"a": {"/villages"}, "b": {"/"}, "c": {"/"}}

    result = compute_funnel(BOOKING_STEPS, paths)

    assert result.step_results[0] == {"step": "land", "count": 2, "drop_off": 1}


def test_conversion_rate_rounded():
    paths = {f"s-{i}": {"/"} for i in range(3)}
    paths["s-0"].add("/booking")

    result = compute_funnel(BOOKING_STEPS[:1] + BOOKING_STEPS[2:], paths)

    assert result.conversion_rate == 33.33


async def _seed_views(db_session, day: date):
    moment = datetime.combine(day, time(12, 0), tzinfo=timezone.utc)
    rows = []
    for session_id, paths in _scenario_paths().items():
        for path in paths:
            rows.append(
                AnalyticsEvent(
                    session_id=session_id,
                    identity_hash=session_id.ljust(64, "0"),
                    event_type="page_view",
                    page_path=path,
                    referrer_category="direct",
                    device="desktop",
                    browser="chrome",
                    event_metadata={},
                    created_at=moment,
                )
            )
    # A click on another day must not widen the universe
    rows.append(
        AnalyticsEvent(
            session_id="other-day",
            identity_hash="f" * 64,
            event_type="page_view",
            page_path="/",
            referrer_category="direct",
            device="desktop",
            browser="chrome",
            event_metadata={},
            created_at=moment - timedelta(days=1),
        )
    )
    db_session.add_all(rows)
    await db_session.commit()


async def _create_funnel(db_session) -> Funnel:
    funnel = Funnel(name="Booking", steps=BOOKING_STEPS, is_active=True)
    db_session.add(funnel)
    await db_session.commit()
    return funnel


async def test_evaluate_stores_result(db_session, now):
    await _seed_views(db_session, DAY)
    funnel = await _create_funnel(db_session)

    outcome = await FunnelService(db_session, clock=frozen(now)).evaluate(funnel, DAY)

    assert outcome.status == "completed"
    stored = (await db_session.execute(select(FunnelResult))).scalar_one()
    assert stored.status == FunnelRunStatus.COMPLETED.value
    assert stored.total_sessions == 100
    assert stored.conversion_rate == 10.0
    assert stored.step_results[1] == {"step": "browse", "count": 40, "drop_off": 60}


async def test_re_evaluation_overwrites_single_row(db_session, now):
    await _seed_views(db_session, DAY)
    funnel = await _create_funnel(db_session)
    service = FunnelService(db_session, clock=frozen(now))

    await service.evaluate(funnel, DAY)
    await service.evaluate(funnel, DAY)

    rows = (await db_session.execute(select(FunnelResult))).scalars().all()
    assert len(rows) == 1
    assert rows[0].total_sessions == 100


async def test_running_claim_skips_second_evaluator(db_session, now):
    funnel = await _create_funnel(db_session)
    db_session.add(
        FunnelResult(
            funnel_id=funnel.id,
            result_date=DAY,
            status=FunnelRunStatus.RUNNING.value,
            total_sessions=0,
            step_results=[],
            conversion_rate=0.0,
        )
    )
    await db_session.commit()

    outcome = await FunnelService(db_session, clock=frozen(now)).evaluate(funnel, DAY)

    assert outcome.status == "skipped"


async def test_evaluate_active_defaults_to_yesterday(db_session):
    await _seed_views(db_session, DAY)
    await _create_funnel(db_session)
    inactive = Funnel(name="Old", steps=BOOKING_STEPS, is_active=False)
    db_session.add(inactive)
    await db_session.commit()

    clock = frozen(datetime.combine(DAY + timedelta(days=1), time(1, 0), tzinfo=timezone.utc))
    sweep = await FunnelService(db_session, clock=clock).evaluate_active()

    assert sweep.day == DAY
    assert sweep.count("completed") == 1
    assert sweep.outcomes[0].result.conversion_rate == 10.0


async def test_evaluate_endpoint(async_client, admin_headers, db_session):
    await _seed_views(db_session, DAY)
    created = await async_client.post(
        "/api/analytics/funnels",
        json={"name": "Booking", "steps": BOOKING_STEPS},
        headers=admin_headers,
    )
    assert created.status_code == 201
    funnel_id = created.json()["id"]

    response = await async_client.post(
        "/api/analytics/funnels/evaluate",
        params={"date": DAY.isoformat()},
        headers=admin_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["evaluated"] == 1
    assert data["results"][0]["conversion_rate"] == 10.0

    results = await async_client.get(f"/api/analytics/funnels/{funnel_id}/results", headers=admin_headers)
    assert results.status_code == 200
    assert results.json()[0]["step_results"][2] == {"step": "book", "count": 10, "drop_off": 30}


async def test_create_funnel_needs_two_steps(async_client, admin_headers):
    response = await async_client.post(
        "/api/analytics/funnels",
        json={"name": "Too short", "steps": [{"name": "land", "path_pattern": "/"}]},
        headers=admin_headers,
    )

    assert response.status_code == 400
    assert "error" in response.json()
