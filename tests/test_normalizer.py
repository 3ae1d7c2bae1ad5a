"""
Tests for batch validation, classification and heatmap bucketing.
"""
import pytest

from footfall.core.config import IngestionConfig
from footfall.schemas.tracking import RawEvent
from footfall.services.heatmap import bucket_for, sample_clicks
from footfall.services.normalizer import (
    InvalidBatchError,
    categorize_referrer,
    classify_browser,
    classify_device,
    normalize_batch,
    normalize_country,
    parse_batch,
    parse_utm,
)

CHROME_DESKTOP = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
SAFARI_IPAD = (
    "Mozilla/5.0 (iPad; CPU OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
ANDROID_TABLET = "Mozilla/5.0 (Linux; Android 13; SM-X700) AppleWebKit/537.36 Chrome/120.0 Safari/537.36"
EDGE = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36 Edg/120.0"
)
FIREFOX = "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0"

CONFIG = IngestionConfig(salt="normalizer-salt-0123", sampling_rate=1.0)


@pytest.mark.parametrize(
    "user_agent, expected",
    [
        (CHROME_DESKTOP, "desktop"),
        (SAFARI_IPHONE, "mobile"),
        (SAFARI_IPAD, "tablet"),
        (ANDROID_TABLET, "tablet"),
        ("", "desktop"),
        (None, "desktop"),
    ],
)
def test_classify_device(user_agent, expected):
    assert classify_device(user_agent) == expected


@pytest.mark.parametrize(
    "user_agent, expected",
    [
        (CHROME_DESKTOP, "chrome"),
        (SAFARI_IPHONE, "safari"),
        (EDGE, "edge"),
        (FIREFOX, "firefox"),
        ("curl/8.0", "unknown"),
    ],
)
def test_classify_browser(user_agent, expected):
    assert classify_browser(user_agent) == expected


@pytest.mark.parametrize(
    "referrer, expected",
    [
        (None, "direct"),
        ("", "direct"),
        ("https://www.google.com/search?q=skardu", "google"),
        ("https://m.facebook.com/", "facebook"),
        ("https://l.instagram.com/", "instagram"),
        ("https://t.co/abc", "twitter"),
        ("https://www.youtube.com/watch?v=1", "youtube"),
        ("https://www.microsoft.com/", "referral"),
        ("https://travel-blog.example/", "referral"),
    ],
)
def test_categorize_referrer(referrer, expected):
    assert categorize_referrer(referrer) == expected


def test_parse_utm_from_query_string():
    utm = parse_utm("/villages?utm_source=newsletter&utm_campaign=spring")

    assert utm == {"utm_source": "newsletter", "utm_medium": None, "utm_campaign": "spring"}


def test_normalize_country():
    assert normalize_country("pk") == "PK"
    assert normalize_country("XX") is None
    assert normalize_country("T1") is None
    assert normalize_country(None) is None


def test_parse_batch_accepts_single_event():
    events = parse_batch({"event_type": "page_view", "page_path": "/"}, max_batch_size=100)

    assert len(events) == 1
    assert events[0].page_path == "/"


def test_parse_batch_accepts_session_token_alias():
    events = parse_batch({"events": [{"session_token": "tok-1"}]}, max_batch_size=100)

    assert events[0].session_id == "tok-1"
    assert events[0].event_type == "page_view"


def test_parse_batch_rejects_empty():
    with pytest.raises(InvalidBatchError, match="No events"):
        parse_batch({"events": []}, max_batch_size=100)


def test_parse_batch_rejects_oversized():
    payload = {"events": [{"page_path": f"/p/{i}"} for i in range(101)]}

    with pytest.raises(InvalidBatchError, match="Batch too large: 101 events"):
        parse_batch(payload, max_batch_size=100)


def test_parse_batch_accepts_exact_limit():
    payload = {"events": [{"page_path": f"/p/{i}"} for i in range(100)]}

    assert len(parse_batch(payload, max_batch_size=100)) == 100


def test_parse_batch_rejects_invalid_event():
    payload = {"events": [{"page_path": "/"}, {"viewport_width": -10}]}

    with pytest.raises(InvalidBatchError, match="Event 1 invalid"):
        parse_batch(payload, max_batch_size=100)


def test_parse_batch_rejects_non_object():
    with pytest.raises(InvalidBatchError):
        parse_batch(["not", "an", "object"], max_batch_size=100)


def test_normalize_batch_uses_first_session_token():
    events = [RawEvent(page_path="/a"), RawEvent(page_path="/b", session_id="s-2")]

    batch = normalize_batch(events, config=CONFIG, user_agent=CHROME_DESKTOP, client_address="203.0.113.1")

    assert batch.session_id == "s-2"
    assert batch.session_generated is False
    assert batch.device == "desktop"
    assert batch.browser == "chrome"


def test_normalize_batch_generates_session_when_missing():
    batch = normalize_batch(
        [RawEvent(page_path="/")],
        config=CONFIG,
        user_agent=None,
        client_address=None,
    )

    assert batch.session_generated is True
    assert len(batch.session_id) == 36


def test_normalize_batch_takes_context_from_first_event():
    events = [
        RawEvent(page_path="/?utm_source=ig", referrer="https://instagram.com/"),
        RawEvent(page_path="/?utm_source=fb", referrer="https://facebook.com/"),
    ]

    batch = normalize_batch(events, config=CONFIG, user_agent=FIREFOX, client_address="198.51.100.2")

    assert batch.utm["utm_source"] == "ig"
    assert batch.referrer_category == "instagram"


@pytest.mark.parametrize(
    "coordinate, expected",
    [(0, 0), (49, 0), (50, 50), (99, 50), (1234, 1200), (-1, -50)],
)
def test_bucket_for(coordinate, expected):
    assert bucket_for(coordinate, 50) == expected


def test_sample_clicks_buckets_and_defaults_viewport():
    events = [
        RawEvent(event_type="click", page_path="/", click_x=75, click_y=130),
        RawEvent(event_type="click", page_path="/", click_x=10),
        RawEvent(event_type="page_view", page_path="/"),
    ]

    clicks = list(sample_clicks(events, CONFIG, sampler=lambda: 0.5))

    assert len(clicks) == 1
    assert (clicks[0].bucket_x, clicks[0].bucket_y) == (50, 100)
    assert clicks[0].viewport_width == 1920


def test_sample_clicks_respects_sampling_rate():
    config = IngestionConfig(salt="normalizer-salt-0123", sampling_rate=0.1)
    events = [RawEvent(event_type="click", page_path="/", click_x=1, click_y=1)]

    assert list(sample_clicks(events, config, sampler=lambda: 0.09))
    assert not list(sample_clicks(events, config, sampler=lambda: 0.1))


def test_sample_clicks_disabled():
    config = IngestionConfig(salt="normalizer-salt-0123", heatmap_enabled=False, sampling_rate=1.0)
    events = [RawEvent(event_type="click", page_path="/", click_x=1, click_y=1)]

    assert not list(sample_clicks(events, config, sampler=lambda: 0.0))
