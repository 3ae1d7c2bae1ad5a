"""
Event Normalizer - validates a raw batch and derives its batch-level context.

Device, browser and referrer are classified with lowercase substring
checks. UTM parameters come from the first event's page path only; UTM is
attributed per batch, not per event.
"""
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import parse_qs, urlsplit

from pydantic import ValidationError

from footfall.core.config import IngestionConfig
from footfall.core.security import hash_identity
from footfall.models.analytics import EventType
from footfall.schemas.tracking import RawEvent

TABLET_MARKERS = ("tablet", "ipad")
MOBILE_MARKERS = ("mobile", "iphone", "ipod", "android", "blackberry", "windows phone")

REFERRER_PROVIDERS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("google", ("google",)),
    ("facebook", ("facebook", "fb.")),
    ("instagram", ("instagram",)),
    ("twitter", ("twitter", "//t.co")),
    ("youtube", ("youtube",)),
    ("linkedin", ("linkedin",)),
    ("whatsapp", ("whatsapp",)),
)

UTM_KEYS = ("utm_source", "utm_medium", "utm_campaign")


class InvalidBatchError(ValueError):
    """The batch is empty, too large, or contains an invalid event."""


@dataclass
class NormalizedBatch:
    """One validated batch with everything shared by its events."""

    session_id: str
    session_generated: bool
    identity_hash: str
    user_agent: str
    device: str
    browser: str
    referrer_category: str
    country: Optional[str]
    utm: dict[str, Optional[str]]
    events: list[RawEvent] = field(default_factory=list)

    @property
    def page_views(self) -> list[RawEvent]:
        return [e for e in self.events if e.event_type == EventType.PAGE_VIEW]


def classify_device(user_agent: Optional[str]) -> str:
    ua = (user_agent or "").lower()
    if any(marker in ua for marker in TABLET_MARKERS):
        return "tablet"
    if "android" in ua and "mobile" not in ua:
        return "tablet"
    if any(marker in ua for marker in MOBILE_MARKERS):
        return "mobile"
    return "desktop"


def classify_browser(user_agent: Optional[str]) -> str:
    """First match wins, in the order chrome, safari, firefox, edge, opera."""
    ua = (user_agent or "").lower()
    if "chrome" in ua and "edg" not in ua:
        return "chrome"
    if "safari" in ua and "chrome" not in ua:
        return "safari"
    if "firefox" in ua:
        return "firefox"
    if "edg" in ua:
        return "edge"
    if "opera" in ua or "opr" in ua:
        return "opera"
    return "unknown"


def categorize_referrer(referrer: Optional[str]) -> str:
    if not referrer or not referrer.strip():
        return "direct"
    value = referrer.lower()
    for category, patterns in REFERRER_PROVIDERS:
        if any(pattern in value for pattern in patterns):
            return category
    return "referral"


def parse_utm(page_path: Optional[str]) -> dict[str, Optional[str]]:
    query = parse_qs(urlsplit(page_path or "").query)
    return {key: (query[key][0] if query.get(key) else None) for key in UTM_KEYS}


def normalize_country(value: Optional[str]) -> Optional[str]:
    """Two-letter country code from an edge header; unknown markers dropped."""
    if not value:
        return None
    code = value.strip().upper()
    if len(code) != 2 or not code.isalpha() or code == "XX":
        return None
    return code


def parse_batch(payload: Any, max_batch_size: int) -> list[RawEvent]:
    """
    Turn a request body into validated events.

    Accepts `{"events": [...]}` or a single event object. The whole batch
    is rejected if any event fails validation.
    """
    if not isinstance(payload, dict):
        raise InvalidBatchError("Request body must be a JSON object")

    if "events" in payload:
        items = payload["events"]
        if not isinstance(items, list):
            raise InvalidBatchError("'events' must be a list")
    else:
        items = [payload]

    if not items:
        raise InvalidBatchError("No events provided")
    if len(items) > max_batch_size:
        raise InvalidBatchError(
            f"Batch too large: {len(items)} events (max {max_batch_size})"
        )

    events = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise InvalidBatchError(f"Event {index} must be a JSON object")
        try:
            events.append(RawEvent.model_validate(item))
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"])
            raise InvalidBatchError(f"Event {index} invalid: {location}: {first['msg']}") from e
    return events


def normalize_batch(
    events: list[RawEvent],
    *,
    config: IngestionConfig,
    user_agent: Optional[str],
    client_address: Optional[str],
    country: Optional[str] = None,
) -> NormalizedBatch:
    """Resolve session, identity and classification shared by the batch."""
    if not events:
        raise InvalidBatchError("No events provided")
    if len(events) > config.max_batch_size:
        raise InvalidBatchError(
            f"Batch too large: {len(events)} events (max {config.max_batch_size})"
        )

    first = events[0]
    agent = user_agent or first.user_agent or ""

    session_id = next((e.session_id for e in events if e.session_id), None)
    generated = session_id is None
    if generated:
        session_id = str(uuid.uuid4())

    return NormalizedBatch(
        session_id=session_id,
        session_generated=generated,
        identity_hash=hash_identity(client_address, config.salt, config.fallback_address),
        user_agent=agent,
        device=classify_device(agent),
        browser=classify_browser(agent),
        referrer_category=categorize_referrer(first.referrer),
        country=normalize_country(country),
        utm=parse_utm(first.page_path),
        events=list(events),
    )
