"""
Funnel Evaluator - per-day session counts for ordered path-pattern steps.

Pattern rules:
- `*` matches any run of characters and the pattern must match the whole
  path (`/booking/*`, `/marketplace*`).
- A pattern without `*` matches the exact path or any sub-path, so
  `/villages` matches `/villages/x`. The root pattern `/` matches only `/`.
- Matching is case-sensitive and ignores the query string and fragment.
"""
import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from functools import lru_cache
from typing import Any, Callable, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from footfall.core.clock import Clock, utcnow
from footfall.core.logging import get_logger
from footfall.models.analytics import AnalyticsEvent, EventType
from footfall.models.funnel import Funnel
from footfall.repositories.funnel import FunnelRepository
from footfall.services.metrics import range_bounds

logger = get_logger(__name__)


def strip_query(path: str) -> str:
    return re.split(r"[?#]", path, maxsplit=1)[0] or "/"


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> Callable[[str], bool]:
    if "*" in pattern:
        regex = re.compile(".*".join(re.escape(part) for part in pattern.split("*")))
        return lambda path: regex.fullmatch(path) is not None

    if pattern == "/":
        return lambda path: path == "/"

    prefix = pattern.rstrip("/")
    return lambda path: path == prefix or path == pattern or path.startswith(prefix + "/")


def path_matches(pattern: str, path: str) -> bool:
    return compile_pattern(pattern)(strip_query(path))


@dataclass
class FunnelComputation:
    total_sessions: int
    step_results: list[dict[str, Any]]
    conversion_rate: float


def compute_funnel(
    steps: list[dict[str, Any]],
    session_paths: dict[str, set[str]],
) -> FunnelComputation:
    """
    Count the sessions reaching each step.

    `session_paths` maps every session in the day's universe to the page
    paths it viewed. The first step's drop-off is measured against the
    universe, later steps against the previous step.
    """
    total = len(session_paths)
    step_results = []
    previous = total
    for step in steps:
        pattern = step["path_pattern"]
        count = sum(
            1
            for paths in session_paths.values()
            if any(path_matches(pattern, path) for path in paths)
        )
        step_results.append({"step": step["name"], "count": count, "drop_off": previous - count})
        previous = count

    conversion_rate = 0.0
    if total > 0 and step_results:
        conversion_rate = round(step_results[-1]["count"] / total * 100, 2)

    return FunnelComputation(
        total_sessions=total,
        step_results=step_results,
        conversion_rate=conversion_rate,
    )


@dataclass(frozen=True)
class FunnelSnapshot:
    """Plain copy of a funnel row, safe to use after the session rolls back."""

    id: UUID
    name: str
    steps: list[dict[str, Any]]

    @classmethod
    def of(cls, funnel: Funnel) -> "FunnelSnapshot":
        return cls(id=funnel.id, name=funnel.name, steps=list(funnel.steps or []))


@dataclass
class FunnelOutcome:
    funnel_id: UUID
    funnel_name: str
    status: str
    result: Optional[FunnelComputation] = None
    error: Optional[str] = None


@dataclass
class FunnelSweep:
    day: date
    outcomes: list[FunnelOutcome] = field(default_factory=list)

    def count(self, status: str) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def errors(self) -> list[str]:
        return [f"{o.funnel_name}: {o.error}" for o in self.outcomes if o.error]


class FunnelService:
    """Evaluates funnels and stores one result per funnel and day."""

    def __init__(self, session: AsyncSession, clock: Clock = utcnow) -> None:
        self.session = session
        self.clock = clock
        self.repo = FunnelRepository(session)

    async def session_paths(self, day: date) -> dict[str, set[str]]:
        """Sessions with at least one page view on `day`, with their paths."""
        lower, upper = range_bounds(day, day)
        stmt = (
            select(AnalyticsEvent.session_id, AnalyticsEvent.page_path)
            .where(
                AnalyticsEvent.event_type == EventType.PAGE_VIEW,
                AnalyticsEvent.created_at >= lower,
                AnalyticsEvent.created_at < upper,
            )
            .distinct()
        )
        result = await self.session.execute(stmt)
        paths: dict[str, set[str]] = {}
        for session_id, page_path in result.all():
            paths.setdefault(session_id, set()).add(page_path)
        return paths

    async def evaluate(
        self,
        funnel: Funnel,
        day: date,
        session_paths: Optional[dict[str, set[str]]] = None,
    ) -> FunnelOutcome:
        """Recompute and overwrite the result for (funnel, day)."""
        return await self._evaluate(FunnelSnapshot.of(funnel), day, session_paths)

    async def _evaluate(
        self,
        funnel: FunnelSnapshot,
        day: date,
        session_paths: Optional[dict[str, set[str]]],
    ) -> FunnelOutcome:
        # Claim is committed first so a concurrent run of the same day is skipped.
        claimed = await self.repo.claim_run(funnel.id, day)
        await self.session.commit()
        if not claimed:
            logger.info("Funnel run already in progress", funnel=funnel.name, date=str(day))
            return FunnelOutcome(funnel.id, funnel.name, status="skipped")

        try:
            if session_paths is None:
                session_paths = await self.session_paths(day)
            computation = compute_funnel(funnel.steps, session_paths)
            await self.repo.store_result(
                funnel.id,
                day,
                total_sessions=computation.total_sessions,
                step_results=computation.step_results,
                conversion_rate=computation.conversion_rate,
                computed_at=self.clock(),
            )
            await self.session.commit()
        except Exception as e:
            logger.exception("Funnel evaluation failed", funnel=funnel.name, date=str(day))
            await self.session.rollback()
            await self.repo.mark_failed(funnel.id, day, str(e))
            await self.session.commit()
            return FunnelOutcome(funnel.id, funnel.name, status="failed", error=str(e))

        logger.info(
            "Funnel evaluated",
            funnel=funnel.name,
            date=str(day),
            total_sessions=computation.total_sessions,
            conversion_rate=computation.conversion_rate,
        )
        return FunnelOutcome(funnel.id, funnel.name, status="completed", result=computation)

    async def evaluate_active(self, day: Optional[date] = None) -> FunnelSweep:
        """Evaluate every active funnel for `day` (default: yesterday)."""
        day = day or self.clock().date() - timedelta(days=1)
        funnels = [FunnelSnapshot.of(f) for f in await self.repo.list_active()]
        paths = await self.session_paths(day) if funnels else {}

        sweep = FunnelSweep(day=day)
        for funnel in funnels:
            sweep.outcomes.append(await self._evaluate(funnel, day, paths))

        logger.info(
            "Funnel sweep finished",
            date=str(day),
            completed=sweep.count("completed"),
            skipped=sweep.count("skipped"),
            failed=sweep.count("failed"),
        )
        return sweep
