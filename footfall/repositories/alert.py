"""
Alert repository for configurations and the triggered-alert log.
"""
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import func, select

from footfall.models.alert import AlertConfig, AlertLog
from footfall.repositories.base import BaseRepository


class AlertConfigRepository(BaseRepository[AlertConfig]):
    """Repository for AlertConfig model operations."""

    model = AlertConfig

    async def list_active(self) -> list[AlertConfig]:
        stmt = (
            select(AlertConfig)
            .where(AlertConfig.is_active.is_(True))
            .order_by(AlertConfig.created_at)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class AlertLogRepository(BaseRepository[AlertLog]):
    """Repository for AlertLog model operations."""

    model = AlertLog

    async def record(
        self,
        *,
        alert_config_id: UUID,
        triggered_at: datetime,
        metric_value: float,
        threshold_value: float,
        comparison_value: float,
        message: str,
    ) -> AlertLog:
        log = AlertLog(
            alert_config_id=alert_config_id,
            triggered_at=triggered_at,
            metric_value=metric_value,
            threshold_value=threshold_value,
            comparison_value=comparison_value,
            message=message,
            notification_status={},
            acknowledged_at=None,
        )
        self.session.add(log)
        await self.session.flush()
        return log

    async def set_notification_status(self, log: AlertLog, status: dict[str, Any]) -> AlertLog:
        log.notification_status = dict(status)
        await self.session.flush()
        return log

    async def acknowledge(self, log: AlertLog, when: datetime) -> AlertLog:
        """Acknowledge once; later calls keep the first timestamp."""
        if log.acknowledged_at is None:
            log.acknowledged_at = when
            await self.session.flush()
            await self.session.refresh(log)
        return log

    async def list_recent(
        self,
        *,
        alert_config_id: Optional[UUID] = None,
        unacknowledged_only: bool = False,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[list[AlertLog], int]:
        """Newest-first page of alert logs with the total count."""
        base_query = select(AlertLog)
        if alert_config_id is not None:
            base_query = base_query.where(AlertLog.alert_config_id == alert_config_id)
        if unacknowledged_only:
            base_query = base_query.where(AlertLog.acknowledged_at.is_(None))

        count_stmt = select(func.count()).select_from(base_query.subquery())
        total = (await self.session.execute(count_stmt)).scalar() or 0

        stmt = base_query.order_by(AlertLog.triggered_at.desc()).offset(skip).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total
