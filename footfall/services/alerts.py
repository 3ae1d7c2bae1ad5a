"""
Alert Evaluator - compares today's metric against a threshold or baseline.

A change_percent alert never triggers when the comparison value is zero.
"""
import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from footfall.core.clock import Clock, utcnow
from footfall.core.logging import get_logger
from footfall.models.alert import (
    AlertCondition,
    AlertConfig,
    AlertLog,
    ComparisonPeriod,
    NotificationChannel,
)
from footfall.repositories.alert import AlertConfigRepository, AlertLogRepository
from footfall.schemas.alert import AlertCheckResponse, AlertLogResponse
from footfall.services.metrics import MetricsService
from footfall.services.notification_service import NotificationService, notification_service

logger = get_logger(__name__)

SENT = "sent"
FAILED = "failed"


def comparison_date(today: date, period: ComparisonPeriod | str) -> date:
    period = ComparisonPeriod(period)
    if period == ComparisonPeriod.PREVIOUS_DAY:
        return today - timedelta(days=1)
    if period == ComparisonPeriod.PREVIOUS_WEEK:
        return today - timedelta(days=7)
    year, month = (today.year, today.month - 1) if today.month > 1 else (today.year - 1, 12)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(today.day, last_day))


def change_percent(current: float, comparison: float) -> Optional[float]:
    """Relative change in percent, or None against a zero baseline."""
    if comparison == 0:
        return None
    return (current - comparison) / comparison * 100


def evaluate_condition(
    condition: AlertCondition | str,
    current: float,
    comparison: float,
    threshold: float,
) -> bool:
    condition = AlertCondition(condition)
    if condition == AlertCondition.GREATER_THAN:
        return current > threshold
    if condition == AlertCondition.LESS_THAN:
        return current < threshold
    if condition == AlertCondition.EQUALS:
        return current == threshold

    change = change_percent(current, comparison)
    if change is None:
        return False
    return abs(change) >= threshold


@dataclass(frozen=True)
class AlertSnapshot:
    """Plain copy of an alert configuration."""

    id: UUID
    name: str
    metric: str
    condition: str
    threshold: float
    comparison_period: str
    page_filter: Optional[str]
    notification_channels: tuple[str, ...]
    recipients: dict[str, list[str]]

    @classmethod
    def of(cls, config: AlertConfig) -> "AlertSnapshot":
        return cls(
            id=config.id,
            name=config.name,
            metric=config.metric,
            condition=config.condition,
            threshold=config.threshold,
            comparison_period=config.comparison_period,
            page_filter=config.page_filter,
            notification_channels=tuple(config.notification_channels or ()),
            recipients=dict(config.recipients or {}),
        )


def build_message(alert: AlertSnapshot, current: float, comparison: float) -> str:
    metric = alert.metric.replace("_", " ")
    scope = f" on {alert.page_filter}" if alert.page_filter else ""

    if alert.condition == AlertCondition.CHANGE_PERCENT:
        change = change_percent(current, comparison) or 0.0
        period = alert.comparison_period.replace("_", " ")
        return (
            f"{metric.capitalize()}{scope} changed {change:+.1f}% vs {period} "
            f"({comparison:g} -> {current:g}); threshold {alert.threshold:g}%"
        )

    condition = alert.condition.replace("_", " ")
    return (
        f"{metric.capitalize()}{scope} is {current:g}, "
        f"{condition} threshold {alert.threshold:g}"
    )


class AlertService:
    """Evaluates active alerts and delivers notifications."""

    def __init__(
        self,
        session: AsyncSession,
        notifier: NotificationService = notification_service,
        clock: Clock = utcnow,
    ) -> None:
        self.session = session
        self.notifier = notifier
        self.clock = clock
        self.configs = AlertConfigRepository(session)
        self.logs = AlertLogRepository(session)
        self.metrics = MetricsService(session)

    async def check_alert(self, alert: AlertSnapshot, today: date) -> Optional[AlertLog]:
        """Evaluate one alert for `today`; returns the log if it triggered."""
        current = await self.metrics.daily_value(alert.metric, today, alert.page_filter)
        baseline_day = comparison_date(today, alert.comparison_period)
        comparison = await self.metrics.daily_value(alert.metric, baseline_day, alert.page_filter)

        if not evaluate_condition(alert.condition, current, comparison, alert.threshold):
            return None

        message = build_message(alert, current, comparison)
        log = await self.logs.record(
            alert_config_id=alert.id,
            triggered_at=self.clock(),
            metric_value=current,
            threshold_value=alert.threshold,
            comparison_value=comparison,
            message=message,
        )
        status = await self.deliver(alert, message, current, comparison)
        await self.logs.set_notification_status(log, status)

        logger.info(
            "Alert triggered",
            alert=alert.name,
            metric=alert.metric,
            value=current,
            comparison=comparison,
            notifications=status,
        )
        return log

    async def deliver(
        self,
        alert: AlertSnapshot,
        message: str,
        current: float,
        comparison: float,
    ) -> dict[str, str]:
        """Send on every configured channel; one channel failing leaves the others alone."""
        status: dict[str, str] = {}
        for channel in alert.notification_channels:
            recipients = alert.recipients.get(channel, [])
            try:
                if not recipients:
                    logger.warning("No recipients for channel", alert=alert.name, channel=channel)
                    status[channel] = FAILED
                elif channel == NotificationChannel.EMAIL:
                    html, text = self.notifier.format_alert_email(
                        alert.name, message, current, alert.threshold, comparison
                    )
                    sent = await self.notifier.send_email(
                        to=recipients,
                        subject=f"Analytics alert: {alert.name}",
                        html_content=html,
                        text_content=text,
                    )
                    status[channel] = SENT if sent else FAILED
                elif channel == NotificationChannel.WHATSAPP:
                    body = self.notifier.format_alert_whatsapp(alert.name, message)
                    results = [await self.notifier.send_whatsapp(to, body) for to in recipients]
                    status[channel] = SENT if all(results) else FAILED
                else:
                    logger.warning("Unknown notification channel", channel=channel)
                    status[channel] = FAILED
            except Exception:
                logger.exception("Notification channel failed", alert=alert.name, channel=channel)
                status[channel] = FAILED
        return status

    async def check_alerts(self, today: Optional[date] = None) -> AlertCheckResponse:
        """Evaluate all active alerts, committing each one on its own."""
        today = today or self.clock().date()
        alerts = [AlertSnapshot.of(c) for c in await self.configs.list_active()]

        logs: list[AlertLogResponse] = []
        errors: list[str] = []
        for alert in alerts:
            try:
                log = await self.check_alert(alert, today)
                await self.session.commit()
            except Exception as e:
                logger.exception("Alert evaluation failed", alert=alert.name)
                await self.session.rollback()
                errors.append(f"{alert.name}: {e}")
                continue
            if log is not None:
                logs.append(AlertLogResponse.model_validate(log))

        logger.info(
            "Alert check finished",
            checked=len(alerts),
            triggered=len(logs),
            failed=len(errors),
        )
        return AlertCheckResponse(
            checked=len(alerts),
            triggered=len(logs),
            failed=len(errors),
            logs=logs,
            errors=errors,
        )

    async def acknowledge(self, log_id: UUID) -> Optional[AlertLog]:
        log = await self.logs.get_by_id(log_id)
        if log is None:
            return None
        return await self.logs.acknowledge(log, self.clock())
