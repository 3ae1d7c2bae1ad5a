"""
Notification Service - Email and WhatsApp delivery.

Supports:
- Email via Resend API
- WhatsApp Business (Graph API) text messages
"""
from html import escape
from typing import Any, Optional

import httpx

from footfall.core.config import settings
from footfall.core.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Multi-channel notification service.

    Every send returns True/False instead of raising, so callers can
    record a status per channel.
    """

    RESEND_API_URL = "https://api.resend.com/emails"
    WHATSAPP_API_URL = "https://graph.facebook.com/v18.0/{number_id}/messages"

    def __init__(
        self,
        resend_api_key: Optional[str] = None,
        whatsapp_number: Optional[str] = None,
        whatsapp_token: Optional[str] = None,
    ) -> None:
        self.resend_api_key = resend_api_key or settings.resend_api_key
        self.whatsapp_number = whatsapp_number or settings.whatsapp_business_number
        self.whatsapp_token = whatsapp_token or settings.whatsapp_api_token

    async def send_email(
        self,
        to: str | list[str],
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> bool:
        """
        Send email via Resend API.

        Args:
            to: Recipient address or list of addresses
            subject: Email subject
            html_content: HTML email body
            text_content: Plain text fallback

        Returns:
            True if sent successfully
        """
        if not self.resend_api_key:
            logger.warning("Resend API key not configured, skipping email")
            return False

        recipients = [to] if isinstance(to, str) else list(to)
        if not recipients:
            logger.warning("No email recipients, skipping email", subject=subject)
            return False

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self.RESEND_API_URL,
                    headers={
                        "Authorization": f"Bearer {self.resend_api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "from": settings.resend_from,
                        "to": recipients,
                        "subject": subject,
                        "html": html_content,
                        "text": text_content or subject,
                    },
                    timeout=10.0,
                )

                if 200 <= response.status_code < 300:
                    logger.info("Email sent", recipients=len(recipients), subject=subject)
                    return True

                logger.error(
                    "Email send failed",
                    status=response.status_code,
                    response=response.text,
                )
                return False

        except httpx.HTTPError as e:
            logger.error("Email send error", error=str(e))
            return False

    async def send_whatsapp(self, to: str, message: str) -> bool:
        """
        Send a WhatsApp text message through the Business API.

        Args:
            to: Recipient phone number in international format
            message: Message body

        Returns:
            True if delivered to the API successfully
        """
        if not (self.whatsapp_number and self.whatsapp_token):
            logger.warning("WhatsApp Business API not configured, skipping message")
            return False

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self.WHATSAPP_API_URL.format(number_id=self.whatsapp_number),
                    headers={
                        "Authorization": f"Bearer {self.whatsapp_token}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "messaging_product": "whatsapp",
                        "to": to.lstrip("+"),
                        "type": "text",
                        "text": {"body": message},
                    },
                    timeout=10.0,
                )

                if 200 <= response.status_code < 300:
                    logger.info("WhatsApp message sent")
                    return True

                logger.error(
                    "WhatsApp send failed",
                    status=response.status_code,
                    response=response.text,
                )
                return False

        except httpx.HTTPError as e:
            logger.error("WhatsApp send error", error=str(e))
            return False

    def format_alert_email(
        self,
        alert_name: str,
        message: str,
        metric_value: float,
        threshold_value: float,
        comparison_value: float,
    ) -> tuple[str, str]:
        """
        Format a triggered alert as email content.

        Returns:
            Tuple of (html_content, text_content)
        """
        html = f"""
<!DOCTYPE html>
<html>
<body style="font-family: system-ui, sans-serif; line-height: 1.5; color: #1f2937;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
        <h2 style="margin: 0 0 12px;">Analytics alert: {escape(alert_name)}</h2>
        <p>{escape(message)}</p>
        <table style="border-collapse: collapse; margin-top: 12px;">
            <tr><td style="padding: 4px 12px 4px 0;">Current value</td><td><strong>{metric_value:g}</strong></td></tr>
            <tr><td style="padding: 4px 12px 4px 0;">Threshold</td><td>{threshold_value:g}</td></tr>
            <tr><td style="padding: 4px 12px 4px 0;">Comparison value</td><td>{comparison_value:g}</td></tr>
        </table>
        <a href="{settings.dashboard_url}"
           style="display: inline-block; margin-top: 20px; padding: 10px 20px; background: #0f766e; color: white; text-decoration: none; border-radius: 6px;">
            Open analytics dashboard
        </a>
    </div>
</body>
</html>
"""

        text = f"""
Analytics alert: {alert_name}

{message}

Current value: {metric_value:g}
Threshold: {threshold_value:g}
Comparison value: {comparison_value:g}

Dashboard: {settings.dashboard_url}
"""

        return html, text

    def format_alert_whatsapp(self, alert_name: str, message: str) -> str:
        return f"*Analytics alert: {alert_name}*\n{message}\n{settings.dashboard_url}"

    def format_report_email(
        self,
        report_name: str,
        date_from: str,
        date_to: str,
        rows: list[dict[str, Any]],
        preview_rows: int = 10,
    ) -> tuple[str, str]:
        """
        Format report data as an inline summary.

        The full data set is not attached; the email links to the dashboard.
        """
        columns = list(rows[0].keys()) if rows else []
        preview = rows[:preview_rows]

        header_cells = "".join(
            f'<th style="text-align: left; padding: 4px 8px; border-bottom: 1px solid #e5e7eb;">{escape(str(c))}</th>'
            for c in columns
        )
        body_rows = "".join(
            "<tr>"
            + "".join(
                f'<td style="padding: 4px 8px;">{escape(_cell(row.get(c)))}</td>' for c in columns
            )
            + "</tr>"
            for row in preview
        )

        html = f"""
<!DOCTYPE html>
<html>
<body style="font-family: system-ui, sans-serif; line-height: 1.5; color: #1f2937;">
    <div style="max-width: 720px; margin: 0 auto; padding: 20px;">
        <h2 style="margin: 0 0 8px;">{escape(report_name)}</h2>
        <p style="color: #6b7280;">{date_from} to {date_to} &middot; {len(rows)} records</p>
        <table style="border-collapse: collapse; font-size: 13px;">
            <thead><tr>{header_cells}</tr></thead>
            <tbody>{body_rows}</tbody>
        </table>
        <p style="margin-top: 16px;">
            <a href="{settings.dashboard_url}">View the full report in the dashboard</a>
        </p>
    </div>
</body>
</html>
"""

        lines = [", ".join(f"{c}={_cell(row.get(c))}" for c in columns) for row in preview]
        text = "\n".join(
            [
                report_name,
                f"{date_from} to {date_to} - {len(rows)} records",
                "",
                *lines,
                "",
                f"Full report: {settings.dashboard_url}",
            ]
        )

        return html, text


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


# Singleton instance
notification_service = NotificationService()
