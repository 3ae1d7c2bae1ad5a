"""
Tests for service layer components that talk to external APIs.
"""
from dataclasses import replace
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import httpx
import pytest

from footfall.services.delivery import (
    DeliveryError,
    EmailChannel,
    ReportPayload,
    WarehouseClient,
)
from footfall.services.notification_service import NotificationService


def _mock_http_client(status_code: int = 200, json_body: dict | None = None) -> AsyncMock:
    mock_client = AsyncMock()
    mock_response = MagicMock()
    mock_response.status_code = status_code
    mock_response.text = ""
    mock_response.json = MagicMock(return_value=json_body or {})
    mock_client.post = AsyncMock(return_value=mock_response)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    return mock_client


class TestNotificationService:
    """Tests for NotificationService."""

    @pytest.fixture
    def notification_service(self):
        return NotificationService(
            resend_api_key="re_test",
            whatsapp_number="1234567890",
            whatsapp_token="wa_test",
        )

    async def test_send_email_success(self, notification_service: NotificationService):
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _mock_http_client()
            mock_client_class.return_value = mock_client

            result = await notification_service.send_email(
                to=["a@example.com", "b@example.com"],
                subject="Test Subject",
                html_content="<p>Test content</p>",
            )

            assert result is True
            payload = mock_client.post.call_args.kwargs["json"]
            assert payload["to"] == ["a@example.com", "b@example.com"]
            assert payload["text"] == "Test Subject"

    async def test_send_email_api_error(self, notification_service: NotificationService):
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client_class.return_value = _mock_http_client(status_code=422)

            result = await notification_service.send_email(
                to="test@example.com",
                subject="Test Subject",
                html_content="<p>Test content</p>",
            )

            assert result is False

    async def test_send_email_transport_error(self, notification_service: NotificationService):
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _mock_http_client()
            mock_client.post = AsyncMock(side_effect=httpx.ConnectError("refused"))
            mock_client_class.return_value = mock_client

            result = await notification_service.send_email(
                to="test@example.com",
                subject="Test Subject",
                html_content="<p>Test content</p>",
            )

            assert result is False

    async def test_send_email_no_api_key(self):
        with patch("footfall.services.notification_service.settings") as mock_settings:
            mock_settings.resend_api_key = None
            service = NotificationService()

            result = await service.send_email(
                to="test@example.com",
                subject="Test Subject",
                html_content="<p>Test content</p>",
            )

            assert result is False

    async def test_send_whatsapp_strips_plus(self, notification_service: NotificationService):
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _mock_http_client()
            mock_client_class.return_value = mock_client

            result = await notification_service.send_whatsapp("+923001234567", "hello")

            assert result is True
            url = mock_client.post.call_args.args[0]
            assert url.endswith("/1234567890/messages")
            assert mock_client.post.call_args.kwargs["json"]["to"] == "923001234567"

    async def test_send_whatsapp_not_configured(self):
        with patch("footfall.services.notification_service.settings") as mock_settings:
            mock_settings.whatsapp_business_number = None
            mock_settings.whatsapp_api_token = None
            service = NotificationService()

            assert await service.send_whatsapp("+15550100", "hello") is False

    def test_format_alert_email_escapes_name(self, notification_service: NotificationService):
        html, text = notification_service.format_alert_email(
            "<Traffic>", "Unique visitors is 30", 30, 50, 45
        )

        assert "&lt;Traffic&gt;" in html
        assert "Current value: 30" in text
        assert "Threshold: 50" in text


class TestEmailChannel:
    @pytest.fixture
    def payload(self):
        return ReportPayload(
            report_id=uuid4(),
            report_name="Weekly summary",
            report_type="summary",
            recipients=("ops@example.com",),
            date_from=date(2025, 3, 5),
            date_to=date(2025, 3, 11),
            rows=[{"total_page_views": 12}],
            generated_at=datetime(2025, 3, 12, 9, 0, tzinfo=timezone.utc),
        )

    async def test_deliver_sends_inline_summary(self, payload):
        notifier = NotificationService(resend_api_key="re_test")
        notifier.send_email = AsyncMock(return_value=True)

        receipt = await EmailChannel(notifier).deliver(payload)

        assert receipt.file_url is None
        assert receipt.file_size > 0
        kwargs = notifier.send_email.call_args.kwargs
        assert kwargs["to"] == ["ops@example.com"]
        assert kwargs["subject"] == "Weekly summary (2025-03-05 to 2025-03-11)"

    async def test_deliver_without_recipients(self, payload):
        notifier = NotificationService(resend_api_key="re_test")
        notifier.send_email = AsyncMock(return_value=True)
        empty = replace(payload, recipients=())

        with pytest.raises(DeliveryError):
            await EmailChannel(notifier).deliver(empty)
        notifier.send_email.assert_not_awaited()


class TestWarehouseClient:
    @pytest.fixture
    def config(self):
        config = MagicMock()
        config.warehouse_project = "footfall-prod"
        config.warehouse_dataset = "analytics"
        config.warehouse_table = "events"
        config.warehouse_access_token = "ya29.token"
        return config

    async def test_insert_rows_in_chunks(self, config):
        client = WarehouseClient(config)
        rows = [{"n": i} for i in range(WarehouseClient.CHUNK_SIZE + 1)]

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _mock_http_client()
            mock_client_class.return_value = mock_client

            inserted = await client.insert_rows(rows)

        assert inserted == len(rows)
        assert mock_client.post.await_count == 2
        url = mock_client.post.call_args.args[0]
        assert "/projects/footfall-prod/datasets/analytics/tables/events/insertAll" in url

    async def test_insert_errors_raise(self, config):
        client = WarehouseClient(config)

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client_class.return_value = _mock_http_client(
                json_body={"insertErrors": [{"index": 0}]}
            )

            with pytest.raises(DeliveryError, match="rejected 1 rows"):
                await client.insert_rows([{"n": 1}])

    async def test_unconfigured_client_raises(self, config):
        config.warehouse_access_token = None
        client = WarehouseClient(config)

        assert client.configured is False
        with pytest.raises(DeliveryError):
            await client.insert_rows([{"n": 1}])
