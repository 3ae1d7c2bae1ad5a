"""
Report delivery channels: email, file storage and the external warehouse.

Each channel takes the materialized rows and either returns a receipt or
raises DeliveryError.
"""
import asyncio
import csv
import io
import json
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional, Protocol

import httpx

from footfall.core.config import Settings, settings
from footfall.core.logging import get_logger
from footfall.services.notification_service import NotificationService

logger = get_logger(__name__)


class DeliveryError(Exception):
    """A report could not be delivered."""


@dataclass
class DeliveryReceipt:
    file_url: Optional[str] = None
    file_size: Optional[int] = None


@dataclass(frozen=True)
class ReportPayload:
    """Everything a channel needs to deliver one report run."""

    report_id: uuid.UUID
    report_name: str
    report_type: str
    recipients: tuple[str, ...]
    date_from: date
    date_to: date
    rows: list[dict[str, Any]]
    generated_at: datetime


class ReportChannel(Protocol):
    async def deliver(self, payload: ReportPayload) -> DeliveryReceipt: ...


def _csv_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def to_csv(rows: list[dict[str, Any]]) -> str:
    """Render rows as CSV with a header taken from the first row."""
    if not rows:
        return ""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(rows[0].keys()), extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow({key: _csv_value(value) for key, value in row.items()})
    return buffer.getvalue()


class EmailChannel:
    """Inline summary by email with a link back to the dashboard."""

    def __init__(self, notifier: NotificationService) -> None:
        self.notifier = notifier

    async def deliver(self, payload: ReportPayload) -> DeliveryReceipt:
        if not payload.recipients:
            raise DeliveryError("No email recipients configured")

        html, text = self.notifier.format_report_email(
            payload.report_name,
            payload.date_from.isoformat(),
            payload.date_to.isoformat(),
            payload.rows,
        )
        sent = await self.notifier.send_email(
            to=list(payload.recipients),
            subject=f"{payload.report_name} ({payload.date_from} to {payload.date_to})",
            html_content=html,
            text_content=text,
        )
        if not sent:
            raise DeliveryError("Email delivery failed")
        return DeliveryReceipt(file_size=len(to_csv(payload.rows).encode("utf-8")))


class StorageChannel:
    """Writes a CSV file under the export directory and returns its public URL."""

    def __init__(self, storage_dir: str | Path, base_url: str) -> None:
        self.storage_dir = Path(storage_dir)
        self.base_url = base_url.rstrip("/")

    async def deliver(self, payload: ReportPayload) -> DeliveryReceipt:
        stamp = payload.generated_at.strftime("%Y%m%dT%H%M%SZ")
        relative = Path("reports") / str(payload.report_id) / f"{stamp}.csv"
        data = to_csv(payload.rows).encode("utf-8")

        target = self.storage_dir / relative
        try:
            await asyncio.to_thread(target.parent.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(target.write_bytes, data)
        except OSError as e:
            raise DeliveryError(f"Could not write report file: {e}") from e

        logger.info("Report file stored", path=str(target), size=len(data))
        return DeliveryReceipt(file_url=f"{self.base_url}/{relative.as_posix()}", file_size=len(data))


class WarehouseClient:
    """BigQuery streaming insert over the REST API."""

    INSERT_URL = (
        "https://bigquery.googleapis.com/bigquery/v2/projects/{project}"
        "/datasets/{dataset}/tables/{table}/insertAll"
    )
    CHUNK_SIZE = 500

    def __init__(self, config: Settings = settings) -> None:
        self.project = config.warehouse_project
        self.dataset = config.warehouse_dataset
        self.table = config.warehouse_table
        self.access_token = config.warehouse_access_token

    @property
    def configured(self) -> bool:
        return all((self.project, self.dataset, self.table, self.access_token))

    async def insert_rows(self, rows: list[dict[str, Any]]) -> int:
        """Stream rows into the table. Returns the number of rows inserted."""
        if not self.configured:
            raise DeliveryError("Warehouse credentials not configured")
        if not rows:
            return 0

        url = self.INSERT_URL.format(project=self.project, dataset=self.dataset, table=self.table)
        inserted = 0
        try:
            async with httpx.AsyncClient() as client:
                for start in range(0, len(rows), self.CHUNK_SIZE):
                    chunk = rows[start:start + self.CHUNK_SIZE]
                    response = await client.post(
                        url,
                        headers={"Authorization": f"Bearer {self.access_token}"},
                        json={
                            "kind": "bigquery#tableDataInsertAllRequest",
                            "rows": [
                                {"insertId": str(uuid.uuid4()), "json": _json_row(row)}
                                for row in chunk
                            ],
                        },
                        timeout=30.0,
                    )
                    if response.status_code >= 300:
                        raise DeliveryError(
                            f"Warehouse insert failed with status {response.status_code}"
                        )
                    errors = response.json().get("insertErrors")
                    if errors:
                        raise DeliveryError(f"Warehouse rejected {len(errors)} rows")
                    inserted += len(chunk)
        except httpx.HTTPError as e:
            raise DeliveryError(f"Warehouse request failed: {e}") from e

        logger.info("Warehouse insert finished", table=self.table, rows=inserted)
        return inserted


def _json_row(row: dict[str, Any]) -> dict[str, Any]:
    return json.loads(json.dumps(row, default=str))


class WarehouseChannel:
    def __init__(self, client: WarehouseClient) -> None:
        self.client = client

    async def deliver(self, payload: ReportPayload) -> DeliveryReceipt:
        await self.client.insert_rows(payload.rows)
        return DeliveryReceipt()
