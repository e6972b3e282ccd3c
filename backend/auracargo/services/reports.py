"""Back-office CSV / Excel exports of shipments, payments and support tickets."""

from __future__ import annotations

import csv
import io
import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from auracargo.core.clock import utcnow
from auracargo.core.errors import ValidationError
from auracargo.models.payment import Payment
from auracargo.models.shipment import Shipment
from auracargo.models.support import SupportConversation, SupportMessage

logger = logging.getLogger(__name__)

REPORT_TYPES = ("shipments", "payments", "support")
DATE_RANGES = ("last_7_days", "last_30_days", "this_month", "last_month", "this_year")
FILE_FORMATS = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def date_window(date_range: str, now: datetime | None = None) -> tuple[datetime, datetime]:
    """Return [start, end) for a named range, in UTC."""
    now = now or utcnow()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if date_range == "last_7_days":
        return now - timedelta(days=7), now
    if date_range == "last_30_days":
        return now - timedelta(days=30), now
    if date_range == "this_month":
        return month_start, now
    if date_range == "last_month":
        previous = (month_start - timedelta(days=1)).replace(day=1)
        return previous, month_start
    if date_range == "this_year":
        return month_start.replace(month=1), now
    raise ValidationError(
        f"Unknown date range '{date_range}'. Allowed: {', '.join(DATE_RANGES)}"
    )


def _shipment_rows(db: Session, start: datetime, end: datetime) -> tuple[list[str], list[list[Any]]]:
    headers = [
        "Tracking Number",
        "Status",
        "Origin",
        "Destination",
        "Weight (kg)",
        "Current Location",
        "Sender",
        "Receiver",
        "Created At",
    ]
    shipments = (
        db.query(Shipment)
        .filter(Shipment.created_at >= start, Shipment.created_at < end)
        .order_by(Shipment.created_at.asc())
        .all()
    )
    rows = [
        [
            s.tracking_number,
            s.status,
            s.origin,
            s.destination,
            s.weight,
            s.current_location,
            s.sender_name,
            s.receiver_name,
            s.created_at,
        ]
        for s in shipments
    ]
    return headers, rows


def _payment_rows(db: Session, start: datetime, end: datetime) -> tuple[list[str], list[list[Any]]]:
    headers = [
        "Reference",
        "Transaction ID",
        "Amount",
        "Currency",
        "Status",
        "Method",
        "Created At",
    ]
    payments = (
        db.query(Payment)
        .filter(Payment.created_at >= start, Payment.created_at < end)
        .order_by(Payment.created_at.asc())
        .all()
    )
    rows = [
        [
            p.payment_reference,
            p.transaction_id,
            float(p.amount),
            p.currency,
            p.status,
            p.payment_method,
            p.created_at,
        ]
        for p in payments
    ]
    return headers, rows


def _support_rows(db: Session, start: datetime, end: datetime) -> tuple[list[str], list[list[Any]]]:
    headers = ["Title", "Status", "Requester", "Messages", "Created At", "Last Activity"]
    message_counts = dict(
        db.query(SupportMessage.conversation_id, func.count(SupportMessage.id))
        .group_by(SupportMessage.conversation_id)
        .all()
    )
    conversations = (
        db.query(SupportConversation)
        .filter(
            SupportConversation.created_at >= start,
            SupportConversation.created_at < end,
        )
        .order_by(SupportConversation.created_at.asc())
        .all()
    )
    rows = [
        [
            c.title,
            c.status,
            c.owner.email if c.owner else c.guest_email,
            message_counts.get(c.id, 0),
            c.created_at,
            c.updated_at,
        ]
        for c in conversations
    ]
    return headers, rows


_BUILDERS = {
    "shipments": _shipment_rows,
    "payments": _payment_rows,
    "support": _support_rows,
}


def _cell(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None).isoformat(sep=" ", timespec="seconds")
    return "" if value is None else value


def _to_csv(headers: list[str], rows: list[list[Any]]) -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_cell(v) for v in row])
    return buffer.getvalue().encode("utf-8")


def _to_xlsx(title: str, headers: list[str], rows: list[list[Any]]) -> bytes:
    import openpyxl

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = title[:31]
    ws.append(headers)
    for row in rows:
        ws.append([_cell(v) for v in row])
    buffer = io.BytesIO()
    wb.save(buffer)
    wb.close()
    return buffer.getvalue()


def generate_report(
    db: Session,
    report_type: str,
    date_range: str = "last_30_days",
    file_format: str = "csv",
    now: datetime | None = None,
) -> tuple[str, bytes, str]:
    """Build a report file. Returns (filename, content, media_type)."""
    if report_type not in _BUILDERS:
        raise ValidationError(
            f"Unknown report type '{report_type}'. Allowed: {', '.join(REPORT_TYPES)}"
        )
    if file_format not in FILE_FORMATS:
        raise ValidationError(
            f"Unknown file format '{file_format}'. Allowed: {', '.join(FILE_FORMATS)}"
        )
    now = now or utcnow()
    start, end = date_window(date_range, now)
    headers, rows = _BUILDERS[report_type](db, start, end)
    if file_format == "xlsx":
        content = _to_xlsx(report_type, headers, rows)
    else:
        content = _to_csv(headers, rows)
    filename = f"{report_type}_report_{now:%Y-%m-%d}.{file_format}"
    logger.info(
        "Generated %s report (%s, %d rows) as %s",
        report_type,
        date_range,
        len(rows),
        file_format,
    )
    return filename, content, FILE_FORMATS[file_format]
