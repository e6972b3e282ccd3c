import csv
import io
from datetime import datetime, timezone

import openpyxl
import pytest

from auracargo.core.errors import ValidationError
from auracargo.services import shipments as shipment_service
from auracargo.services.reports import date_window, generate_report


def test_date_windows():
    now = datetime(2026, 3, 15, 10, 30, tzinfo=timezone.utc)
    assert date_window("last_month", now) == (
        datetime(2026, 2, 1, tzinfo=timezone.utc),
        datetime(2026, 3, 1, tzinfo=timezone.utc),
    )
    assert date_window("this_year", now)[0] == datetime(2026, 1, 1, tzinfo=timezone.utc)
    with pytest.raises(ValidationError):
        date_window("forever", now)


def test_shipments_csv_contains_real_rows(db, make_profile):
    owner = make_profile()
    shipment = shipment_service.create_shipment(
        db, owner.id, {"origin": "Lagos", "destination": "Jos", "weight": 3}
    )
    filename, content, media_type = generate_report(db, "shipments", "last_7_days", "csv")

    assert filename.startswith("shipments_report_") and filename.endswith(".csv")
    assert media_type == "text/csv"
    rows = list(csv.reader(io.StringIO(content.decode("utf-8"))))
    assert rows[0][0] == "Tracking Number"
    assert rows[1][:4] == [shipment.tracking_number, "Pending", "Lagos", "Jos"]


def test_xlsx_report(db, make_profile):
    owner = make_profile()
    shipment_service.create_shipment(
        db, owner.id, {"origin": "Lagos", "destination": "Jos", "weight": 3}
    )
    _, content, _ = generate_report(db, "shipments", "this_month", "xlsx")
    sheet = openpyxl.load_workbook(io.BytesIO(content)).active
    assert sheet.title == "shipments"
    assert sheet.max_row == 2


def test_unknown_report_type(db):
    with pytest.raises(ValidationError):
        generate_report(db, "documents")


def test_report_download_endpoint(client, admin):
    resp = client.get(
        "/admin/reports/support",
        params={"date_range": "last_30_days", "file_format": "csv"},
        headers=admin["headers"],
    )
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert "support_report_" in resp.headers["content-disposition"]


def test_admin_stats(client, customer, admin):
    client.post(
        "/shipments",
        json={"origin": "Lagos", "destination": "Jos", "weight": 1},
        headers=customer["headers"],
    )
    stats = client.get("/admin/stats", headers=admin["headers"]).json()
    assert stats["shipments"]["Pending"] == 1
    assert stats["shipments"]["Delivered"] == 0
    assert stats["support"] == {"open_conversations": 0, "unread_for_admin": 0}
