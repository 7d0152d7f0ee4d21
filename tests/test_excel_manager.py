from concurrent.futures import ThreadPoolExecutor

import pytest

from orderdesk.services.excel_manager import ExcelManager
from orderdesk.tasks import LedgerExportError, export_order_to_excel, health_check


def payload(order_id, **extra):
    data = {
        "order_id": order_id,
        "user_id": 7,
        "order_type": "dine-in",
        "customer_name": "John Smith",
        "customer_phone": "212-555-0147",
        "table_number": "12",
        "delivery_address": None,
        "items": [{"id": 1, "name": "Margherita Pizza", "price": 12.5, "quantity": 2}],
        "item_count": 1,
        "order_notes": None,
        "total_amount": 25.0,
        "order_status": "pending",
        "created_at": "2024-05-15T12:00:00+00:00",
    }
    data.update(extra)
    return data


def test_export_appends_rows():
    first = ExcelManager.export_order(payload(1))
    ExcelManager.export_order(payload(2, customer_name="Jane Doe"))

    assert first["success"] is True
    assert first["exported_at"]
    rows = ExcelManager.get_all_orders()
    assert [row["order_id"] for row in rows] == [1, 2]
    assert rows[0]["items"] == "2x Margherita Pizza @ 12.5"
    assert rows[1]["customer_name"] == "Jane Doe"
    assert set(rows[0]) == set(ExcelManager.ORDER_COLUMNS)


def test_concurrent_exports_keep_every_row():
    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(lambda i: ExcelManager.export_order(payload(i)), range(1, 9)))

    assert all(r["success"] for r in results)
    assert sorted(row["order_id"] for row in ExcelManager.get_all_orders()) == list(range(1, 9))


def test_empty_ledger():
    assert ExcelManager.get_all_orders() == []
    assert ExcelManager.clear_all() is True


def test_export_task_reports_timing():
    result = export_order_to_excel.apply(args=[payload(42)]).get()

    assert result["success"] is True
    assert "processing_time_seconds" in result
    assert ExcelManager.get_all_orders()[0]["order_id"] == 42


def test_worker_health_task():
    assert health_check.apply().get()["status"] == "healthy"


def test_unreadable_ledger_is_moved_aside():
    ledger = ExcelManager.orders_file()
    ledger.parent.mkdir(parents=True, exist_ok=True)
    ledger.write_bytes(b"not a workbook")

    result = ExcelManager.export_order(payload(5))

    quarantined = list(ledger.parent.glob(f"{ledger.stem}.corrupt-*{ledger.suffix}"))
    try:
        assert result["success"] is True
        assert len(quarantined) == 1
        assert quarantined[0].read_bytes() == b"not a workbook"
        assert [row["order_id"] for row in ExcelManager.get_all_orders()] == [5]
    finally:
        for f in quarantined:
            f.unlink()


def test_failed_export_is_retried(monkeypatch):
    outcomes = [
        {"success": False, "message": "Lock timeout (10s)", "order_id": 9, "exported_at": None},
        {"success": True, "message": "Order #9 exported", "order_id": 9, "exported_at": "now"},
    ]
    calls = []

    def flaky_export(order_data):
        calls.append(order_data["order_id"])
        return dict(outcomes[len(calls) - 1])

    monkeypatch.setattr(ExcelManager, "export_order", flaky_export)

    result = export_order_to_excel.apply(args=[payload(9)]).get()

    assert result["success"] is True
    assert calls == [9, 9]


def test_export_gives_up_after_max_retries(monkeypatch):
    def always_fails(order_data):
        return {"success": False, "message": "disk full", "order_id": 9, "exported_at": None}

    monkeypatch.setattr(ExcelManager, "export_order", always_fails)

    with pytest.raises(LedgerExportError, match="disk full"):
        export_order_to_excel.apply(args=[payload(9)]).get()
