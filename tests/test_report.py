"""
Unit tests for the alert table and the expiry report.
"""

from datetime import datetime, timedelta

from rxalerts.clock import APP_TZ
from rxalerts.models import Medicine
from rxalerts.report import alert_rows, build_expiry_report, category_summary

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=APP_TZ)


# ── Helpers ──────────────────────────────────────────────────────────

def med(med_id, days, quantity=50, category=None, **extra):
    payload = {
        "id": med_id,
        "medicine_name": f"Med {med_id}",
        "quantity": quantity,
        "expire_date": (NOW + timedelta(days=days)).isoformat() if days is not None else "",
        "batch_number": f"BN-{med_id}",
    }
    if category:
        payload["category"] = {"id": 1, "name": category}
    payload.update(extra)
    return Medicine.from_dict(payload)


def inventory():
    return [
        med(1, -5, quantity=3, category="Antibiotics", unit_price=2),
        med(2, 20, category="Vitamins"),
        med(3, 200, category="Antibiotics"),
        med(4, 500),
        med(5, None, category="Vitamins"),
    ]


def ids(records):
    return [r["id"] for r in records]


# ── Tests: alert_rows ────────────────────────────────────────────────

def test_alert_rows_sorted_soonest_first_with_status():
    result = alert_rows([med(1, 120), med(2, 10), med(3, 90)], NOW)

    assert [r["id"] for r in result["rows"]] == [2, 3, 1]
    assert [r["row_number"] for r in result["rows"]] == [1, 2, 3]
    assert [r["days_remaining"] for r in result["rows"]] == [10, 90, 120]
    assert [r["status"] for r in result["rows"]] == ["Expiring Soon", "Expiring Soon", ""]
    assert result["total"] == 3
    assert result["total_pages"] == 1


def test_alert_rows_paginates_and_clamps():
    meds = [med(i, i) for i in range(1, 26)]

    second = alert_rows(meds, NOW, page=2)
    assert second["page"] == 2
    assert second["total_pages"] == 3
    assert second["rows"][0]["row_number"] == 11
    assert len(second["rows"]) == 10

    assert alert_rows(meds, NOW, page=99)["page"] == 3
    assert len(alert_rows(meds, NOW, page=99)["rows"]) == 5
    assert alert_rows(meds, NOW, page=0)["page"] == 1


def test_alert_rows_empty():
    result = alert_rows([], NOW)
    assert result["rows"] == []
    assert result["total_pages"] == 1


def test_alert_rows_skips_undated_records():
    result = alert_rows([med(1, None), med(2, 5)], NOW)
    assert [r["id"] for r in result["rows"]] == [2]


# ── Tests: build_expiry_report ───────────────────────────────────────

def test_report_buckets_for_ninety_days():
    report = build_expiry_report(inventory(), NOW, "90_days")

    assert report["time_period"] == "90_days"
    assert ids(report["expired"]) == [1]
    assert ids(report["expiring_soon"]) == [2]
    assert ids(report["expiring_later"]) == [3]
    assert report["expired_count"] == 1
    assert report["expiring_soon_count"] == 1
    assert report["expiring_later_count"] == 1
    assert report["category_counts"] == {"Antibiotics": 1, "Vitamins": 1}


def test_report_total_value_uses_unit_price_times_quantity():
    report = build_expiry_report(inventory(), NOW, "90_days")
    assert report["total_value"] == 6.0

    no_price = build_expiry_report([med(1, -1, quantity=4)], NOW, "30_days")
    assert no_price["total_value"] == 40.0


def test_report_default_period_is_one_year():
    report = build_expiry_report(inventory(), NOW)
    assert report["time_period"] == "1_year"
    assert ids(report["expiring_soon"]) == [2, 3]
    assert report["expiring_later"] == []


def test_unknown_period_falls_back_to_default():
    assert build_expiry_report(inventory(), NOW, "forever")["time_period"] == "1_year"


def test_report_all_is_unbounded():
    report = build_expiry_report(inventory(), NOW, "all")
    assert ids(report["expiring_soon"]) == [2, 3, 4]
    assert report["expiring_later"] == []
    assert report["category_counts"]["Uncategorized"] == 1


def test_report_category_filter():
    report = build_expiry_report(inventory(), NOW, "90_days", category="Antibiotics")
    assert report["category"] == "Antibiotics"
    assert ids(report["expired"]) == [1]
    assert report["expiring_soon"] == []
    assert ids(report["expiring_later"]) == [3]


def test_report_limit_and_offset():
    report = build_expiry_report(inventory(), NOW, "all", limit=2, offset=1)
    assert ids(report["expiring_soon"]) == [2, 3]
    assert report["expired"] == []


def test_report_records_carry_display_fields():
    row = build_expiry_report(inventory(), NOW, "90_days")["expiring_soon"][0]
    assert row["medicine_name"] == "Med 2"
    assert row["supplier_name"] == "N/A"
    assert row["days_remaining"] == 20


def test_empty_report():
    report = build_expiry_report([], NOW, "30_days")
    assert report["expired_count"] == 0
    assert report["total_value"] == 0.0
    assert report["category_counts"] == {}
    assert category_summary(report) == "(no expired or expiring medicines)"


def test_category_summary_table():
    table = category_summary(build_expiry_report(inventory(), NOW, "90_days"))
    assert "Antibiotics" in table
    assert "Vitamins" in table
    assert "count" in table


def test_report_pages_only_rows_inside_the_window():
    far_then_soon = [med(1, 500), med(2, 10)]
    report = build_expiry_report(far_then_soon, NOW, "1_year", limit=1)
    assert report["expiring_soon_count"] == 1
    assert ids(report["expiring_soon"]) == [2]


def test_report_undated_rows_do_not_take_page_slots():
    report = build_expiry_report([med(1, None), med(2, -3)], NOW, "all", limit=1)
    assert ids(report["expired"]) == [2]
