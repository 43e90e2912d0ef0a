"""
Expiry reporting: the paginated alert table and the expiry report.
"""

import math
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import pandas as pd

from rxalerts.classifier import classify, days_remaining, expiry_status, parse_expire_date
from rxalerts.config import (
    ALERTS_PER_PAGE,
    DEFAULT_REPORT_PERIOD,
    REPORT_PERIODS,
    REPORT_WINDOW_DAYS,
)
from rxalerts.models import Medicine, usable_id

REPORT_COLUMNS = [
    "id", "medicine_name", "batch_number", "category_name", "supplier_name",
    "quantity", "expire_date", "days_remaining", "total_value",
]


# ── Alert table ──────────────────────────────────────────────────────

def alert_rows(
    medicines: List[Medicine],
    now: datetime,
    page: int = 1,
    per_page: int = ALERTS_PER_PAGE,
) -> Dict[str, Any]:
    """Page of expiring medicines, soonest first, with days remaining and status.

    *medicines* should already be the visible expiring-soon list. Pages
    outside the valid range are clamped.
    """
    dated = [(parse_expire_date(m.expire_date), m) for m in medicines]
    dated = [(d, m) for d, m in dated if d is not None]
    dated.sort(key=lambda pair: pair[0])

    total = len(dated)
    total_pages = max(1, math.ceil(total / per_page))
    page = min(max(1, page), total_pages)
    start = (page - 1) * per_page

    rows = []
    for offset, (_, med) in enumerate(dated[start:start + per_page]):
        days = days_remaining(med.expire_date, now)
        rows.append({
            "row_number": start + offset + 1,
            "id": med.id,
            "medicine_name": med.display_name,
            "batch_number": med.batch_number or "N/A",
            "category_name": med.category_name,
            "quantity": med.quantity,
            "expire_date": med.expire_date,
            "days_remaining": days,
            "status": expiry_status(days),
        })

    return {
        "page": page,
        "per_page": per_page,
        "total": total,
        "total_pages": total_pages,
        "rows": rows,
    }


# ── Expiry report ────────────────────────────────────────────────────

def _frame(medicines: List[Medicine], now: datetime) -> pd.DataFrame:
    records = []
    for med in medicines:
        row = med.to_dict()
        row["days_remaining"] = days_remaining(med.expire_date, now)
        records.append({col: row.get(col) for col in REPORT_COLUMNS})
    return pd.DataFrame(records, columns=REPORT_COLUMNS)


def build_expiry_report(
    medicines: List[Medicine],
    now: datetime,
    time_period: Optional[str] = None,
    category: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
) -> Dict[str, Any]:
    """
    Bucket medicines into expired / expiring soon / expiring later.

    The expiring-soon horizon comes from *time_period* (see REPORT_PERIODS;
    unknown values fall back to one year). "Later" covers the rest of the
    one-year window and is empty for "all". Dismissal state does not apply.
    """
    period = time_period if time_period in REPORT_PERIODS else DEFAULT_REPORT_PERIOD
    horizon = REPORT_PERIODS[period]

    # Filter before paging so rows outside the report never take up a page slot.
    window_end = None if horizon is None else now + timedelta(days=REPORT_WINDOW_DAYS)
    selected = []
    for med in medicines:
        if not usable_id(med.id) or (category and med.category_name != category):
            continue
        expires = parse_expire_date(med.expire_date)
        if expires is None or (window_end is not None and expires > window_end):
            continue
        selected.append(med)
    selected = selected[offset:offset + limit]

    soon_cls = classify(selected, now, horizon)
    window_cls = classify(selected, now, None if horizon is None else REPORT_WINDOW_DAYS)
    later_ids = set(window_cls.expiring_soon) - set(soon_cls.expiring_soon)
    if horizon is None:
        later_ids = set()

    df = _frame(selected, now)
    expired = df[df["id"].isin(soon_cls.expired)]
    soon = df[df["id"].isin(soon_cls.expiring_soon)]
    later = df[df["id"].isin(later_ids)]

    flagged = pd.concat([expired, soon])
    category_counts = (
        flagged["category_name"].replace("N/A", "Uncategorized").value_counts().to_dict()
        if not flagged.empty else {}
    )

    def records(frame: pd.DataFrame) -> List[Dict[str, Any]]:
        frame = frame.sort_values("days_remaining", kind="stable")
        return frame.astype(object).where(frame.notna(), None).to_dict(orient="records")

    return {
        "generated_at": now.isoformat(),
        "time_period": period,
        "category": category,
        "expired": records(expired),
        "expiring_soon": records(soon),
        "expiring_later": records(later),
        "expired_count": len(expired),
        "expiring_soon_count": len(soon),
        "expiring_later_count": len(later),
        "total_value": round(float(expired["total_value"].sum()), 2) if not expired.empty else 0.0,
        "category_counts": {str(k): int(v) for k, v in category_counts.items()},
    }


def category_summary(report: Dict[str, Any]) -> str:
    """Markdown table of flagged medicines per category."""
    counts = report.get("category_counts") or {}
    if not counts:
        return "(no expired or expiring medicines)"
    frame = pd.DataFrame(sorted(counts.items()), columns=["category", "count"])
    return frame.to_markdown(index=False)
