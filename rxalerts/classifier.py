"""
Pure notification classification: expired / low stock / expiring soon.
"""

import math
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, Optional

from rxalerts.clock import APP_TZ
from rxalerts.config import EXPIRING_SOON_STATUS_DAYS, LOW_STOCK_THRESHOLD
from rxalerts.models import Classification, Medicine, usable_id

SECONDS_PER_DAY = 24 * 60 * 60


# ── Field parsing ────────────────────────────────────────────────────

def parse_expire_date(value: Any) -> Optional[datetime]:
    """Parse an expire_date into an aware datetime, or None if unusable.

    Accepts datetimes, dates and ISO-8601 strings (a trailing "Z" means UTC).
    Naive values are taken to be in the application timezone.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=APP_TZ)
    return parsed


def parse_quantity(value: Any) -> Optional[int]:
    """Integer quantity, or None for missing / non-integral values."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


# ── Classification ───────────────────────────────────────────────────

def classify(medicines: Iterable[Medicine], now: datetime, horizon_days: Optional[float]) -> Classification:
    """Split *medicines* into expired / low-stock / expiring-soon id lists.

    A medicine whose id, expire_date or quantity is unusable is left out of
    all three lists. Expired and expiring-soon are disjoint; low stock is
    independent of expiry. A horizon of None means no upper bound.
    """
    result = Classification()
    horizon_end = None if horizon_days is None else now + timedelta(days=horizon_days)
    for med in medicines:
        if not usable_id(med.id):
            continue
        expires = parse_expire_date(med.expire_date)
        quantity = parse_quantity(med.quantity)
        if expires is None or quantity is None:
            continue
        if expires < now:
            result.expired.append(med.id)
        elif horizon_end is None or expires <= horizon_end:
            result.expiring_soon.append(med.id)
        if 0 <= quantity < LOW_STOCK_THRESHOLD:
            result.low_stock.append(med.id)
    return result


def days_remaining(expire_date: Any, now: datetime) -> Optional[int]:
    """Whole days until expiry, rounded up; None if the date is unusable."""
    expires = parse_expire_date(expire_date)
    if expires is None:
        return None
    return math.ceil((expires - now).total_seconds() / SECONDS_PER_DAY)


def expiry_status(days: Optional[int]) -> str:
    if days is not None and days <= EXPIRING_SOON_STATUS_DAYS:
        return "Expiring Soon"
    return ""
