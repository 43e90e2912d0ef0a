"""
Combine classification output with an identity's dismissal record.

Two variants with different contracts:

* badge  -- one unread count over the union of all classes; consults both
            ``deleted`` and ``seen``.
* list   -- per-class grouped lists hydrated to medicine records; consults
            ``deleted`` only, so seen items stay listed.
"""

from typing import Any, Dict, Iterable, List

from rxalerts.models import BadgeView, Classification, DismissalRecord, Medicine, NotificationLists, usable_id


def badge_view(classification: Classification, record: DismissalRecord) -> BadgeView:
    visible = classification.all_ids() - record.deleted
    return BadgeView(visible_ids=visible, unread_count=len(visible - record.seen))


def _hydrate(ids: Iterable[Any], deleted: set, by_id: Dict[Any, Medicine]) -> List[Medicine]:
    out = []
    for medicine_id in ids:
        if medicine_id in deleted:
            continue
        med = by_id.get(medicine_id)
        if med is not None:
            out.append(med)
    return out


def list_view(
    classification: Classification,
    record: DismissalRecord,
    medicines: Iterable[Medicine],
) -> NotificationLists:
    by_id = {m.id: m for m in medicines if usable_id(m.id)}
    return NotificationLists(
        expired=_hydrate(classification.expired, record.deleted, by_id),
        low_stock=_hydrate(classification.low_stock, record.deleted, by_id),
        expiring_soon=_hydrate(classification.expiring_soon, record.deleted, by_id),
    )
