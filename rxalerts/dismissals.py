"""
Per-identity "seen" and "deleted" notification sets on top of a KeyValueStore.
"""

import json
import sys
from typing import Any, Callable, Iterable, Optional, Set, Tuple

from rxalerts.models import DismissalRecord, Identity
from rxalerts.storage import KeyValueStore

SEEN_PREFIX = "seenNotificationIds"
DELETED_PREFIX = "deletedNotificationIds"


def dismissal_keys(identity: Identity) -> Tuple[str, str]:
    """Return the (seen, deleted) storage keys for *identity*.

    Every read and write site goes through here so the key format cannot
    drift: ``seenNotificationIds_<ROLE>_<id>`` / ``deletedNotificationIds_<ROLE>_<id>``.
    """
    suffix = f"{identity.role}_{identity.user_id}"
    return f"{SEEN_PREFIX}_{suffix}", f"{DELETED_PREFIX}_{suffix}"


def _is_id(value: Any) -> bool:
    return isinstance(value, (int, str)) and not isinstance(value, bool)


class DismissalStore:
    def __init__(self, store: KeyValueStore):
        self.store = store

    def _decode(self, key: str, raw: Optional[str]) -> Set[Any]:
        if raw is None:
            return set()
        try:
            values = json.loads(raw)
        except ValueError:
            print(f"[WARN] ignoring corrupt value for {key}", file=sys.stderr)
            return set()
        if not isinstance(values, list):
            print(f"[WARN] ignoring corrupt value for {key}", file=sys.stderr)
            return set()
        return {v for v in values if _is_id(v)}

    def _read_set(self, key: str) -> Set[Any]:
        return self._decode(key, self.store.get(key))

    def _add_to_set(self, key: str, ids: Set[Any]) -> None:
        """Union *ids* into the stored set as one read-modify-write."""

        def merge(raw: Optional[str]) -> Optional[str]:
            current = self._decode(key, raw)
            if ids <= current:
                return None
            ordered = sorted(current | ids, key=lambda v: (isinstance(v, str), v))
            return json.dumps(ordered)

        changed = self.store.update(key, merge, notify=False)
        # Listeners run after the store lock is released; they may read this store again.
        self.store.notify(changed)

    def load(self, identity: Optional[Identity]) -> DismissalRecord:
        """Current record for *identity*; an empty ephemeral record if None."""
        if identity is None:
            return DismissalRecord(persistent=False)
        seen_key, deleted_key = dismissal_keys(identity)
        return DismissalRecord(
            seen=self._read_set(seen_key),
            deleted=self._read_set(deleted_key),
        )

    def mark_seen(self, identity: Optional[Identity], ids: Iterable[Any]) -> None:
        if identity is None:
            return
        seen_key, _ = dismissal_keys(identity)
        ids = {i for i in ids if _is_id(i)}
        if ids:
            self._add_to_set(seen_key, ids)

    def mark_deleted(self, identity: Optional[Identity], medicine_id: Any) -> None:
        if identity is None or not _is_id(medicine_id):
            return
        _, deleted_key = dismissal_keys(identity)
        self._add_to_set(deleted_key, {medicine_id})

    def subscribe(self, identity: Optional[Identity], callback: Callable[[], None]) -> Callable[[], None]:
        """Call *callback* whenever this identity's seen/deleted sets change."""
        if identity is None:
            return lambda: None
        keys = set(dismissal_keys(identity))

        def on_change(changed: Set[str]):
            if changed & keys:
                callback()

        return self.store.subscribe(on_change)
