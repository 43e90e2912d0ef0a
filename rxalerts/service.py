"""
Notification center: one shared polling subscription per identity.

Fetches the medicine snapshot, classifies it with the badge and list
horizons, aggregates against the identity's dismissal record and publishes
the result to subscribed views.
"""

import sys
import threading
import traceback
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from rxalerts.aggregator import badge_view, list_view
from rxalerts.classifier import classify
from rxalerts.clock import Clock, SystemClock
from rxalerts.config import ALERT_HORIZON_DAYS, BADGE_HORIZON_DAYS, IDLE_CENTER_HOURS, POLL_INTERVAL_SECONDS
from rxalerts.dismissals import DismissalStore
from rxalerts.medicine_api import SnapshotError
from rxalerts.models import BadgeView, Classification, Identity, Medicine, NotificationLists
from rxalerts.poller import PollingDriver


class NotificationCenter:
    """Badge count and grouped lists for one identity.

    Seen semantics: polls never touch ``seen``. Only mark_visited_seen(),
    called when the user opens the notifications page, marks the currently
    visible ids as seen.
    """

    def __init__(
        self,
        identity: Optional[Identity],
        provider,
        dismissals: DismissalStore,
        clock: Optional[Clock] = None,
        badge_horizon_days: float = BADGE_HORIZON_DAYS,
        list_horizon_days: float = ALERT_HORIZON_DAYS,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ):
        self.identity = identity
        self.provider = provider
        self.dismissals = dismissals
        self.clock = clock or SystemClock()
        self.badge_horizon_days = badge_horizon_days
        self.list_horizon_days = list_horizon_days

        self._lock = threading.RLock()
        self._active = False
        self._generation = 0
        self._fetch_seq = 0
        self._applied_seq = 0
        self._medicines: Optional[List[Medicine]] = None
        self._badge_classification = Classification()
        self._list_classification = Classification()
        self._badge = BadgeView()
        self._lists = NotificationLists()
        self._listeners: List[Callable[["NotificationCenter"], None]] = []
        self._unsubscribe_store: Optional[Callable[[], None]] = None
        self.last_error: Optional[str] = None
        self.last_refreshed: Optional[datetime] = None

        label = f"{identity.role}/{identity.user_id}" if identity else "anonymous"
        self._label = label
        self._driver = PollingDriver(self.refresh, poll_interval, name=f"poll-{label}")

    # ── Lifecycle ────────────────────────────────────────────────────

    @property
    def active(self) -> bool:
        return self._active

    def start(self) -> None:
        """Fetch immediately, then poll on a fixed interval until stop()."""
        with self._lock:
            if self._active:
                return
            self._active = True
            self._generation += 1
        if self.identity is None:
            return
        self._unsubscribe_store = self.dismissals.subscribe(self.identity, self._on_dismissals_changed)
        try:
            self.refresh()
        finally:
            self._driver.start()

    def stop(self) -> None:
        """Cancel polling. A fetch still in flight will be discarded."""
        with self._lock:
            self._active = False
            self._generation += 1
        self._driver.stop()
        if self._unsubscribe_store is not None:
            self._unsubscribe_store()
            self._unsubscribe_store = None

    # ── Pipeline ─────────────────────────────────────────────────────

    def refresh(self) -> bool:
        """Run fetch → classify → aggregate once. Returns True if applied."""
        with self._lock:
            if not self._active or self.identity is None:
                return False
            generation = self._generation
            self._fetch_seq += 1
            seq = self._fetch_seq

        try:
            medicines = self.provider.fetch_medicines()
            now = self.clock.now()
            badge_classification = classify(medicines, now, self.badge_horizon_days)
            list_classification = classify(medicines, now, self.list_horizon_days)
        except SnapshotError as e:
            self._record_failure(generation, seq, e)
            print(f"[WARN] snapshot fetch failed for {self._label}: {e}", file=sys.stderr)
            return False
        except Exception as e:
            self._record_failure(generation, seq, e)
            print(f"[ERROR] notification refresh failed for {self._label}: {e}", file=sys.stderr)
            traceback.print_exc()
            return False

        with self._lock:
            if not self._active or generation != self._generation:
                return False
            # A fetch that started later has already been applied.
            if seq < self._applied_seq:
                return False
            try:
                badge, lists = self._views(badge_classification, list_classification, medicines)
            except Exception as e:
                self.last_error = str(e)
                print(f"[ERROR] notification refresh failed for {self._label}: {e}", file=sys.stderr)
                traceback.print_exc()
                return False
            self._applied_seq = seq
            self._medicines = medicines
            self._badge_classification = badge_classification
            self._list_classification = list_classification
            self._badge, self._lists = badge, lists
            self.last_error = None
            self.last_refreshed = now
        self._publish()
        return True

    def _record_failure(self, generation: int, seq: int, error: Exception) -> None:
        with self._lock:
            if generation == self._generation and seq > self._applied_seq:
                self.last_error = str(error)

    def _views(self, badge_classification, list_classification, medicines):
        # Caller holds self._lock. The dismissal record is read fresh on every pass.
        record = self.dismissals.load(self.identity)
        return (
            badge_view(badge_classification, record),
            list_view(list_classification, record, medicines),
        )

    def _aggregate(self) -> None:
        # Caller holds self._lock.
        self._badge, self._lists = self._views(
            self._badge_classification, self._list_classification, self._medicines or []
        )

    def _reaggregate(self) -> None:
        with self._lock:
            if not self._active or self._medicines is None:
                return
            self._aggregate()
        self._publish()

    def _on_dismissals_changed(self) -> None:
        self._reaggregate()

    # ── Actions exposed to views ─────────────────────────────────────

    def dismiss(self, medicine_id: Any) -> None:
        """Hide one notification for this identity, permanently."""
        self.dismissals.mark_deleted(self.identity, medicine_id)
        with self._lock:
            if not self._active:
                return
            self._lists = self._lists.without(medicine_id)
            if self._medicines is not None:
                self._aggregate()
        self._publish()

    def mark_visited_seen(self) -> None:
        """Mark every currently visible badge id as seen."""
        with self._lock:
            visible = set(self._badge.visible_ids)
        self.dismissals.mark_seen(self.identity, visible)
        self._reaggregate()

    # ── Outputs ──────────────────────────────────────────────────────

    @property
    def unread_count(self) -> int:
        with self._lock:
            return self._badge.unread_count

    @property
    def badge(self) -> BadgeView:
        with self._lock:
            return BadgeView(set(self._badge.visible_ids), self._badge.unread_count)

    @property
    def visible_lists(self) -> NotificationLists:
        with self._lock:
            return NotificationLists(
                expired=list(self._lists.expired),
                low_stock=list(self._lists.low_stock),
                expiring_soon=list(self._lists.expiring_soon),
            )

    @property
    def medicines(self) -> List[Medicine]:
        """Last successfully fetched snapshot (empty before the first one)."""
        with self._lock:
            return list(self._medicines or [])

    @property
    def stale(self) -> bool:
        return self.last_error is not None

    def now(self) -> datetime:
        return self.clock.now()

    # ── Subscriptions ────────────────────────────────────────────────

    def subscribe(self, listener: Callable[["NotificationCenter"], None]) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _publish(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(self)
            except Exception as e:
                print(f"[WARN] notification listener failed: {e}", file=sys.stderr)


class NotificationRegistry:
    """Running NotificationCenter per identity (one per logged-in user)."""

    def __init__(self, provider_factory, dismissals: DismissalStore, clock: Optional[Clock] = None, **center_options):
        self.provider_factory = provider_factory
        self.dismissals = dismissals
        self.clock = clock or SystemClock()
        self.center_options = center_options
        self._centers: Dict[Identity, NotificationCenter] = {}
        self._tokens: Dict[Identity, Optional[str]] = {}
        self._last_access: Dict[Identity, datetime] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._centers)

    def get(self, identity: Optional[Identity]) -> Optional[NotificationCenter]:
        with self._lock:
            return self._centers.get(identity)

    def open(self, identity: Optional[Identity], token: Optional[str] = None) -> NotificationCenter:
        """Return the running center for *identity*, starting one if needed.

        A None identity gets a throwaway center that never fetches.
        """
        if identity is None:
            center = NotificationCenter(None, None, self.dismissals, self.clock, **self.center_options)
            center.start()
            return center

        with self._lock:
            self._last_access[identity] = self.clock.now()
            center = self._centers.get(identity)
            if center is not None:
                if token and token != self._tokens.get(identity):
                    center.provider = self.provider_factory(token)
                    self._tokens[identity] = token
                return center
            center = NotificationCenter(
                identity, self.provider_factory(token), self.dismissals, self.clock, **self.center_options
            )
            self._centers[identity] = center
            self._tokens[identity] = token
        print(f"[init] Starting notifications for {identity.role}/{identity.user_id}")
        center.start()
        return center

    def close(self, identity: Optional[Identity]) -> None:
        with self._lock:
            center = self._centers.pop(identity, None)
            self._tokens.pop(identity, None)
            self._last_access.pop(identity, None)
        if center is not None:
            center.stop()

    def switch(
        self, old: Optional[Identity], new: Optional[Identity], token: Optional[str] = None
    ) -> NotificationCenter:
        """Stop everything for *old* before anything starts for *new*."""
        if old is not None and old != new:
            self.close(old)
        return self.open(new, token)

    def close_all(self) -> None:
        with self._lock:
            centers = list(self._centers.values())
            self._centers.clear()
            self._tokens.clear()
            self._last_access.clear()
        for center in centers:
            center.stop()

    def close_idle(self, max_idle: timedelta = timedelta(hours=IDLE_CENTER_HOURS)) -> int:
        """Stop centers nobody has opened for longer than *max_idle*.

        Covers users whose token expired or who left without logging out.
        """
        cutoff = self.clock.now() - max_idle
        with self._lock:
            idle = [i for i, seen in self._last_access.items() if seen < cutoff]
            centers = [self._centers.pop(i, None) for i in idle]
            for identity in idle:
                self._tokens.pop(identity, None)
                self._last_access.pop(identity, None)
        for center in centers:
            if center is not None:
                center.stop()
        if idle:
            print(f"[cleanup] Closed {len(idle)} idle notification center(s)")
        return len(idle)
