"""
Unit tests for CLI command handling.
"""

from datetime import datetime, timedelta

from rxalerts.cli import handle
from rxalerts.clock import APP_TZ, FixedClock
from rxalerts.dismissals import DismissalStore
from rxalerts.models import Identity, Medicine
from rxalerts.service import NotificationCenter
from rxalerts.storage import MemoryStore

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=APP_TZ)


# ── Helpers / Fakes ──────────────────────────────────────────────────

class FakeProvider:
    def fetch_medicines(self):
        return [
            Medicine.from_dict({"id": 1, "quantity": 2, "expire_date": (NOW - timedelta(days=1)).isoformat()}),
            Medicine.from_dict({"id": 2, "quantity": 40, "expire_date": (NOW + timedelta(days=15)).isoformat()}),
        ]


def make_center():
    center = NotificationCenter(
        Identity("MANAGER", 1), FakeProvider(), DismissalStore(MemoryStore()),
        clock=FixedClock(NOW), poll_interval=3600,
    )
    center.start()
    return center


# ── Tests ────────────────────────────────────────────────────────────

def test_count_and_seen(capsys):
    center = make_center()
    try:
        assert handle(center, "count")
        assert "Unread notifications: 2" in capsys.readouterr().out
        handle(center, "seen")
        assert "Unread notifications: 0" in capsys.readouterr().out
    finally:
        center.stop()


def test_dismiss_parses_integer_ids():
    center = make_center()
    try:
        handle(center, "dismiss 1")
        assert center.visible_lists.expired == []
        assert center.dismissals.load(center.identity).deleted == {1}
    finally:
        center.stop()


def test_list_alerts_and_report(capsys):
    center = make_center()
    try:
        handle(center, "list")
        out = capsys.readouterr().out
        assert "[expired] (1)" in out
        assert "[expiring soon] (1)" in out

        handle(center, "alerts")
        assert "Expiring Soon" in capsys.readouterr().out

        handle(center, "report 30_days")
        assert "period=30_days" in capsys.readouterr().out
    finally:
        center.stop()


def test_quit_and_unknown_command(capsys):
    center = make_center()
    try:
        assert handle(center, "quit") is False
        assert handle(center, "bogus") is True
        assert "Commands:" in capsys.readouterr().out
    finally:
        center.stop()
