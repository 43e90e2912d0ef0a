"""
Unit tests for per-identity seen / deleted sets.
"""

import json

from rxalerts.dismissals import DismissalStore, dismissal_keys
from rxalerts.models import Identity
from rxalerts.storage import JsonFileStore, MemoryStore

MANAGER = Identity("MANAGER", 1)
EMPLOYEE = Identity("EMPLOYEE", 1)


# ── Tests: keys ──────────────────────────────────────────────────────

def test_dismissal_keys_format():
    assert dismissal_keys(MANAGER) == (
        "seenNotificationIds_MANAGER_1",
        "deletedNotificationIds_MANAGER_1",
    )


def test_identity_role_is_normalised():
    assert Identity("manager", 1) == MANAGER
    assert dismissal_keys(Identity(" employee ", "u-9"))[0] == "seenNotificationIds_EMPLOYEE_u-9"


# ── Tests: load / mark ───────────────────────────────────────────────

def test_load_missing_keys_is_empty():
    record = DismissalStore(MemoryStore()).load(MANAGER)
    assert record.seen == set()
    assert record.deleted == set()
    assert record.persistent


def test_mark_seen_and_deleted_are_stored_as_json_arrays():
    store = MemoryStore()
    dismissals = DismissalStore(store)

    dismissals.mark_seen(MANAGER, [3, 1, 2])
    dismissals.mark_deleted(MANAGER, 5)

    assert json.loads(store.get("seenNotificationIds_MANAGER_1")) == [1, 2, 3]
    assert json.loads(store.get("deletedNotificationIds_MANAGER_1")) == [5]
    record = dismissals.load(MANAGER)
    assert record.seen == {1, 2, 3}
    assert record.deleted == {5}


def test_marks_only_grow():
    dismissals = DismissalStore(MemoryStore())
    dismissals.mark_seen(MANAGER, [1, 2])
    dismissals.mark_seen(MANAGER, [2, 3])
    dismissals.mark_deleted(MANAGER, 9)
    dismissals.mark_deleted(MANAGER, 9)

    record = dismissals.load(MANAGER)
    assert record.seen == {1, 2, 3}
    assert record.deleted == {9}


def test_identities_with_same_id_different_role_are_isolated():
    dismissals = DismissalStore(MemoryStore())
    dismissals.mark_seen(MANAGER, [1])
    dismissals.mark_deleted(MANAGER, 2)

    other = dismissals.load(EMPLOYEE)
    assert other.seen == set()
    assert other.deleted == set()


def test_corrupt_values_read_as_empty(capsys):
    store = MemoryStore({
        "seenNotificationIds_MANAGER_1": "{oops",
        "deletedNotificationIds_MANAGER_1": json.dumps({"not": "a list"}),
    })
    record = DismissalStore(store).load(MANAGER)

    assert record.seen == set()
    assert record.deleted == set()
    assert "ignoring corrupt value" in capsys.readouterr().err


def test_corrupt_value_is_replaced_on_next_write():
    store = MemoryStore({"seenNotificationIds_MANAGER_1": "garbage"})
    dismissals = DismissalStore(store)
    dismissals.mark_seen(MANAGER, [4])
    assert json.loads(store.get("seenNotificationIds_MANAGER_1")) == [4]


def test_mixed_id_types_survive_round_trip():
    dismissals = DismissalStore(MemoryStore())
    dismissals.mark_seen(MANAGER, [2, "abc", 1, True])
    assert dismissals.load(MANAGER).seen == {1, 2, "abc"}


def test_no_identity_is_ephemeral_and_never_written():
    store = MemoryStore()
    dismissals = DismissalStore(store)

    dismissals.mark_seen(None, [1])
    dismissals.mark_deleted(None, 1)
    record = dismissals.load(None)

    assert not record.persistent
    assert record.seen == set()
    assert record.deleted == set()
    assert store.get("seenNotificationIds_None_None") is None


def test_state_survives_restart(tmp_path):
    path = str(tmp_path / "dismissals.json")
    DismissalStore(JsonFileStore(path)).mark_deleted(MANAGER, 11)

    record = DismissalStore(JsonFileStore(path)).load(MANAGER)
    assert record.deleted == {11}


# ── Tests: subscribe ─────────────────────────────────────────────────

def test_subscribe_only_fires_for_own_keys():
    dismissals = DismissalStore(MemoryStore())
    calls = []
    dismissals.subscribe(MANAGER, lambda: calls.append("manager"))

    dismissals.mark_seen(EMPLOYEE, [1])
    assert calls == []

    dismissals.mark_deleted(MANAGER, 1)
    assert calls == ["manager"]


def test_subscribe_callback_may_read_store_again():
    dismissals = DismissalStore(MemoryStore())
    seen = []
    dismissals.subscribe(MANAGER, lambda: seen.append(dismissals.load(MANAGER).seen))

    dismissals.mark_seen(MANAGER, [7])
    assert seen == [{7}]


def test_no_change_means_no_notification():
    dismissals = DismissalStore(MemoryStore())
    dismissals.mark_seen(MANAGER, [1])
    calls = []
    dismissals.subscribe(MANAGER, lambda: calls.append(1))

    dismissals.mark_seen(MANAGER, [1])
    assert calls == []


def test_deletions_from_two_processes_on_one_file_are_both_kept(tmp_path):
    path = str(tmp_path / "dismissals.json")
    first = DismissalStore(JsonFileStore(path))
    second = DismissalStore(JsonFileStore(path))

    first.mark_deleted(MANAGER, 1)
    second.mark_deleted(MANAGER, 2)
    first.mark_deleted(MANAGER, 3)

    assert DismissalStore(JsonFileStore(path)).load(MANAGER).deleted == {1, 2, 3}


def test_seen_from_two_processes_on_one_file_are_both_kept(tmp_path):
    path = str(tmp_path / "dismissals.json")
    first = DismissalStore(JsonFileStore(path))
    second = DismissalStore(JsonFileStore(path))

    first.mark_seen(MANAGER, [1, 2])
    second.mark_seen(MANAGER, [3])

    assert DismissalStore(JsonFileStore(path)).load(MANAGER).seen == {1, 2, 3}
    assert first.load(MANAGER).seen == {1, 2}
    first.store.check_for_changes()
    assert first.load(MANAGER).seen == {1, 2, 3}
