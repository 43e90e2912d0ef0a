"""
Unit tests for config helpers and domain models.
"""

import pytest

from rxalerts.config import get_env
from rxalerts.models import Identity, Medicine, NotificationLists


# ── Tests: get_env ───────────────────────────────────────────────────

def test_get_env_ok(monkeypatch):
    monkeypatch.setenv("X", "123")
    assert get_env("X") == "123"


def test_get_env_missing_exits(monkeypatch, capsys):
    monkeypatch.delenv("MISSING_VAR", raising=False)
    with pytest.raises(SystemExit) as e:
        get_env("MISSING_VAR")
    assert e.value.code == 1
    assert "MISSING_VAR" in capsys.readouterr().err


# ── Tests: Identity ──────────────────────────────────────────────────

def test_identity_from_user():
    assert Identity.from_user({"id": 4, "role": "employee", "username": "j"}) == Identity("EMPLOYEE", 4)


@pytest.mark.parametrize("user", [None, {}, {"id": 4}, {"role": "MANAGER"}, {"id": "", "role": "MANAGER"}])
def test_identity_from_incomplete_user_is_none(user):
    assert Identity.from_user(user) is None


# ── Tests: Medicine ──────────────────────────────────────────────────

def test_medicine_display_fallbacks():
    m = Medicine.from_dict({"id": 1})
    assert m.display_name == "N/A"
    assert m.category_name == "N/A"
    assert m.dosage_form_name == "N/A"
    assert m.supplier_display_name == "N/A"


def test_supplier_name_prefers_nested_record():
    nested = Medicine.from_dict({"id": 1, "supplier": {"supplier_name": "Acme"}, "supplier_name": "Flat"})
    flat = Medicine.from_dict({"id": 2, "supplier_name": "Flat"})
    assert nested.supplier_display_name == "Acme"
    assert flat.supplier_display_name == "Flat"


def test_medicine_value():
    assert Medicine.from_dict({"id": 1, "total_price": "99.5", "quantity": 3}).value == 99.5
    assert Medicine.from_dict({"id": 1, "unit_price": 4, "quantity": 3}).value == 12.0
    assert Medicine.from_dict({"id": 1, "quantity": 3}).value == 30.0
    assert Medicine.from_dict({"id": 1, "quantity": "n/a"}).value == 0.0


def test_to_dict_keeps_backend_fields():
    out = Medicine.from_dict({"id": 1, "extra": "kept", "category": {"name": "Vitamins"}}).to_dict()
    assert out["extra"] == "kept"
    assert out["category_name"] == "Vitamins"
    assert out["batch_number"] == "N/A"


def test_notification_lists_without():
    a, b = Medicine.from_dict({"id": 1}), Medicine.from_dict({"id": 2})
    lists = NotificationLists(expired=[a], low_stock=[a, b])
    trimmed = lists.without(1)
    assert trimmed.expired == []
    assert trimmed.low_stock == [b]
    assert lists.low_stock == [a, b]
