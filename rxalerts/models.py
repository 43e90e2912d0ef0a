"""
Domain dataclasses used across the application.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from rxalerts.config import DEFAULT_UNIT_PRICE

NOT_AVAILABLE = "N/A"


@dataclass(frozen=True)
class Identity:
    """Whose dismissal state is being read or written: the (role, user id) pair."""
    role: str                  # "MANAGER" or "EMPLOYEE"
    user_id: Any

    def __post_init__(self):
        object.__setattr__(self, "role", str(self.role).strip().upper())

    @classmethod
    def from_user(cls, user: Optional[Dict[str, Any]]) -> Optional["Identity"]:
        """Build an Identity from a session user ``{role, id, username}``.

        Returns None while the user is not loaded (missing user, role or id).
        """
        if not user:
            return None
        role = user.get("role")
        user_id = user.get("id")
        if role in (None, "") or user_id in (None, ""):
            return None
        return cls(role=role, user_id=user_id)


@dataclass
class NamedRef:
    """Optional nested record (category, supplier, dosage form)."""
    name: Optional[str] = None

    @classmethod
    def from_value(cls, value: Any) -> Optional["NamedRef"]:
        if not isinstance(value, dict):
            return None
        name = value.get("name") or value.get("supplier_name")
        return cls(name=str(name)) if name else cls()


def _ref_name(ref: Optional[NamedRef], default: str = NOT_AVAILABLE) -> str:
    if ref is not None and ref.name:
        return ref.name
    return default


@dataclass
class Medicine:
    """A medicine record as returned by the backend snapshot.

    ``quantity`` and ``expire_date`` keep the raw payload values; the
    classifier decides whether they are usable.
    """
    id: Any
    medicine_name: Optional[str] = None
    quantity: Any = None
    expire_date: Any = None
    batch_number: Optional[str] = None
    unit_price: Optional[float] = None
    total_price: Optional[float] = None
    category: Optional[NamedRef] = None
    supplier: Optional[NamedRef] = None
    dosage_form: Optional[NamedRef] = None
    supplier_name: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Medicine":
        return cls(
            id=payload.get("id"),
            medicine_name=payload.get("medicine_name"),
            quantity=payload.get("quantity"),
            expire_date=payload.get("expire_date"),
            batch_number=payload.get("batch_number"),
            unit_price=_number_or_none(payload.get("unit_price")),
            total_price=_number_or_none(payload.get("total_price")),
            category=NamedRef.from_value(payload.get("category")),
            supplier=NamedRef.from_value(payload.get("supplier")),
            dosage_form=NamedRef.from_value(payload.get("dosage_form")),
            supplier_name=payload.get("supplier_name"),
            raw=dict(payload),
        )

    @property
    def display_name(self) -> str:
        return self.medicine_name or NOT_AVAILABLE

    @property
    def category_name(self) -> str:
        return _ref_name(self.category)

    @property
    def dosage_form_name(self) -> str:
        return _ref_name(self.dosage_form)

    @property
    def supplier_display_name(self) -> str:
        if self.supplier is not None and self.supplier.name:
            return self.supplier.name
        if self.supplier_name:
            return self.supplier_name
        return NOT_AVAILABLE

    @property
    def value(self) -> float:
        """Stock value: total_price, else unit price (default 10) times quantity."""
        if self.total_price:
            return float(self.total_price)
        unit = self.unit_price or DEFAULT_UNIT_PRICE
        qty = self.quantity if isinstance(self.quantity, (int, float)) and not isinstance(self.quantity, bool) else 0
        return float(unit) * qty

    def to_dict(self) -> Dict[str, Any]:
        """Backend payload hydrated with display fallbacks."""
        out = dict(self.raw)
        out.update({
            "id": self.id,
            "medicine_name": self.display_name,
            "quantity": self.quantity,
            "expire_date": self.expire_date,
            "batch_number": self.batch_number or NOT_AVAILABLE,
            "category_name": self.category_name,
            "dosage_form_name": self.dosage_form_name,
            "supplier_name": self.supplier_display_name,
            "total_value": round(self.value, 2),
        })
        return out


def _number_or_none(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass
class Classification:
    """Medicine ids per notification class for one (snapshot, now, horizon)."""
    expired: List[Any] = field(default_factory=list)
    low_stock: List[Any] = field(default_factory=list)
    expiring_soon: List[Any] = field(default_factory=list)

    def all_ids(self) -> Set[Any]:
        return set(self.expired) | set(self.low_stock) | set(self.expiring_soon)


@dataclass
class DismissalRecord:
    """Per-identity seen/deleted id sets. ``persistent`` is False for the
    ephemeral record handed out when no identity is loaded."""
    seen: Set[Any] = field(default_factory=set)
    deleted: Set[Any] = field(default_factory=set)
    persistent: bool = True


@dataclass
class BadgeView:
    visible_ids: Set[Any] = field(default_factory=set)
    unread_count: int = 0


@dataclass
class NotificationLists:
    """Grouped list-variant output, hydrated back to full medicine records."""
    expired: List[Medicine] = field(default_factory=list)
    low_stock: List[Medicine] = field(default_factory=list)
    expiring_soon: List[Medicine] = field(default_factory=list)

    def groups(self) -> Dict[str, List[Medicine]]:
        return {
            "expired": self.expired,
            "low_stock": self.low_stock,
            "expiring_soon": self.expiring_soon,
        }

    def without(self, medicine_id: Any) -> "NotificationLists":
        return NotificationLists(
            expired=[m for m in self.expired if m.id != medicine_id],
            low_stock=[m for m in self.low_stock if m.id != medicine_id],
            expiring_soon=[m for m in self.expiring_soon if m.id != medicine_id],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {name: [m.to_dict() for m in meds] for name, meds in self.groups().items()}


def usable_id(value: Any) -> bool:
    """True if *value* can identify a notification (present and hashable)."""
    if value is None:
        return False
    try:
        hash(value)
    except TypeError:
        return False
    return True
