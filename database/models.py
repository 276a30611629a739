"""Data models for customer records and message templates.

The Markdown table carries no identifier column, so every ``CustomerRecord``
receives a generated ``record_id`` when it is read or received. The key lives
only in memory and in the JSON API; the table keeps its human-editable layout.

JSON uses the camelCase field names of the dashboard::

    record = CustomerRecord.from_dict({"customerName": "山田", "isFavorite": 1})
    record.to_dict()["isFavorite"]  # True
"""
import uuid
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Optional

# camelCase (JSON / dashboard) -> attribute name
FIELD_ALIASES: Dict[str, str] = {
    "customerName": "customer_name",
    "nextAction": "next_action",
    "contactUrl": "contact_url",
    "hasHeart": "has_heart",
    "hasTrouble": "has_trouble",
    "isFavorite": "is_favorite",
    "lastContactDate": "last_contact_date",
    "scheduledDate": "scheduled_date",
    "transactionCount": "transaction_count",
    "totalAmount": "total_amount",
    "gender": "gender",
    "age": "age",
    "notes": "notes",
}

BOOLEAN_FIELDS = ("has_heart", "has_trouble", "is_favorite")
TRUE_STRINGS = {"true", "1", "yes", "✓"}


def _new_record_id() -> str:
    return uuid.uuid4().hex


def to_bool(value: Any) -> bool:
    """Coerce a JSON or table value to a real boolean."""
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    return bool(value)


def to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


@dataclass
class CustomerRecord:
    """One customer row.

    Attributes:
        customer_name: display identity, not guaranteed unique
        next_action: action label, empty or "未設定" when unset
        contact_url: raw URL or ``[label](url)``
        has_heart / has_trouble / is_favorite: manual tags
        last_contact_date: date text, the anchor for scheduling
        scheduled_date: derived from next_action + last_contact_date
        transaction_count: integer text, blank means 0
        total_amount: free-text amount ("3万円", "5-10万")
        gender / age: categorical text
        notes: memo
        record_id: in-memory stable key, ignored by equality
    """
    customer_name: str = ""
    next_action: str = ""
    contact_url: str = ""
    has_heart: bool = False
    has_trouble: bool = False
    is_favorite: bool = False
    last_contact_date: str = ""
    scheduled_date: str = ""
    transaction_count: str = ""
    total_amount: str = ""
    gender: str = ""
    age: str = ""
    notes: str = ""
    record_id: str = field(default_factory=_new_record_id, compare=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CustomerRecord":
        """Build a record from a JSON object.

        Boolean fields become real booleans, missing or null text fields become
        empty strings and non-string values are stringified. A supplied ``id``
        is kept so edits from the dashboard stay attached to their row.
        """
        values: Dict[str, Any] = {}
        for alias, name in FIELD_ALIASES.items():
            raw = data.get(alias, data.get(name))
            if name in BOOLEAN_FIELDS:
                values[name] = to_bool(raw)
            else:
                values[name] = to_text(raw)
        record_id = data.get("id")
        if record_id:
            values["record_id"] = str(record_id)
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        data = {alias: getattr(self, name) for alias, name in FIELD_ALIASES.items()}
        data["id"] = self.record_id
        return data

    def copy(self) -> "CustomerRecord":
        return replace(self)

    def text_values(self) -> List[str]:
        """All string-valued data fields (the record key excluded)."""
        return [
            getattr(self, f.name)
            for f in fields(self)
            if f.name != "record_id" and f.name not in BOOLEAN_FIELDS
        ]


@dataclass
class TemplateDefinition:
    """Message template keyed by ``id``.

    ``condition`` is an open mapping; only its ``existing`` key is interpreted
    (True matches returning customers, False new ones).
    """
    id: str
    template: str
    title: str = ""
    actions: List[str] = field(default_factory=list)
    variant: Optional[str] = None
    condition: Optional[Dict[str, Any]] = None
    placeholders: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TemplateDefinition":
        actions = data.get("actions") or []
        condition = data.get("condition")
        return cls(
            id=to_text(data.get("id")),
            template=to_text(data.get("template")),
            title=to_text(data.get("title")),
            actions=[to_text(a) for a in actions] if isinstance(actions, list) else [],
            variant=data.get("variant") or None,
            condition=condition if isinstance(condition, dict) else None,
            placeholders=list(data.get("placeholders") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "actions": self.actions,
            "title": self.title,
            "template": self.template,
        }
        if self.variant:
            data["variant"] = self.variant
        if self.condition is not None:
            data["condition"] = self.condition
        if self.placeholders:
            data["placeholders"] = self.placeholders
        return data
