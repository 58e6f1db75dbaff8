"""
Field Extraction — Normalizes gateway payloads into one set of payment fields.

Webhook pushes and status-poll responses put the same facts at different
paths. Each source is described by a PayloadShape: where its body lives and,
per field, the ordered candidate paths to try. The first present value wins.
Supporting a new payload layout means adding paths to a table, not code.

Path syntax:
    "card.brand"      dotted keys, resolved against the shape's body
    "^event"          leading caret resolves against the whole payload
"""
from dataclasses import dataclass, field
from typing import Any, Dict, NamedTuple, Optional, Tuple

FIELDS = ("tracker", "card_type", "last4", "cardholder_name", "status")
UNKNOWN_STATUS = "unknown"


class ExtractedFields(NamedTuple):
    tracker: Optional[str]
    card_type: Optional[str]
    card_number: Optional[str]
    cardholder_name: Optional[str]
    status: str


@dataclass(frozen=True)
class PayloadShape:
    """Extraction rules for one payload source."""

    name: str
    body: Tuple[str, ...]
    rules: Dict[str, Tuple[str, ...]] = field(default_factory=dict)


WEBHOOK_SHAPE = PayloadShape(
    name="webhook",
    body=("data",),
    rules={
        "tracker": ("tracker", "token", "id"),
        "card_type": ("transaction.card.brand", "card.brand", "payment_method.brand"),
        "last4": ("transaction.card.last4", "card.last4", "payment_method.last4"),
        "cardholder_name": ("transaction.card.holder_name", "card.holder_name", "cardholder_name"),
        "status": ("state", "status", "result", "^event"),
    },
)

POLL_SHAPE = PayloadShape(
    name="poll",
    body=(),
    rules={
        "tracker": ("data.tracker", "data.token", "data.id"),
        "card_type": ("data.transaction.card.brand", "data.card.brand", "data.payment_method.brand"),
        "last4": ("data.transaction.card.last4", "data.card.last4", "data.payment_method.last4"),
        "cardholder_name": ("data.transaction.card.holder_name", "data.card.holder_name"),
        "status": ("data.state", "status.message"),
    },
)


def resolve_path(node: Any, path: str) -> Any:
    """Walk a dotted path through nested dicts; None when any hop is missing."""
    for key in path.split("."):
        if not isinstance(node, dict):
            return None
        node = node.get(key)
        if node is None:
            return None
    return node


def _scalar(value: Any) -> Optional[str]:
    # Objects, lists and empty strings carry no usable field value.
    if value is None or isinstance(value, (dict, list, tuple)):
        return None
    text = str(value)
    return text if text else None


def _body(payload: Any, shape: PayloadShape) -> Any:
    for path in shape.body:
        candidate = resolve_path(payload, path)
        if isinstance(candidate, dict) or candidate:
            return candidate
    return payload


def first_present(payload: Any, body: Any, paths: Tuple[str, ...]) -> Optional[str]:
    for path in paths:
        if path.startswith("^"):
            value = _scalar(resolve_path(payload, path[1:]))
        else:
            value = _scalar(resolve_path(body, path))
        if value is not None:
            return value
    return None


def mask_card_number(last4: Optional[str]) -> Optional[str]:
    """Mask a card number down to its last four digits."""
    return f"****{last4}" if last4 else None


def extract_fields(payload: Any, shape: PayloadShape = WEBHOOK_SHAPE) -> ExtractedFields:
    """Extract normalized payment fields from a gateway payload.

    Pure and total: never raises, whatever the payload's shape or type.
    """
    body = _body(payload, shape)
    found = {name: first_present(payload, body, shape.rules.get(name, ())) for name in FIELDS}

    return ExtractedFields(
        tracker=found["tracker"],
        card_type=found["card_type"],
        card_number=mask_card_number(found["last4"]),
        cardholder_name=found["cardholder_name"],
        status=found["status"] or UNKNOWN_STATUS,
    )
