"""
Pydantic Schemas — Request & Response models for API validation.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Dict, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Serializes snake_case fields as camelCase for existing API clients."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ──────────────── Payments ────────────────

class PaymentSessionRequest(BaseModel):
    # Checked by PaymentService; bad values surface as InvalidRequestError
    amount: Any = Field(None, description="Amount in major units (e.g. 500 for PKR 500)")
    currency: Optional[str] = Field("PKR", description="Three-letter currency code")
    metadata: Optional[Any] = Field(None, description="Free-form metadata; return_url sets the redirect")


class PaymentSessionResponse(CamelModel):
    success: bool = True
    checkout_url: str
    payment_id: int
    transaction_id: str
    gateway_raw: Dict[str, Any]


class PaymentStatusResponse(BaseModel):
    status: str
    data: Any = None


class PaymentRecordOut(BaseModel):
    id: int
    amount: Decimal
    currency: str
    transaction_id: str
    status: str
    card_type: Optional[str] = None
    card_number: Optional[str] = None
    cardholder_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class WebhookAck(BaseModel):
    received: bool = True


# ──────────────── Admin ────────────────

class WebhookEventEntry(BaseModel):
    id: int
    event_type: Optional[str] = None
    tracker: Optional[str] = None
    status: Optional[str] = None
    outcome: str
    payload_hash: Optional[str] = None
    payload: Any = None
    received_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class WebhookEventList(BaseModel):
    total: int
    events: List[WebhookEventEntry]


# ──────────────── Generic ────────────────

class HealthResponse(BaseModel):
    status: str
    database: str
    gateway: str
    mode: str
    version: str
    uptime_seconds: float


class ErrorResponse(BaseModel):
    error: str
    details: Optional[Any] = None
