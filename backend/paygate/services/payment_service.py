"""
Payment Service — Checkout session creation and status reconciliation.

Three sources report on the same payment: the session creation response,
webhook pushes and status polls. Each reconciliation write targets the row
by transaction_id in a single UPDATE, so replaying a payload is harmless.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from paygate.errors import DatabaseError, InvalidRequestError
from paygate.models.payment import PaymentRecord
from paygate.services.event_log_service import (
    WebhookEventService,
    OUTCOME_APPLIED,
    OUTCOME_UNMATCHED,
    OUTCOME_NO_TRACKER,
)
from paygate.services.extraction import (
    ExtractedFields,
    POLL_SHAPE,
    WEBHOOK_SHAPE,
    extract_fields,
)
from paygate.services.gateway_client import SafepayClient
from paygate.utils.validators import validate_amount, validate_currency

logger = logging.getLogger(__name__)

PENDING_STATUS = "pending"
RECENT_LIMIT = 100
_STATUS_WIDTH = PaymentRecord.__table__.c.status.type.length
_CARD_COLUMNS = ("card_type", "card_number", "cardholder_name")


class PaymentService:
    """Orchestrates the gateway client and the payments table."""

    @staticmethod
    def create_session(
        db: Session,
        gateway: SafepayClient,
        amount: Any,
        currency: Optional[str] = "PKR",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Open a checkout session with the gateway and record it as pending.

        Input and configuration are checked before any network call.

        Returns:
            dict with checkout_url, payment_id, transaction_id, gateway_raw.
        """
        value, reason = validate_amount(amount)
        if value is None:
            raise InvalidRequestError(reason)

        currency = (currency or "PKR").strip()
        if not validate_currency(currency):
            raise InvalidRequestError("Invalid currency", details={"currency": currency})
        currency = currency.upper()

        if metadata is not None and not isinstance(metadata, dict):
            raise InvalidRequestError("Invalid metadata")
        metadata = metadata or {}

        gateway.require_configured()

        session = gateway.create_session(
            value,
            currency,
            return_url=metadata.get("return_url"),
            metadata=metadata,
        )

        record = PaymentRecord(
            amount=value,
            currency=currency,
            transaction_id=session.token,
            status=PENDING_STATUS,
        )
        try:
            db.add(record)
            db.commit()
            db.refresh(record)
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Failed to insert payment for transaction %s", session.token)
            raise DatabaseError(details=str(e)) from e

        logger.info("Payment %s created for transaction %s (%s %s)", record.id, session.token, value, currency)

        return {
            "checkout_url": gateway.checkout_url(session.token),
            "payment_id": record.id,
            "transaction_id": session.token,
            "gateway_raw": session.raw,
        }

    @staticmethod
    def apply_update(db: Session, transaction_id: str, fields: ExtractedFields) -> int:
        """Write extracted fields onto the row for transaction_id.

        Card fields the source did not supply keep their stored value.

        Returns:
            Number of rows updated (0 when no payment matches).
        """
        values: Dict[str, Any] = {
            "status": fields.status[:_STATUS_WIDTH],
            "updated_at": datetime.utcnow(),
        }
        for column in _CARD_COLUMNS:
            value = getattr(fields, column)
            if value is not None:
                values[column] = value[:PaymentRecord.__table__.c[column].type.length]

        try:
            updated = (
                db.query(PaymentRecord)
                .filter(PaymentRecord.transaction_id == transaction_id)
                .update(values, synchronize_session=False)
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Failed to update payment for transaction %s", transaction_id)
            raise DatabaseError(details=str(e)) from e

        return updated

    @staticmethod
    def handle_webhook(db: Session, payload: Any) -> str:
        """Reconcile one webhook delivery. Returns the recorded outcome."""
        fields = extract_fields(payload, WEBHOOK_SHAPE)
        logger.info(
            "Extracted webhook fields - tracker: %s, status: %s, card type: %s, card: %s",
            fields.tracker, fields.status, fields.card_type, fields.card_number,
        )

        if not fields.tracker:
            logger.warning("Webhook missing tracker/token; nothing to reconcile")
            WebhookEventService.record(db, payload, fields, OUTCOME_NO_TRACKER)
            return OUTCOME_NO_TRACKER

        updated = PaymentService.apply_update(db, fields.tracker, fields)
        outcome = OUTCOME_APPLIED if updated else OUTCOME_UNMATCHED
        if updated:
            logger.info("Webhook processed for tracker %s - status: %s", fields.tracker, fields.status)
        else:
            logger.warning("Webhook tracker %s matched no payment", fields.tracker)

        WebhookEventService.record(db, payload, fields, outcome)
        return outcome

    @staticmethod
    def poll_status(db: Session, gateway: SafepayClient, transaction_id: Optional[str]) -> Dict[str, Any]:
        """Fetch the gateway's view of a transaction and store it."""
        transaction_id = (transaction_id or "").strip()
        if not transaction_id:
            raise InvalidRequestError("Missing transactionId")

        result = gateway.fetch_status(transaction_id)
        fields = extract_fields(result.raw, POLL_SHAPE)

        updated = PaymentService.apply_update(db, transaction_id, fields)
        if not updated:
            logger.info("Status poll for %s matched no payment", transaction_id)

        return {"status": result.state, "data": result.raw}

    @staticmethod
    def list_recent(db: Session, limit: int = RECENT_LIMIT) -> list[PaymentRecord]:
        """Most recent payments first."""
        try:
            return (
                db.query(PaymentRecord)
                .order_by(PaymentRecord.created_at.desc(), PaymentRecord.id.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            logger.exception("Error fetching payments")
            raise DatabaseError("Failed to fetch payments", details=str(e)) from e
