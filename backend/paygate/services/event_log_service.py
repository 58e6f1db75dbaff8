"""
Webhook Event Log — Persists every gateway callback and how it was reconciled.
"""
import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from paygate.errors import DatabaseError
from paygate.models.webhook_event import WebhookEvent
from paygate.services.extraction import ExtractedFields
from paygate.utils.hashing import generate_hash

logger = logging.getLogger(__name__)

OUTCOME_APPLIED = "applied"
OUTCOME_UNMATCHED = "unmatched"
OUTCOME_NO_TRACKER = "no_tracker"
OUTCOMES = (OUTCOME_APPLIED, OUTCOME_UNMATCHED, OUTCOME_NO_TRACKER)


class WebhookEventService:
    """Audit trail of received webhooks, including ones no payment matched."""

    @staticmethod
    def record(
        db: Session,
        payload: Any,
        fields: ExtractedFields,
        outcome: str,
    ) -> WebhookEvent:
        """Store a received webhook.

        Args:
            db: Database session.
            payload: Raw webhook body, stored as-is.
            fields: Result of extraction over the payload.
            outcome: One of applied, unmatched, no_tracker.

        Returns:
            The created WebhookEvent entry.
        """
        event_type = payload.get("event") if isinstance(payload, dict) else None
        entry = WebhookEvent(
            event_type=str(event_type)[:64] if event_type is not None else None,
            tracker=fields.tracker[:128] if fields.tracker else None,
            status=fields.status[:64],
            outcome=outcome,
            payload_hash=generate_hash(payload),
            payload=payload,
            received_at=datetime.utcnow(),
        )
        try:
            db.add(entry)
            db.commit()
            db.refresh(entry)
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Failed to record webhook event outcome=%s", outcome)
            raise DatabaseError(details=str(e)) from e
        return entry

    @staticmethod
    def list_events(
        db: Session,
        outcome: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[int, list[WebhookEvent]]:
        """Most-recent-first events, optionally filtered by outcome."""
        query = db.query(WebhookEvent)
        if outcome:
            query = query.filter(WebhookEvent.outcome == outcome)
        total = query.count()
        events = (
            query.order_by(WebhookEvent.received_at.desc(), WebhookEvent.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return total, events
