"""
Admin Routes — Webhook audit trail for manual reconciliation.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from paygate.database import get_db
from paygate.errors import InvalidRequestError
from paygate.schemas.schemas import ErrorResponse, WebhookEventList
from paygate.services.event_log_service import WebhookEventService, OUTCOMES

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get("/webhook-events", response_model=WebhookEventList, responses={400: {"model": ErrorResponse}})
def list_webhook_events(
    outcome: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """List received webhooks, newest first. Filter with outcome=unmatched to find orphans."""
    if outcome and outcome not in OUTCOMES:
        raise InvalidRequestError("Unknown outcome", details={"allowed": list(OUTCOMES)})

    total, events = WebhookEventService.list_events(db, outcome=outcome, limit=limit, offset=offset)
    return {"total": total, "events": events}
