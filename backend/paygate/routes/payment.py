"""
Payment Routes — Checkout sessions, gateway webhooks, status polling.
Paths are kept stable for existing frontend and gateway integrations.
"""
import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from paygate.database import get_db
from paygate.errors import PaymentError
from paygate.schemas.schemas import (
    PaymentSessionRequest, PaymentSessionResponse, PaymentStatusResponse,
    PaymentRecordOut, WebhookAck, ErrorResponse,
)
from paygate.services.gateway_client import SafepayClient, get_gateway
from paygate.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["Payments"])

GATEWAY_ERRORS = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}


@router.post("/session", response_model=PaymentSessionResponse, responses=GATEWAY_ERRORS)
def create_payment_session(
    payload: PaymentSessionRequest,
    db: Session = Depends(get_db),
    gateway: SafepayClient = Depends(get_gateway),
):
    """Create a Safepay checkout session and record a pending payment."""
    try:
        result = PaymentService.create_session(
            db, gateway,
            amount=payload.amount,
            currency=payload.currency,
            metadata=payload.metadata,
        )
    except PaymentError as e:
        logger.error("Payment session creation failed: %s %s", e.message, e.details or "")
        raise
    except Exception as e:
        logger.exception("Payment session creation failed")
        raise PaymentError("Payment session creation failed", details=str(e)) from e

    return PaymentSessionResponse(**result)


@router.post("/webhook", response_model=WebhookAck, responses={500: {"model": ErrorResponse}})
async def safepay_webhook(request: Request, db: Session = Depends(get_db)):
    """Safepay calls this when payment events occur.

    Acknowledged even when nothing matched, so the gateway does not retry;
    only a failure inside the handler answers 500.
    """
    try:
        body = await request.body()
        payload: Any = json.loads(body) if body.strip() else {}
        logger.info("Safepay webhook received: %s", payload)
        outcome = await run_in_threadpool(PaymentService.handle_webhook, db, payload)
        logger.debug("Webhook outcome: %s", outcome)
    except Exception:
        logger.exception("Webhook processing failed")
        return JSONResponse(status_code=500, content={"error": "Webhook processing failed"})

    return WebhookAck(received=True)


@router.get("/status/{transaction_id}", response_model=PaymentStatusResponse, responses=GATEWAY_ERRORS)
def get_payment_status(
    transaction_id: str,
    db: Session = Depends(get_db),
    gateway: SafepayClient = Depends(get_gateway),
):
    """Query Safepay for the transaction's state and store it."""
    try:
        result = PaymentService.poll_status(db, gateway, transaction_id)
    except PaymentError as e:
        logger.error("Status check error: %s %s", e.message, e.details or "")
        raise
    except Exception as e:
        logger.exception("Status check error")
        raise PaymentError(str(e)) from e

    return PaymentStatusResponse(**result)


@router.get("", response_model=list[PaymentRecordOut])
def list_payments(db: Session = Depends(get_db)):
    """The 100 most recent payments, newest first."""
    return PaymentService.list_recent(db)
