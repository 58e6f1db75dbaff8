from datetime import datetime, timedelta
from decimal import Decimal

import httpx
import pytest

from paygate.errors import ConfigurationError, InvalidRequestError, UpstreamError
from paygate.models.payment import PaymentRecord
from paygate.models.webhook_event import WebhookEvent
from paygate.services.event_log_service import WebhookEventService
from paygate.services.extraction import ExtractedFields
from paygate.services.gateway_client import SafepayClient
from paygate.services.payment_service import PaymentService


def _payment(db, transaction_id="tok_1", **kwargs):
    record = PaymentRecord(
        amount=Decimal("500.00"),
        currency="PKR",
        transaction_id=transaction_id,
        status="pending",
        **kwargs,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def _row(db, transaction_id):
    db.expire_all()
    return db.query(PaymentRecord).filter(PaymentRecord.transaction_id == transaction_id).one()


# ──────────────── Session creation ────────────────

def test_create_session_inserts_pending_row(db_session, gateway, gateway_api):
    result = PaymentService.create_session(db_session, gateway, amount=500, currency="usd")

    assert result["transaction_id"] == "tok_abc"
    assert result["checkout_url"].endswith("/checkout/tok_abc")
    assert result["gateway_raw"] == {"data": {"token": "tok_abc"}}
    assert gateway_api.json_bodies()[0]["amount"] == 50000
    assert gateway_api.json_bodies()[0]["currency"] == "USD"

    row = _row(db_session, "tok_abc")
    assert row.id == result["payment_id"]
    assert row.status == "pending"
    assert row.currency == "USD"
    assert row.amount == Decimal("500")
    assert row.card_type is None


def test_create_session_passes_metadata_return_url(db_session, gateway, gateway_api):
    metadata = {"return_url": "https://shop.test/ok", "order_id": "42"}
    PaymentService.create_session(db_session, gateway, amount="99.50", metadata=metadata)
    body = gateway_api.json_bodies()[0]
    assert body["redirect_url"] == "https://shop.test/ok"
    assert body["metadata"] == metadata
    assert body["amount"] == 9950
    assert body["currency"] == "PKR"


@pytest.mark.parametrize("amount", [None, 0, -10, "ten", True, "12.345", 0.004])
def test_create_session_rejects_amount_before_network(amount, db_session, gateway, gateway_api):
    with pytest.raises(InvalidRequestError):
        PaymentService.create_session(db_session, gateway, amount=amount)
    assert gateway_api.requests == []
    assert db_session.query(PaymentRecord).count() == 0


def test_create_session_rejects_bad_currency(db_session, gateway, gateway_api):
    with pytest.raises(InvalidRequestError):
        PaymentService.create_session(db_session, gateway, amount=10, currency="RUPEES")
    assert gateway_api.requests == []


def test_create_session_rejects_non_object_metadata(db_session, gateway, gateway_api):
    with pytest.raises(InvalidRequestError):
        PaymentService.create_session(db_session, gateway, amount=10, metadata=["x"])
    assert gateway_api.requests == []


def test_create_session_unconfigured(db_session, gateway_api):
    client = SafepayClient(transport=httpx.MockTransport(gateway_api.handler))
    with pytest.raises(ConfigurationError):
        PaymentService.create_session(db_session, client, amount=10)
    assert gateway_api.requests == []


def test_create_session_upstream_failure_writes_nothing(db_session, gateway, gateway_api):
    gateway_api.init_response = lambda request: httpx.Response(503, json={"error": "down"})
    with pytest.raises(UpstreamError):
        PaymentService.create_session(db_session, gateway, amount=10)
    assert db_session.query(PaymentRecord).count() == 0


# ──────────────── Reconciliation ────────────────

def test_apply_update_sets_fields(db_session):
    _payment(db_session)
    fields = ExtractedFields("tok_1", "visa", "****1234", "A. Khan", "paid")

    assert PaymentService.apply_update(db_session, "tok_1", fields) == 1

    row = _row(db_session, "tok_1")
    assert row.status == "paid"
    assert row.card_type == "visa"
    assert row.card_number == "****1234"
    assert row.cardholder_name == "A. Khan"


def test_apply_update_keeps_card_fields_source_did_not_supply(db_session):
    _payment(db_session, card_type="visa", card_number="****1234", cardholder_name="A. Khan")
    fields = ExtractedFields("tok_1", None, None, None, "refunded")

    PaymentService.apply_update(db_session, "tok_1", fields)

    row = _row(db_session, "tok_1")
    assert row.status == "refunded"
    assert row.card_type == "visa"
    assert row.card_number == "****1234"
    assert row.cardholder_name == "A. Khan"


def test_apply_update_refreshes_updated_at(db_session):
    record = _payment(db_session)
    stale = datetime.utcnow() - timedelta(days=1)
    record.updated_at = stale
    db_session.commit()

    PaymentService.apply_update(db_session, "tok_1", ExtractedFields("tok_1", None, None, None, "paid"))
    assert _row(db_session, "tok_1").updated_at > stale


def test_apply_update_unknown_transaction_is_noop(db_session):
    _payment(db_session)
    fields = ExtractedFields("tok_x", "visa", None, None, "paid")
    assert PaymentService.apply_update(db_session, "tok_x", fields) == 0
    assert _row(db_session, "tok_1").status == "pending"


def test_apply_update_clips_long_status(db_session):
    _payment(db_session)
    PaymentService.apply_update(db_session, "tok_1", ExtractedFields("tok_1", None, None, None, "s" * 200))
    assert _row(db_session, "tok_1").status == "s" * 64


def test_apply_update_clips_long_card_fields(db_session):
    _payment(db_session)
    fields = ExtractedFields("tok_1", "t" * 100, "****" + "9" * 100, "n" * 300, "paid")

    assert PaymentService.apply_update(db_session, "tok_1", fields) == 1

    row = _row(db_session, "tok_1")
    assert row.card_type == "t" * 32
    assert row.card_number == ("****" + "9" * 100)[:32]
    assert row.cardholder_name == "n" * 128


def test_handle_webhook_is_idempotent(db_session):
    _payment(db_session)
    payload = {"event": "paid", "data": {"tracker": "tok_1", "card": {"brand": "visa", "last4": "1234"}}}

    def snapshot():
        row = _row(db_session, "tok_1")
        return (row.id, row.amount, row.currency, row.transaction_id, row.status,
                row.card_type, row.card_number, row.cardholder_name, row.created_at)

    assert PaymentService.handle_webhook(db_session, payload) == "applied"
    first = snapshot()
    assert PaymentService.handle_webhook(db_session, payload) == "applied"
    assert snapshot() == first
    assert first[4:7] == ("paid", "visa", "****1234")


def test_handle_webhook_without_tracker_writes_no_payment(db_session):
    record = _payment(db_session)
    before = record.updated_at

    outcome = PaymentService.handle_webhook(db_session, {"event": "paid", "data": {"card": {"brand": "visa"}}})

    assert outcome == "no_tracker"
    row = _row(db_session, "tok_1")
    assert row.status == "pending"
    assert row.updated_at == before
    event = db_session.query(WebhookEvent).one()
    assert event.outcome == "no_tracker"
    assert event.tracker is None
    assert event.event_type == "paid"


def test_handle_webhook_unmatched_is_recorded(db_session):
    outcome = PaymentService.handle_webhook(db_session, {"data": {"tracker": "tok_ghost", "state": "PAID"}})
    assert outcome == "unmatched"

    total, events = WebhookEventService.list_events(db_session, outcome="unmatched")
    assert total == 1
    assert events[0].tracker == "tok_ghost"
    assert events[0].status == "PAID"
    assert len(events[0].payload_hash) == 64


def test_poll_status_updates_row(db_session, gateway, gateway_api):
    _payment(db_session, transaction_id="tok_7")
    gateway_api.status_responses["tok_7"] = {
        "data": {"token": "tok_7", "state": "TRACKER_ENDED", "card": {"brand": "visa", "last4": "4242"}},
    }

    result = PaymentService.poll_status(db_session, gateway, "tok_7")

    assert result == {"status": "TRACKER_ENDED", "data": gateway_api.status_responses["tok_7"]}
    row = _row(db_session, "tok_7")
    assert row.status == "TRACKER_ENDED"
    assert row.card_number == "****4242"


def test_poll_status_unknown_transaction(db_session, gateway):
    result = PaymentService.poll_status(db_session, gateway, "tok_unknown")
    assert result["status"] == "TRACKER_STARTED"
    assert db_session.query(PaymentRecord).count() == 0


@pytest.mark.parametrize("transaction_id", [None, "", "   "])
def test_poll_status_requires_transaction_id(transaction_id, db_session, gateway, gateway_api):
    with pytest.raises(InvalidRequestError):
        PaymentService.poll_status(db_session, gateway, transaction_id)
    assert gateway_api.requests == []


def test_list_recent_orders_newest_first(db_session):
    now = datetime.utcnow()
    for i in range(3):
        _payment(db_session, transaction_id=f"tok_{i}", created_at=now + timedelta(minutes=i))

    rows = PaymentService.list_recent(db_session)
    assert [r.transaction_id for r in rows] == ["tok_2", "tok_1", "tok_0"]
    assert len(PaymentService.list_recent(db_session, limit=2)) == 2
