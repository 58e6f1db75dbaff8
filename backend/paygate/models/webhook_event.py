"""
Webhook Event Model — Every gateway callback, with the outcome of reconciling it.
Unmatched events stay here for manual follow-up.
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, JSON

from paygate.database import Base


class WebhookEvent(Base):
    __tablename__ = "webhook_events"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)

    event_type = Column(String(64), nullable=True)
    tracker = Column(String(128), nullable=True, index=True)
    status = Column(String(64), nullable=True)

    outcome = Column(String(16), nullable=False, index=True)
    # Outcomes: applied | unmatched | no_tracker

    payload_hash = Column(String(64))       # SHA-256 of the canonical payload
    payload = Column(JSON, default=dict)

    received_at = Column(DateTime, default=datetime.utcnow)
