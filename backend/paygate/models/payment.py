"""
Payment Record Model — One row per checkout attempt with the gateway.
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, Numeric

from paygate.database import Base


class PaymentRecord(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)

    amount = Column(Numeric(12, 2), nullable=False)   # Major units, as given by the caller
    currency = Column(String(3), nullable=False, default="PKR")

    # Gateway token — join key for webhook and poll reconciliation
    transaction_id = Column(String(128), unique=True, nullable=False, index=True)

    # Free-form, last state reported by any source
    status = Column(String(64), nullable=False, default="pending")

    # Card details, filled in whenever a source supplies them
    card_type = Column(String(32), nullable=True)
    card_number = Column(String(32), nullable=True)   # Masked: ****1234
    cardholder_name = Column(String(128), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
