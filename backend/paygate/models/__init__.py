from paygate.models.payment import PaymentRecord
from paygate.models.webhook_event import WebhookEvent

__all__ = ["PaymentRecord", "WebhookEvent"]
