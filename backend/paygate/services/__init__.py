from paygate.services.extraction import extract_fields, ExtractedFields, WEBHOOK_SHAPE, POLL_SHAPE
from paygate.services.gateway_client import SafepayClient, get_gateway
from paygate.services.event_log_service import WebhookEventService
from paygate.services.payment_service import PaymentService

__all__ = [
    "extract_fields", "ExtractedFields", "WEBHOOK_SHAPE", "POLL_SHAPE",
    "SafepayClient", "get_gateway", "WebhookEventService", "PaymentService",
]
