from paygate.routes.payment import router as payment_router
from paygate.routes.admin import router as admin_router

__all__ = ["payment_router", "admin_router"]
