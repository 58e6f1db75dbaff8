"""
Paygate — FastAPI Application Entry Point

Aggregates routers, configures middleware and error handlers, and opens the
database handle on startup (closed again on shutdown).
"""
import logging
import os
import time
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from paygate.config import get_settings
from paygate.database import open_database
from paygate.errors import PaymentError
from paygate.routes import payment_router, admin_router
from paygate.schemas.schemas import HealthResponse

settings = get_settings()
logger = logging.getLogger("paygate")


def configure_logging() -> None:
    """Console + LOG_DIR/server.log handlers on the root logger."""
    os.makedirs(settings.LOG_DIR, exist_ok=True)
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    root = logging.getLogger()
    root.setLevel(settings.LOG_LEVEL.upper())
    if not any(getattr(h, "_paygate", False) for h in root.handlers):
        console = logging.StreamHandler()
        file_handler = logging.FileHandler(os.path.join(settings.LOG_DIR, "server.log"))
        for handler in (console, file_handler):
            handler.setFormatter(formatter)
            handler._paygate = True
            root.addHandler(handler)


# ─── Application Instance ───────────────────────────────────────────
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=(
        "Safepay checkout integration: creates checkout sessions, records payment "
        "attempts, and reconciles their status from webhooks and status polls."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
)

# ─── Startup / Shutdown ──────────────────────────────────────────────
BOOT_TIME = time.time()


@app.on_event("startup")
def on_startup():
    """Open the database handle, create tables and log boot info."""
    configure_logging()

    # Tests may install their own handle before startup
    if getattr(app.state, "db", None) is None:
        app.state.db = open_database(settings.database_url, echo=settings.DEBUG)
    app.state.db.create_all()

    boot_msg = (
        f"\n{'='*60}\n"
        f"  {settings.APP_NAME} v{settings.APP_VERSION}\n"
        f"  TIME: {datetime.now().isoformat()}\n"
        f"  SAFEPAY: {'[OK] Configured' if settings.gateway_configured else '[!] Credentials missing'}"
        f" (mode: {settings.SAFE_PAY_MODE})\n"
        f"  DEBUG: {settings.DEBUG}\n"
        f"{'='*60}"
    )
    logger.info(boot_msg)


@app.on_event("shutdown")
def on_shutdown():
    db = getattr(app.state, "db", None)
    if db is not None:
        db.dispose()
        app.state.db = None
        logger.info("Database handle closed")


# ─── Middleware ──────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every API request with timing."""
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 1)

    if request.url.path.startswith("/api"):
        logger.info("%s %s -> %s (%sms)", request.method, request.url.path, response.status_code, duration)

    return response


# ─── Error Handlers ──────────────────────────────────────────────────
@app.exception_handler(PaymentError)
async def payment_error_handler(request: Request, exc: PaymentError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()]
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": errors})


# ─── API Routers ─────────────────────────────────────────────────────
app.include_router(payment_router)
app.include_router(admin_router)


@app.get("/health", response_model=HealthResponse, tags=["Health"])
def deep_health():
    """Detailed health check including dependency statuses."""
    db = getattr(app.state, "db", None)
    db_ok = db.ping() if db is not None else False

    return HealthResponse(
        status="healthy" if db_ok else "degraded",
        database="connected" if db_ok else "disconnected",
        gateway="configured" if settings.gateway_configured else "unconfigured",
        mode=settings.SAFE_PAY_MODE,
        version=settings.APP_VERSION,
        uptime_seconds=round(time.time() - BOOT_TIME, 1),
    )
