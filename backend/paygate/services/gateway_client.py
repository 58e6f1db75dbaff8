"""
Safepay Gateway Client — Order init and order status calls.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, NamedTuple, Optional
from urllib.parse import quote

import httpx

from paygate.config import Settings, get_settings
from paygate.errors import ConfigurationError, MissingTokenError, UpstreamError
from paygate.services.extraction import POLL_SHAPE, extract_fields, resolve_path

logger = logging.getLogger(__name__)

SANDBOX_CHECKOUT_HOST = "https://sandbox.safepay.com"
PRODUCTION_CHECKOUT_HOST = "https://safepay.com"


class GatewaySession(NamedTuple):
    token: str
    raw: Dict[str, Any]


class GatewayStatus(NamedTuple):
    state: str
    raw: Any


def to_minor_units(amount: Decimal | int | float | str) -> int:
    """Convert a major-unit amount to the gateway's integer minor units (x100, half-up)."""
    value = Decimal(str(amount)) * 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def checkout_host(mode: Optional[str]) -> str:
    if (mode or "").strip().lower() == "sandbox":
        return SANDBOX_CHECKOUT_HOST
    return PRODUCTION_CHECKOUT_HOST


def _error_details(exc: httpx.HTTPError) -> Any:
    """Gateway response body when there is one, else the error message."""
    response = getattr(exc, "response", None) if isinstance(exc, httpx.HTTPStatusError) else None
    if response is not None:
        try:
            return response.json()
        except ValueError:
            return response.text or str(exc)
    return str(exc) or exc.__class__.__name__


class SafepayClient:
    """Adapter for the Safepay order API."""

    def __init__(
        self,
        public_key: str = "",
        secret_key: str = "",
        base_url: str = "",
        mode: str = "sandbox",
        timeout: float = 15.0,
        default_redirect_url: str = "",
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.public_key = public_key
        self.secret_key = secret_key
        self.base_url = (base_url or "").rstrip("/")
        self.mode = mode or "sandbox"
        self.timeout = timeout
        self.default_redirect_url = default_redirect_url
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs) -> "SafepayClient":
        settings = settings or get_settings()
        return cls(
            public_key=settings.SAFE_PAY_PUBLIC_KEY,
            secret_key=settings.SAFE_PAY_SECRET_KEY,
            base_url=settings.SAFE_PAY_BASE_URL,
            mode=settings.SAFE_PAY_MODE,
            timeout=settings.SAFE_PAY_TIMEOUT_SECONDS,
            default_redirect_url=settings.SAFE_PAY_DEFAULT_REDIRECT_URL,
            **kwargs,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.public_key and self.secret_key and self.base_url)

    def require_configured(self) -> None:
        if not self.is_configured:
            logger.error("Safepay credentials missing")
            raise ConfigurationError()

    def checkout_url(self, token: str) -> str:
        return f"{checkout_host(self.mode)}/checkout/{token}"

    def _client(self) -> httpx.Client:
        return httpx.Client(
            timeout=self.timeout,
            auth=httpx.BasicAuth(self.public_key, self.secret_key),
            headers={"Content-Type": "application/json", "X-Environment": self.mode},
            transport=self._transport,
        )

    def _request(self, method: str, url: str, **kwargs) -> Any:
        try:
            with self._client() as client:
                response = client.request(method, url, **kwargs)
                response.raise_for_status()
                return response.json()

        except httpx.TimeoutException as e:
            logger.error("Safepay %s %s timed out after %ss", method, url, self.timeout)
            raise UpstreamError(details=f"Request timed out after {self.timeout}s") from e

        except httpx.HTTPStatusError as e:
            logger.error("Safepay API error: %s - %s", e.response.status_code, e.response.text)
            raise UpstreamError(details=_error_details(e)) from e

        except httpx.HTTPError as e:
            logger.error("Safepay %s %s failed: %s", method, url, e)
            raise UpstreamError(details=_error_details(e)) from e

        except ValueError as e:
            logger.error("Safepay returned a non-JSON body for %s %s", method, url)
            raise UpstreamError("Invalid response from Safepay", details=str(e)) from e

    def create_session(
        self,
        amount: Decimal | int | float | str,
        currency: str,
        return_url: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> GatewaySession:
        """Initialise a Safepay order and return its checkout token.

        Raises:
            ConfigurationError: credentials or base URL missing.
            UpstreamError: transport failure, timeout or non-2xx response.
            MissingTokenError: response carries no data.token.
        """
        self.require_configured()

        payload = {
            "amount": to_minor_units(amount),
            "currency": (currency or "PKR").upper(),
            "client": self.public_key,
            "environment": self.mode,
            "redirect_url": return_url or self.default_redirect_url,
            "metadata": metadata or {},
        }
        logger.info("Calling Safepay init: amount=%s currency=%s", payload["amount"], payload["currency"])

        raw = self._request("POST", f"{self.base_url}/order/v1/init", json=payload)

        token = resolve_path(raw, "data.token")
        if not token or not isinstance(token, str):
            logger.warning("No token in Safepay response: %s", raw)
            raise MissingTokenError(details=raw)

        return GatewaySession(token=token, raw=raw)

    def fetch_status(self, transaction_id: str) -> GatewayStatus:
        """Fetch the current order state for a transaction."""
        self.require_configured()
        raw = self._request("GET", f"{self.base_url}/order/v1/{quote(transaction_id, safe='')}")
        return GatewayStatus(state=extract_fields(raw, POLL_SHAPE).status, raw=raw)


def get_gateway() -> SafepayClient:
    """FastAPI dependency: a client built from current settings."""
    return SafepayClient.from_settings()
