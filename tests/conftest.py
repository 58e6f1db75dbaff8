import json
import os
import tempfile
from typing import Callable, Dict, Generator, List

# Settings are cached on first use: point them at throwaway locations first.
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="paygate-logs-"))
os.environ["DATABASE_URL"] = "sqlite://"
for _key in ("SAFE_PAY_PUBLIC_KEY", "SAFE_PAY_SECRET_KEY", "SAFE_PAY_BASE_URL"):
    os.environ.pop(_key, None)

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from paygate.database import Database
from paygate.main import app as fastapi_app
from paygate.services.gateway_client import SafepayClient, get_gateway

BASE_URL = "https://api.sandbox.test"


# Mark tests by folder
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "/tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "/tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


@pytest.fixture()
def database() -> Generator[Database, None, None]:
    db = Database("sqlite://", poolclass=StaticPool)
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture()
def db_session(database):
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


class GatewayRecorder:
    """Fake Safepay API behind httpx.MockTransport; records every request."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.init_response: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(200, json={"data": {"token": "tok_abc"}})
        )
        self.status_responses: Dict[str, dict] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "POST" and request.url.path == "/order/v1/init":
            return self.init_response(request)
        if request.method == "GET" and request.url.path.startswith("/order/v1/"):
            tracker = request.url.path.rsplit("/", 1)[-1]
            body = self.status_responses.get(tracker, {"data": {"token": tracker, "state": "TRACKER_STARTED"}})
            return httpx.Response(200, json=body)
        return httpx.Response(404, json={"status": {"message": "not found"}})

    def json_bodies(self) -> List[dict]:
        return [json.loads(r.content) for r in self.requests if r.content]


@pytest.fixture()
def gateway_api() -> GatewayRecorder:
    return GatewayRecorder()


@pytest.fixture()
def gateway(gateway_api) -> SafepayClient:
    return SafepayClient(
        public_key="pk_test",
        secret_key="sk_test",
        base_url=BASE_URL + "/",
        mode="sandbox",
        timeout=15.0,
        default_redirect_url="http://localhost:3000/payment-success",
        transport=httpx.MockTransport(gateway_api.handler),
    )


@pytest.fixture()
def app(database, gateway):
    fastapi_app.state.db = database
    fastapi_app.dependency_overrides[get_gateway] = lambda: gateway
    try:
        yield fastapi_app
    finally:
        fastapi_app.dependency_overrides.clear()
        fastapi_app.state.db = None


@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c
