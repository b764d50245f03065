"""
Shared fixtures: an in-memory document store, a scripted Y-Note gateway
and a FastAPI app wired to both.
"""
import copy
import itertools
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from firebase_admin import auth

from ILIOS.core.errors import ErrorKind, PaymentError
from ILIOS.core.rate_limit import limiter
from ILIOS.main import create_app
from ILIOS.payment.payment_orchestrator import PaymentOrchestrator

FIXED_NOW = datetime(2026, 1, 15, 9, 30, tzinfo=timezone.utc)


class InMemoryStore:
    """Dict-backed document store with a write log for assertions."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.writes: List[tuple] = []
        self._ids = itertools.count(1)

    def seed(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self.collections.setdefault(collection, {})[doc_id] = copy.deepcopy(data)

    def docs(self, collection: str) -> Dict[str, Dict[str, Any]]:
        return self.collections.get(collection, {})

    def get(self, collection, doc_id):
        doc = self.docs(collection).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    def set(self, collection, doc_id, data):
        self.writes.append(("set", collection, doc_id))
        self.collections.setdefault(collection, {})[doc_id] = copy.deepcopy(data)

    def update(self, collection, doc_id, data):
        if doc_id not in self.docs(collection):
            raise KeyError(f"{collection}/{doc_id} does not exist")
        self.writes.append(("update", collection, doc_id))
        self.collections[collection][doc_id].update(copy.deepcopy(data))

    def add(self, collection, data):
        doc_id = f"auto-{next(self._ids)}"
        self.writes.append(("add", collection, doc_id))
        self.collections.setdefault(collection, {})[doc_id] = copy.deepcopy(data)
        return doc_id

    def find_one(self, collection, field, value):
        for doc_id, doc in self.docs(collection).items():
            if doc.get(field) == value:
                return doc_id, copy.deepcopy(doc)
        return None

    def update_if(self, collection, doc_id, field, expected, data):
        doc = self.docs(collection).get(doc_id)
        if doc is None or doc.get(field) != expected:
            return False
        self.update(collection, doc_id, data)
        return True


class FakeGateway:
    """Stands in for YnoteGateway; responses are scripted per test."""

    def __init__(self, configured: bool = True):
        self.configured = configured
        self.payment_response: Dict[str, Any] = {"status": "PENDING", "parameters": {"MessageId": "MSG-1"}}
        self.status_response: Dict[str, Any] = {"status": "PENDING"}
        self.payment_error: Optional[PaymentError] = None
        self.payment_calls: List[dict] = []
        self.status_calls: List[str] = []

    def validate_credentials(self):
        if not self.configured:
            raise PaymentError(ErrorKind.CONFIGURATION, "Y-Note credentials (clientId/clientSecret) are not configured")

    async def request_payment(self, order_id, msisdn, amount, description):
        self.payment_calls.append(
            {"order_id": order_id, "msisdn": msisdn, "amount": amount, "description": description}
        )
        if self.payment_error:
            raise self.payment_error
        return dict(self.payment_response)

    async def get_payment_status(self, message_id):
        self.status_calls.append(message_id)
        return dict(self.status_response)


TOKENS = {
    "owner-token": {"uid": "user-1", "email": "owner@example.com"},
    "other-token": {"uid": "user-2", "email": "other@example.com"},
    "admin-token": {"uid": "admin-1", "email": "admin@example.com"},
}


def fake_verify_token(token: str) -> dict:
    if token == "expired-token":
        raise auth.ExpiredIdTokenError("Token expired", cause=None)
    if token not in TOKENS:
        raise auth.InvalidIdTokenError("Invalid token")
    return dict(TOKENS[token])


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield


@pytest.fixture
def store() -> InMemoryStore:
    s = InMemoryStore()
    s.seed("users", "admin-1", {"role": "admin"})
    s.seed("users", "user-1", {"role": "user"})
    s.seed("campaigns", "camp-1", {"userId": "user-1", "name": "Spring launch", "status": "pending_payment"})
    return s


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def orchestrator(store, gateway) -> PaymentOrchestrator:
    return PaymentOrchestrator(store, gateway, currency="XAF", clock=lambda: FIXED_NOW)


@pytest.fixture
def client(orchestrator, store) -> TestClient:
    app = create_app(orchestrator=orchestrator, store=store, verify_token=fake_verify_token)
    return TestClient(app)


def auth_header(token: str = "owner-token") -> dict:
    return {"Authorization": f"Bearer {token}"}


def seed_transaction(store: InMemoryStore, reference_id: str = "ref-1", **overrides) -> dict:
    data = {
        "referenceId": reference_id,
        "ynoteMessageId": "MSG-1",
        "campaignId": "camp-1",
        "userId": "user-1",
        "amount": 5000,
        "currency": "XAF",
        "phoneNumber": "237677123456",
        "status": "PENDING",
        "paymentMethod": "mtn",
    }
    data.update(overrides)
    store.seed("mtn_transactions", reference_id, data)
    return data
