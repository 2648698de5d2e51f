import os
import re
from dataclasses import dataclass, field
from importlib import import_module
from pathlib import Path
from typing import Optional

import pytest
import requests_mock

# Mirrors the root conftest so running `pytest tests/...` from elsewhere still works.
_REQUIRED_DEFAULTS = {
    "APP_ENV": "test",
    "SECRET_KEY": "test-secret-key-not-for-production",
    "DATABASE_URL": "sqlite://",
    "BCRYPT_ROUNDS": "10",
    "STRIPE_SECRET_KEY": "sk_test_dummy",
    "STRIPE_WEBHOOK_SECRET": "whsec_test_secret",
    "DISABLE_RATE_LIMITS": "1",
}
for _k, _v in _REQUIRED_DEFAULTS.items():
    os.environ.setdefault(_k, _v)


@pytest.fixture(scope="function")
def db_engine(tmp_path: Path):
    """Provide a temporary SQLite engine with the schema created.

    Usage:
    - Inject into tests that touch the DB; the API transparently uses this engine
      via the `wisdom_api.core.database.get_session` dependency.
    - A fresh file-backed SQLite DB is created per test.

    Notes:
    - We patch `wisdom_api.core.database.engine` in-place so every code path
      that reads the module global picks up the new engine.
    """
    from sqlmodel import create_engine
    db_path = tmp_path / "test.db"
    engine_url = f"sqlite:///{db_path.as_posix()}"

    db = import_module("wisdom_api.core.database")
    old_engine = getattr(db, "engine")
    new_engine = create_engine(engine_url, echo=False, connect_args={"check_same_thread": False})
    setattr(db, "engine", new_engine)

    db.create_db_and_tables()

    try:
        yield new_engine
    finally:
        setattr(db, "engine", old_engine)
        new_engine.dispose()


@pytest.fixture(scope="function")
def app(db_engine):
    """FastAPI app instance wired to the temporary DB engine.

    Example:
        def test_health_ok(client):
            r = client.get("/health")
            assert r.status_code == 200
    """
    main = import_module("wisdom_api.main")
    return main.create_app()


@pytest.fixture(scope="function")
def session(db_engine):
    """Database session bound to the temporary test engine."""
    from sqlmodel import Session as SQLSession
    with SQLSession(db_engine, expire_on_commit=False) as s:
        yield s


@pytest.fixture(scope="function")
def client(app):
    """Synchronous FastAPI TestClient bound to the temp DB.

    Example:
        def test_me(client):
            resp = client.get("/auth/me")
            assert resp.status_code == 401
    """
    from fastapi.testclient import TestClient
    with TestClient(app) as tc:
        yield tc


# --- Mail capture --------------------------------------------------------------
_TOKEN_RE = re.compile(r"token=([0-9a-f]{64})")


@dataclass
class Outbox:
    messages: list = field(default_factory=list)
    fail: bool = False

    def last_to(self, to: str) -> Optional[dict]:
        for msg in reversed(self.messages):
            if msg["to"] == to:
                return msg
        return None

    def token_for(self, to: str, subject_contains: str = "") -> Optional[str]:
        for msg in reversed(self.messages):
            if msg["to"] == to and subject_contains in msg["subject"]:
                match = _TOKEN_RE.search(msg["text"])
                if match:
                    return match.group(1)
        return None


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    """Capture outgoing mail instead of talking to SMTP.

    Set ``outbox.fail = True`` to make every send raise, simulating an outage.
    """
    from wisdom_api.services.mailer import mailer

    box = Outbox()

    def _send(to, subject, text, html=None):
        if box.fail:
            raise ConnectionError("smtp down")
        box.messages.append({"to": to, "subject": subject, "text": text, "html": html})
        return True

    monkeypatch.setattr(mailer, "send", _send)
    return box


# --- Stripe stub -----------------------------------------------------------------
class FakeGateway:
    """In-memory stand-in for StripeGateway."""

    def __init__(self):
        self.intents = {}
        self.created = []
        self.retrieve_calls = 0

    def add_intent(self, intent_id, status="succeeded", amount=1200, currency="usd", metadata=None):
        from wisdom_api.services.stripe_gateway import PaymentIntentInfo
        info = PaymentIntentInfo(
            id=intent_id,
            status=status,
            amount=amount,
            currency=currency,
            metadata=dict(metadata or {}),
            client_secret=f"{intent_id}_secret_test",
        )
        self.intents[intent_id] = info
        return info

    def create_payment_intent(self, amount, currency, metadata, description=None):
        intent_id = f"pi_test_{len(self.created) + 1}"
        self.created.append({"amount": amount, "currency": currency, "metadata": dict(metadata)})
        return self.add_intent(intent_id, status="requires_payment_method", amount=amount,
                               currency=currency, metadata=metadata)

    def retrieve_payment_intent(self, payment_intent_id):
        from wisdom_api.core.errors import PaymentError
        self.retrieve_calls += 1
        try:
            return self.intents[payment_intent_id]
        except KeyError:
            raise PaymentError("Unknown payment reference")


@pytest.fixture
def stripe_stub(monkeypatch):
    from wisdom_api.services import stripe_gateway
    fake = FakeGateway()
    monkeypatch.setattr(stripe_gateway, "gateway", fake)
    return fake


# --- Network controls --------------------------------------------------------
LOCAL_PATTERNS = (
    re.compile(r"^http://(localhost|127\.0\.0\.1|testserver)"),
    re.compile(r"^https://(localhost|127\.0\.0\.1)"),
)


@pytest.fixture(autouse=True)
def no_real_http(request):
    r"""Block all real HTTP by default using requests-mock.

    - Allows only localhost/127.0.0.1 via passthrough registrations.
    - External calls (Stripe included) must be explicitly stubbed in tests.
    """
    with requests_mock.Mocker(real_http=False) as m:
        for pat in LOCAL_PATTERNS:
            m.register_uri(requests_mock.ANY, pat, real_http=True)
        setattr(request.node, "_requests_mocker", m)
        yield m


@pytest.fixture(scope="function")
def requests_mocker(request):
    """The active requests-mock Mocker, for stubbing specific external calls."""
    existing = getattr(request.node, "_requests_mocker", None)
    if existing is not None:
        yield existing
        return
    with requests_mock.Mocker() as m:
        yield m
