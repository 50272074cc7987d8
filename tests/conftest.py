import hashlib
import hmac
import json
import os
import shutil
import tempfile
import time
from datetime import timezone

# Settings are read at import time, so the environment is fixed first
TEST_DB_DIR = tempfile.mkdtemp(prefix="payments-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(TEST_DB_DIR, 'payments.db')}"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["STRIPE_PRICE_BASIC_PLAN_ID"] = "price_basic"
os.environ["STRIPE_PRICE_PREMIUM_PLAN_ID"] = "price_premium"
for name in ("LOGGING_SERVICE_URL", "NOTIFICATION_SERVICE_URL", "SENDGRID_API_KEY", "MAIL_FROM", "STRIPE_PLAN_TIERS"):
    os.environ.pop(name, None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel  # noqa: E402

import models.models  # noqa: E402,F401
from core.database import engine  # noqa: E402
from main import app as fastapi_app  # noqa: E402
from models.models import Company, PaymentTransaction  # noqa: E402
from services.stripe_gateway import get_stripe_gateway  # noqa: E402

WEBHOOK_SECRET = "whsec_test_secret"
PLAN_TIERS = {"price_basic": "basic", "price_premium": "premium"}


class FakeStripeGateway:
    """Stands in for StripeGateway; returns plain dicts and records calls."""

    def __init__(self):
        self.calls = []
        self.subscriptions = {}
        self.retrieve_error = None
        self.cancel_error = None
        self.account_counter = 0

    def create_payment_intent(self, **params):
        self.calls.append(("create_payment_intent", params))
        return {"id": "pi_test_123", "client_secret": "pi_test_123_secret_abc"}

    def create_checkout_session(self, **params):
        self.calls.append(("create_checkout_session", params))
        return {"id": "cs_test_1", "url": "https://checkout.stripe.test/cs_test_1"}

    def create_customer(self, email, name, metadata=None):
        self.calls.append(("create_customer", {"email": email, "name": name, "metadata": metadata}))
        return {"id": "cus_created_1"}

    def retrieve_subscription(self, subscription_id):
        self.calls.append(("retrieve_subscription", subscription_id))
        if self.retrieve_error is not None:
            raise self.retrieve_error
        return self.subscriptions[subscription_id]

    def cancel_subscription(self, subscription_id):
        self.calls.append(("cancel_subscription", subscription_id))
        if self.cancel_error is not None:
            raise self.cancel_error
        return {"id": subscription_id, "status": "canceled"}

    def create_account(self, email, metadata=None):
        self.account_counter += 1
        self.calls.append(("create_account", {"email": email, "metadata": metadata}))
        return {"id": f"acct_test_{self.account_counter}"}

    def retrieve_account(self, account_id):
        self.calls.append(("retrieve_account", account_id))
        return {"id": account_id}

    def create_account_link(self, account_id, refresh_url, return_url):
        self.calls.append(("create_account_link", {"account": account_id, "refresh_url": refresh_url}))
        return {"url": f"https://connect.stripe.test/setup/{account_id}"}

    def called(self, name):
        return [params for call, params in self.calls if call == name]


def make_subscription(sub_id="sub_1", customer="cus_1", status="active", price_id="price_premium", period_end=1893456000):
    return {
        "id": sub_id,
        "object": "subscription",
        "customer": customer,
        "status": status,
        "current_period_end": period_end,
        "items": {"object": "list", "data": [{"id": "si_1", "price": {"id": price_id}}]},
    }


def make_event(event_type, data_object, event_id="evt_test_1", livemode=False):
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "livemode": livemode,
        "created": int(time.time()),
        "data": {"object": data_object},
    }


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed_payload = f"{timestamp}.".encode("utf-8") + payload
    signature = hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def as_utc(value):
    """SQLite hands back naive datetimes on older sqlmodel releases; they are UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


# ------------------------------------------------------------
# Fixtures
# ------------------------------------------------------------
@pytest.fixture(scope="session", autouse=True)
def test_db_dir():
    yield TEST_DB_DIR
    engine.dispose()
    shutil.rmtree(TEST_DB_DIR, ignore_errors=True)


@pytest.fixture(autouse=True)
def setup_db():
    SQLModel.metadata.create_all(engine)
    yield
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s


@pytest.fixture
def fake_stripe():
    return FakeStripeGateway()


@pytest.fixture
def client(fake_stripe):
    fastapi_app.dependency_overrides[get_stripe_gateway] = lambda: fake_stripe
    with TestClient(fastapi_app) as c:
        yield c
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def create_company():
    def _create(**fields):
        defaults = {"name": "Acme Coffee", "email": "billing@acme.example.com"}
        defaults.update(fields)
        with Session(engine) as s:
            company = Company(**defaults)
            s.add(company)
            s.commit()
            s.refresh(company)
            return company
    return _create


@pytest.fixture
def create_transaction():
    def _create(company_id, **fields):
        defaults = {
            "customer": "customer-1",
            "amount": 5000,
            "currency": "eur",
            "stripe_payment_intent_id": "pi_1",
        }
        defaults.update(fields)
        with Session(engine) as s:
            transaction = PaymentTransaction(company_id=company_id, **defaults)
            s.add(transaction)
            s.commit()
            s.refresh(transaction)
            return transaction
    return _create


@pytest.fixture
def load():
    """Read a row back through a fresh session."""
    def _load(model, row_id):
        with Session(engine) as s:
            return s.get(model, row_id)
    return _load


@pytest.fixture
def send_event(client):
    """POST a signed event to the webhook endpoint."""
    def _send(event, secret=WEBHOOK_SECRET, timestamp=None, tamper=None):
        payload = json.dumps(event).encode("utf-8")
        signature = sign_payload(payload, secret=secret, timestamp=timestamp)
        if tamper is not None:
            payload = tamper(payload)
        return client.post(
            "/api/stripe/webhook",
            content=payload,
            headers={"stripe-signature": signature, "content-type": "application/json"},
        )
    return _send
