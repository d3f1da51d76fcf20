import hashlib
import hmac
import json
import time

import pytest

from app import create_app
from src.config import TestingConfig
from src.models import db, User
from src.services.stripe_service import BillingServiceError, StripeBillingService


def pytest_configure(config):
    config.addinivalue_line("markers", "payment: mark test as payment-related")


class FakeBillingService(StripeBillingService):
    """Real signature verification, canned subscription lookups instead of the Stripe API."""

    def __init__(self):
        super().__init__(
            api_key=TestingConfig.STRIPE_SECRET_KEY,
            webhook_secret=TestingConfig.STRIPE_WEBHOOK_SECRET,
        )
        self.subscriptions = {}
        self.retrieved = []

    def retrieve_subscription(self, subscription_id):
        self.retrieved.append(subscription_id)
        if subscription_id not in self.subscriptions:
            raise BillingServiceError(f"Could not retrieve subscription {subscription_id}")
        return self.subscriptions[subscription_id]


def sign_payload(payload: str, secret: str, timestamp=None) -> str:
    """Build a Stripe-Signature header the way Stripe signs webhook deliveries."""
    timestamp = timestamp if timestamp is not None else int(time.time())
    signed = f"{timestamp}.{payload}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


@pytest.fixture()
def billing():
    return FakeBillingService()


@pytest.fixture()
def app(billing):
    """Fresh app and in-memory database per test, with an app context held open"""
    app = create_app(TestingConfig, billing_service=billing)

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def processor(app):
    return app.extensions["webhook_processor"]


@pytest.fixture()
def make_user(app):
    def _make(**fields):
        user = User(**fields)
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture()
def post_event(client, app):
    """POST a signed event to the webhook endpoint."""
    def _post(event, secret=None, timestamp=None, signature=None):
        body = json.dumps(event)
        header = signature if signature is not None else sign_payload(
            body, secret or app.config["STRIPE_WEBHOOK_SECRET"], timestamp
        )
        return client.post(
            app.config["WEBHOOK_PATH"],
            data=body,
            headers={"Stripe-Signature": header},
            content_type="application/json",
        )
    return _post
