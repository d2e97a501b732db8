"""Shared fixtures: in-memory SQLite app, seeded orders, signed webhook calls."""
from decimal import Decimal

import pytest

from src.app import create_app
from src.extensions import db as _db
from src.models import Order, OrderStatus, Profile
from tests.fixtures.stripe_events import WEBHOOK_SECRET, encode_event, sign_payload


@pytest.fixture
def app_config():
    """Per-test configuration overrides on top of TestingConfig."""
    return {"STRIPE_WEBHOOK_SECRET": WEBHOOK_SECRET}


@pytest.fixture
def app(app_config):
    """Create app with a fresh in-memory database."""
    flask_app = create_app(app_config, env="testing")
    with flask_app.app_context():
        _db.create_all()
        yield flask_app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def db_session(app):
    """SQLAlchemy session bound to the test database."""
    return _db.session


@pytest.fixture
def make_profile(db_session):
    """Factory for customer profiles."""

    from src.repositories.base import BaseRepository

    profiles = BaseRepository(db_session, Profile)

    def _make(email="cliente@example.com"):
        return profiles.save(Profile(email=email))

    return _make


@pytest.fixture
def make_order(db_session):
    """Factory for orders in any status."""
    from src.repositories.order_repository import OrderRepository

    orders = OrderRepository(db_session)

    def _make(
        status=OrderStatus.PENDING,
        total_price=Decimal("250.00"),
        profile=None,
        payment_reference=None,
    ):
        return orders.save(
            Order(
                status=status,
                total_price=total_price,
                user_id=profile.id if profile else None,
                payment_reference=payment_reference,
            )
        )

    return _make


@pytest.fixture
def post_event(client):
    """POST a signed Stripe event to /webhook."""

    def _post(event, secret=WEBHOOK_SECRET, signature=None):
        payload = encode_event(event)
        headers = {
            "Stripe-Signature": signature
            if signature is not None
            else sign_payload(payload, secret),
        }
        return client.post(
            "/webhook",
            data=payload,
            headers=headers,
            content_type="application/json",
        )

    return _post
