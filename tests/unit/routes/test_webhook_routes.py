"""Tests for the Stripe webhook endpoint."""
import uuid
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from src.models import Order, OrderStatus
from tests.fixtures.stripe_events import (
    checkout_completed_event,
    checkout_expired_event,
    encode_event,
    payment_failed_event,
    sign_payload,
)


def _reload(db_session, order):
    return db_session.get(Order, order.id, populate_existing=True)


@pytest.fixture
def cas_spy(mocker):
    """Spy on the only write path into the order store."""
    from src.repositories.order_repository import OrderRepository

    return mocker.spy(OrderRepository, "compare_and_set_status")


class TestWebhookScenarios:
    """End-to-end delivery scenarios against the SQLite store."""

    def test_completed_session_marks_order_paid(self, post_event, make_order, db_session):
        """A completed checkout moves a pending order to paid."""
        order = make_order(total_price=Decimal("250.00"))

        response = post_event(checkout_completed_event(order.id, payment_intent="pi_A"))

        assert response.status_code == 200
        assert response.json == {"received": True}
        reloaded = _reload(db_session, order)
        assert reloaded.status == OrderStatus.PAID
        assert reloaded.payment_reference == "pi_A"
        assert reloaded.total_price == Decimal("250.00")

    def test_redelivered_completion_writes_nothing(
        self, post_event, make_order, db_session, cas_spy
    ):
        """A redelivered completion is acknowledged with no second write."""
        order = make_order()
        event = checkout_completed_event(order.id, payment_intent="pi_B")

        first = post_event(event)
        assert cas_spy.call_count == 1

        second = post_event(event)

        assert first.status_code == 200
        assert second.status_code == 200
        assert cas_spy.call_count == 1
        assert _reload(db_session, order).status == OrderStatus.PAID

    def test_failed_payment_for_unknown_reference(
        self, post_event, make_order, db_session, cas_spy
    ):
        """A failure for an unknown payment intent changes nothing."""
        order = make_order(payment_reference="pi_known")

        response = post_event(payment_failed_event("pi_unknown"))

        assert response.status_code == 200
        cas_spy.assert_not_called()
        assert _reload(db_session, order).status == OrderStatus.PENDING

    def test_bad_signature_never_touches_store(self, post_event, make_order, db_session):
        """A forged signature is rejected before any store access."""
        from src.repositories.order_repository import OrderRepository

        order = make_order()

        with patch.object(OrderRepository, "find_by_id") as find_by_id:
            response = post_event(
                checkout_completed_event(order.id), secret="whsec_attacker"
            )

        assert 400 <= response.status_code < 500
        find_by_id.assert_not_called()
        assert _reload(db_session, order).status == OrderStatus.PENDING

    def test_late_expiry_leaves_paid_order_paid(
        self, post_event, make_order, db_session, cas_spy
    ):
        """An expiry arriving after payment leaves the order paid."""
        order = make_order(status=OrderStatus.PAID, payment_reference="pi_E")

        response = post_event(checkout_expired_event(order.id))

        assert response.status_code == 200
        cas_spy.assert_not_called()
        assert _reload(db_session, order).status == OrderStatus.PAID


class TestWebhookTransitions:
    """Further status transitions through the endpoint."""

    def test_failed_payment_marks_linked_order_failed(self, post_event, make_order, db_session):
        """A failed payment marks the linked pending order failed."""
        order = make_order(payment_reference="pi_123")

        response = post_event(payment_failed_event("pi_123"))

        assert response.status_code == 200
        assert _reload(db_session, order).status == OrderStatus.FAILED

    def test_expired_session_marks_pending_order_expired(
        self, post_event, make_order, db_session
    ):
        """An expired session marks the pending order expired."""
        order = make_order()

        response = post_event(checkout_expired_event(order.id))

        assert response.status_code == 200
        assert _reload(db_session, order).status == OrderStatus.EXPIRED

    def test_completion_after_expiry_overrides_to_paid(
        self, post_event, make_order, db_session
    ):
        """A late completion overrides an expired order to paid."""
        order = make_order(status=OrderStatus.EXPIRED)

        response = post_event(checkout_completed_event(order.id, payment_intent="pi_late"))

        assert response.status_code == 200
        reloaded = _reload(db_session, order)
        assert reloaded.status == OrderStatus.PAID
        assert reloaded.payment_reference == "pi_late"

    def test_failure_never_downgrades_paid_order(self, post_event, make_order, db_session):
        """A failed payment never downgrades a paid order."""
        order = make_order(status=OrderStatus.PAID, payment_reference="pi_123")

        response = post_event(payment_failed_event("pi_123"))

        assert response.status_code == 200
        assert _reload(db_session, order).status == OrderStatus.PAID

    def test_unknown_order_is_acknowledged(self, post_event, cas_spy):
        """Completion for an unknown order is acknowledged without a write."""
        response = post_event(checkout_completed_event(uuid.uuid4()))

        assert response.status_code == 200
        cas_spy.assert_not_called()

    def test_non_uuid_order_id_is_acknowledged(self, post_event, cas_spy):
        """A non-UUID order id is treated as an unknown order."""
        response = post_event(checkout_completed_event("order-42"))

        assert response.status_code == 200
        cas_spy.assert_not_called()


class TestWebhookOverrideDisabled:
    """Completion after a terminal status with overriding turned off."""

    @pytest.fixture
    def app_config(self):
        """Per-test configuration overrides on top of TestingConfig."""
        return {"STRIPE_WEBHOOK_SECRET": "whsec_test_secret", "PAID_OVERRIDES_TERMINAL": False}

    def test_conflict_is_acknowledged_without_write(
        self, post_event, make_order, db_session, cas_spy
    ):
        """With overriding off, a conflicting completion is acknowledged unchanged."""
        order = make_order(status=OrderStatus.FAILED)

        response = post_event(checkout_completed_event(order.id))

        assert response.status_code == 200
        cas_spy.assert_not_called()
        assert _reload(db_session, order).status == OrderStatus.FAILED


class TestWebhookRejections:
    """Requests the endpoint refuses."""

    def test_missing_signature_header(self, client, make_order):
        """A request without Stripe-Signature is rejected."""
        order = make_order()

        response = client.post(
            "/webhook",
            data=encode_event(checkout_completed_event(order.id)),
            content_type="application/json",
        )

        assert response.status_code == 400
        assert response.json == {"error": "No signature"}

    def test_tampered_body(self, client, make_order, db_session):
        """A body changed after signing is rejected."""
        order = make_order()
        payload = encode_event(checkout_completed_event(order.id))
        signature = sign_payload(payload)

        response = client.post(
            "/webhook",
            data=payload.replace(b"pi_test_123", b"pi_test_999"),
            headers={"Stripe-Signature": signature},
            content_type="application/json",
        )

        assert response.status_code == 400
        assert _reload(db_session, order).status == OrderStatus.PENDING

    def test_malformed_recognized_event(self, post_event, cas_spy):
        """A recognized event missing required fields is rejected."""
        event = checkout_completed_event(uuid.uuid4())
        del event["data"]["object"]["metadata"]

        response = post_event(event)

        assert response.status_code == 400
        cas_spy.assert_not_called()

    def test_invalid_json_body(self, client):
        """A signed body that is not JSON is rejected."""
        payload = b"{not json"

        response = client.post(
            "/webhook",
            data=payload,
            headers={"Stripe-Signature": sign_payload(payload)},
            content_type="application/json",
        )

        assert response.status_code == 400


class TestWebhookSecretMissing:
    """The endpoint fails closed without a signing secret."""

    @pytest.fixture
    def app_config(self):
        """Per-test configuration overrides on top of TestingConfig."""
        return {"STRIPE_WEBHOOK_SECRET": None}

    def test_returns_500_for_any_request(self, post_event, make_order, db_session):
        """Without a signing secret every request gets 500."""
        order = make_order()

        response = post_event(checkout_completed_event(order.id))

        assert response.status_code == 500
        assert response.json == {"error": "Webhook secret not configured"}
        assert _reload(db_session, order).status == OrderStatus.PENDING


class TestWebhookIgnoredEvents:
    """Unrecognized event types are acknowledged without side effects."""

    @pytest.mark.parametrize(
        "event_type", ["customer.created", "charge.succeeded", "invoice.payment_failed"]
    )
    def test_ignored_type_skips_store(self, post_event, event_type):
        """Unhandled event types are acknowledged without store access."""
        from src.repositories.order_repository import OrderRepository

        with patch.object(OrderRepository, "find_by_id") as find_by_id, patch.object(
            OrderRepository, "find_by_payment_reference"
        ) as find_by_reference:
            response = post_event(
                {"id": "evt_other", "type": event_type, "data": {"object": {"id": "x"}}}
            )

        assert response.status_code == 200
        assert response.json == {"received": True}
        find_by_id.assert_not_called()
        find_by_reference.assert_not_called()

    def test_completed_session_without_order_id(self, post_event, cas_spy):
        """A checkout session without order_id is ignored."""
        event = checkout_completed_event(uuid.uuid4())
        event["data"]["object"]["metadata"] = {}

        response = post_event(event)

        assert response.status_code == 200
        cas_spy.assert_not_called()


class TestWebhookStoreUnavailable:
    """Transient store failures ask Stripe to retry."""

    def test_read_failure_returns_503(self, post_event):
        """A store read failure asks Stripe to retry."""
        from src.errors import StoreUnavailable
        from src.repositories.order_repository import OrderRepository

        with patch.object(
            OrderRepository, "find_by_id", side_effect=StoreUnavailable("timeout")
        ):
            response = post_event(checkout_completed_event(uuid.uuid4()))

        assert response.status_code == 503
        assert response.json == {"error": "Order store unavailable"}

    def test_write_failure_returns_503(self, post_event, make_order):
        """A store write failure asks Stripe to retry."""
        from src.errors import StoreUnavailable
        from src.repositories.order_repository import OrderRepository

        order = make_order()

        with patch.object(
            OrderRepository,
            "compare_and_set_status",
            side_effect=StoreUnavailable("connection reset"),
        ):
            response = post_event(checkout_completed_event(order.id))

        assert response.status_code == 503


class TestWebhookNotifications:
    """Customer emails after a status change."""

    @pytest.fixture
    def app_config(self):
        """Per-test configuration overrides on top of TestingConfig."""
        return {
            "STRIPE_WEBHOOK_SECRET": "whsec_test_secret",
            "RESEND_API_KEY": "re_test_key",
        }

    @patch("src.services.email_service.requests.post")
    def test_paid_order_emails_customer(
        self, mock_post, post_event, make_order, make_profile
    ):
        """Paying an order emails its owner."""
        mock_post.return_value = MagicMock(ok=True, status_code=200)
        order = make_order(profile=make_profile(email="cliente@example.com"))

        response = post_event(checkout_completed_event(order.id))

        assert response.status_code == 200
        mock_post.assert_called_once()
        body = mock_post.call_args.kwargs["json"]
        assert body["to"] == ["cliente@example.com"]
        assert body["subject"] == "✅ Tu pago ha sido confirmado"
        assert "250.00" in body["html"]

    @patch("src.services.email_service.requests.post")
    def test_redelivery_does_not_email_again(
        self, mock_post, post_event, make_order, make_profile
    ):
        """A redelivered completion sends no second email."""
        mock_post.return_value = MagicMock(ok=True, status_code=200)
        order = make_order(profile=make_profile())
        event = checkout_completed_event(order.id)

        post_event(event)
        post_event(event)

        assert mock_post.call_count == 1

    @patch("src.services.email_service.requests.post")
    def test_email_failure_does_not_change_response(
        self, mock_post, post_event, make_order, make_profile, db_session
    ):
        """An unreachable email API leaves the response and order intact."""
        import requests

        mock_post.side_effect = requests.ConnectionError("resend unreachable")
        order = make_order(profile=make_profile())

        response = post_event(checkout_completed_event(order.id))

        assert response.status_code == 200
        assert response.json == {"received": True}
        assert _reload(db_session, order).status == OrderStatus.PAID

    @patch("src.services.email_service.requests.post")
    def test_order_without_owner_is_not_emailed(self, mock_post, post_event, make_order):
        """Orders without an owner are not emailed."""
        order = make_order()

        response = post_event(checkout_completed_event(order.id))

        assert response.status_code == 200
        mock_post.assert_not_called()


class TestWebhookNotifierFailures:
    """Errors escaping the notifier never reach Stripe."""

    @pytest.fixture
    def app_config(self):
        """Email delivery enabled."""
        return {
            "STRIPE_WEBHOOK_SECRET": "whsec_test_secret",
            "RESEND_API_KEY": "re_test_key",
        }

    def test_email_config_error_after_commit_still_acknowledged(
        self, post_event, make_order, make_profile, db_session
    ):
        """An email configuration error after the commit still answers 200."""
        from src.services.email_service import EmailConfigError
        from src.services.order_notifier import OrderNotifier

        order = make_order(profile=make_profile())

        with patch.object(
            OrderNotifier,
            "notify_status_change",
            side_effect=EmailConfigError("Invalid configuration: from_email is required"),
        ):
            response = post_event(checkout_completed_event(order.id))

        assert response.status_code == 200
        assert response.json == {"received": True}
        assert _reload(db_session, order).status == OrderStatus.PAID

    @patch("src.services.email_service.requests.post")
    def test_recipient_lookup_error_still_acknowledged(
        self, mock_post, post_event, make_order, db_session, caplog
    ):
        """An unexpected recipient lookup error is logged and the payment stands."""
        from src.repositories.order_repository import OrderRepository

        order = make_order()

        with patch.object(
            OrderRepository,
            "get_order_with_user",
            side_effect=RuntimeError("unexpected row shape"),
        ):
            response = post_event(checkout_completed_event(order.id))

        assert response.status_code == 200
        assert _reload(db_session, order).status == OrderStatus.PAID
        mock_post.assert_not_called()
        assert "Notification for order" in caplog.text


class TestWebhookLogging:
    """Log lines operators rely on."""

    def test_missing_signature_is_logged(self, client, caplog):
        """A request without Stripe-Signature logs a warning."""
        import logging

        with caplog.at_level(logging.WARNING, logger="src.routes.webhooks"):
            response = client.post(
                "/webhook",
                data=encode_event(checkout_completed_event(uuid.uuid4())),
                content_type="application/json",
            )

        assert response.status_code == 400
        assert "Rejected Stripe webhook: No signature" in caplog.text

    def test_checkout_session_id_is_logged(self, post_event, make_order, caplog):
        """The Stripe checkout session id appears in the processing log."""
        import logging

        order = make_order()

        with caplog.at_level(logging.INFO, logger="src.routes.webhooks"):
            post_event(checkout_completed_event(order.id, session_id="cs_logged"))

        assert f"Checkout session cs_logged completed for order {order.id}" in caplog.text
