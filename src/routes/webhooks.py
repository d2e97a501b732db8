"""Stripe payment webhook route."""
import logging

from flask import Blueprint, request, jsonify, current_app

from src.errors import (
    AuthenticationFailed,
    ConflictingState,
    MalformedEvent,
    OrderNotFound,
    StoreUnavailable,
    WebhookSecretNotConfigured,
)
from src.events.payment_events import (
    IgnoredEvent,
    PaymentCompleted,
    PaymentFailed,
    PaymentSessionExpired,
)
from src.extensions import limiter
from src.services.event_classifier import classify_event

logger = logging.getLogger(__name__)

webhooks_bp = Blueprint("webhooks", __name__)

SIGNATURE_HEADER = "Stripe-Signature"


def _received():
    return jsonify({"received": True}), 200


@webhooks_bp.route("/webhook", methods=["POST"])
@limiter.exempt
def stripe_webhook():
    """
    Handle Stripe webhook events.

    Verifies the signature over the raw body, classifies the event,
    reconciles the referenced order and, when the order actually changed,
    emails the customer. Email problems never affect the response.

    Returns:
        200: {"received": true} for every acknowledged event, including
             ignored types, unknown orders and duplicate deliveries
        400: Missing/invalid signature or malformed event
        500: Webhook secret not configured
        503: Order store unavailable (Stripe will retry)
    """
    container = current_app.container
    payload = request.get_data()
    signature = request.headers.get(SIGNATURE_HEADER)

    try:
        container.signature_verifier().verify(payload, signature)
    except WebhookSecretNotConfigured:
        logger.error("STRIPE_WEBHOOK_SECRET not configured")
        return jsonify({"error": "Webhook secret not configured"}), 500
    except AuthenticationFailed as e:
        logger.warning("Rejected Stripe webhook: %s", e)
        return jsonify({"error": str(e)}), 400

    try:
        event = classify_event(payload)
    except MalformedEvent as e:
        logger.warning("Rejected malformed Stripe event: %s", e)
        return jsonify({"error": str(e)}), 400

    if isinstance(event, IgnoredEvent):
        logger.info(
            "Ignoring Stripe event %s (%s): %s", event.event_id, event.event_type, event.reason
        )
        return _received()

    logger.info("Processing Stripe event %s (%s)", event.event_id, event.kind)
    reconciler = container.order_reconciler()

    try:
        if isinstance(event, PaymentCompleted):
            logger.info(
                "Checkout session %s completed for order %s",
                event.session_id,
                event.order_id,
            )
            result = reconciler.payment_completed(event.order_id, event.payment_reference)
        elif isinstance(event, PaymentFailed):
            logger.info(
                "Payment %s failed: %s", event.payment_reference, event.failure_message
            )
            result = reconciler.payment_failed(event.payment_reference)
        elif isinstance(event, PaymentSessionExpired):
            logger.info(
                "Checkout session %s expired for order %s",
                event.session_id,
                event.order_id,
            )
            result = reconciler.session_expired(event.order_id)
        else:
            raise TypeError(f"Unhandled event class {type(event).__name__}")
    except OrderNotFound as e:
        logger.warning("Stripe event %s: %s", event.event_id, e)
        return _received()
    except ConflictingState as e:
        logger.error("Stripe event %s conflicts with order state: %s", event.event_id, e)
        return _received()
    except StoreUnavailable as e:
        logger.error("Order store unavailable for Stripe event %s: %s", event.event_id, e)
        return jsonify({"error": "Order store unavailable"}), 503

    if result.changed:
        try:
            container.order_notifier().notify_status_change(
                result.order_id, result.status
            )
        except Exception:
            logger.exception(
                "Notification for order %s failed after status change to %s",
                result.order_id,
                result.status.value,
            )

    return _received()
