"""Classification of verified Stripe webhook payloads."""
import json
import logging
from typing import Any, Dict, Optional

from src.errors import MalformedEvent
from src.events.payment_events import (
    IgnoredEvent,
    PaymentCompleted,
    PaymentFailed,
    PaymentSessionExpired,
    ProviderEvent,
)

logger = logging.getLogger(__name__)

CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
CHECKOUT_SESSION_EXPIRED = "checkout.session.expired"
PAYMENT_INTENT_PAYMENT_FAILED = "payment_intent.payment_failed"

DEFAULT_FAILURE_MESSAGE = "Unknown error"


def classify_event(payload: bytes) -> ProviderEvent:
    """
    Decode a verified Stripe event body into a classified event.

    Args:
        payload: Raw request body that already passed signature verification.

    Returns:
        PaymentCompleted, PaymentFailed, PaymentSessionExpired or IgnoredEvent.

    Raises:
        MalformedEvent: If the body is not a Stripe event, or a recognized
            event type lacks the fields needed to reconcile it.
    """
    try:
        event = json.loads(payload)
    except (ValueError, TypeError) as e:
        raise MalformedEvent("Event body is not valid JSON") from e

    if not isinstance(event, dict):
        raise MalformedEvent("Event body is not a JSON object")

    event_type = event.get("type")
    if not isinstance(event_type, str) or not event_type:
        raise MalformedEvent("Event has no type")

    event_id = event.get("id")

    if event_type == CHECKOUT_SESSION_COMPLETED:
        session = _event_object(event, event_type)
        order_id = _order_id_from_metadata(session, event_type)
        if not order_id:
            return IgnoredEvent(
                event_id=event_id,
                event_type=event_type,
                reason="checkout session has no order_id",
            )
        return PaymentCompleted(
            event_id=event_id,
            order_id=order_id,
            payment_reference=_object_id(session.get("payment_intent")),
            session_id=session.get("id"),
        )

    if event_type == CHECKOUT_SESSION_EXPIRED:
        session = _event_object(event, event_type)
        order_id = _order_id_from_metadata(session, event_type)
        if not order_id:
            return IgnoredEvent(
                event_id=event_id,
                event_type=event_type,
                reason="checkout session has no order_id",
            )
        return PaymentSessionExpired(
            event_id=event_id,
            order_id=order_id,
            session_id=session.get("id"),
        )

    if event_type == PAYMENT_INTENT_PAYMENT_FAILED:
        payment_intent = _event_object(event, event_type)
        payment_reference = payment_intent.get("id")
        if not isinstance(payment_reference, str) or not payment_reference:
            raise MalformedEvent(f"{event_type} has no payment intent id")
        return PaymentFailed(
            event_id=event_id,
            payment_reference=payment_reference,
            failure_message=_failure_message(payment_intent),
        )

    return IgnoredEvent(event_id=event_id, event_type=event_type)


def _event_object(event: Dict[str, Any], event_type: str) -> Dict[str, Any]:
    """Extract event.data.object, which every recognized type requires."""
    data = event.get("data")
    obj = data.get("object") if isinstance(data, dict) else None
    if not isinstance(obj, dict):
        raise MalformedEvent(f"{event_type} has no data.object")
    return obj


def _order_id_from_metadata(session: Dict[str, Any], event_type: str) -> Optional[str]:
    metadata = session.get("metadata")
    if not isinstance(metadata, dict):
        raise MalformedEvent(f"{event_type} has no metadata")
    order_id = metadata.get("order_id")
    if order_id is None:
        return None
    return str(order_id).strip() or None


def _object_id(value: Any) -> Optional[str]:
    """Return the id of a Stripe reference that may be expanded or a bare id."""
    if isinstance(value, dict):
        value = value.get("id")
    if isinstance(value, str) and value:
        return value
    return None


def _failure_message(payment_intent: Dict[str, Any]) -> str:
    last_error = payment_intent.get("last_payment_error")
    if isinstance(last_error, dict) and last_error.get("message"):
        return str(last_error["message"])
    return DEFAULT_FAILURE_MESSAGE
