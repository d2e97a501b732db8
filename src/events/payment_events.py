"""Classified Stripe payment events.

Each verified webhook body is decoded exactly once into one of these
frozen dataclasses. Downstream code dispatches on the class and never
sees the raw Stripe payload again.
"""
from dataclasses import dataclass
from typing import ClassVar, Optional


@dataclass(frozen=True)
class ProviderEvent:
    """Base class for classified provider events."""

    kind: ClassVar[str] = "other"

    event_id: Optional[str]


@dataclass(frozen=True)
class PaymentCompleted(ProviderEvent):
    """Stripe checkout.session.completed for a storefront order."""

    kind: ClassVar[str] = "checkout_completed"

    order_id: str
    payment_reference: Optional[str] = None
    session_id: Optional[str] = None


@dataclass(frozen=True)
class PaymentFailed(ProviderEvent):
    """
    Stripe payment_intent.payment_failed.

    Carries only the payment intent id; the order is resolved through
    its stored payment reference.
    """

    kind: ClassVar[str] = "payment_failed"

    payment_reference: str
    failure_message: str = "Unknown error"


@dataclass(frozen=True)
class PaymentSessionExpired(ProviderEvent):
    """Stripe checkout.session.expired for a storefront order."""

    kind: ClassVar[str] = "checkout_expired"

    order_id: str
    session_id: Optional[str] = None


@dataclass(frozen=True)
class IgnoredEvent(ProviderEvent):
    """Any event this service acknowledges without acting on it."""

    kind: ClassVar[str] = "other"

    event_type: str
    reason: str = "unhandled event type"
