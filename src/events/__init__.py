"""Classified payment provider events."""
from src.events.payment_events import (
    ProviderEvent,
    PaymentCompleted,
    PaymentFailed,
    PaymentSessionExpired,
    IgnoredEvent,
)

__all__ = [
    "ProviderEvent",
    "PaymentCompleted",
    "PaymentFailed",
    "PaymentSessionExpired",
    "IgnoredEvent",
]
