"""Enumeration types for models."""
import enum


class OrderStatus(enum.Enum):
    """Order payment status. Every status other than PENDING is terminal."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        """Check if no further transition is expected from this status."""
        return self is not OrderStatus.PENDING
