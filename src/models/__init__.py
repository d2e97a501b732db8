"""Domain models package."""
from src.models.profile import Profile
from src.models.order import Order
from src.models.enums import OrderStatus

__all__ = [
    # Models
    "Profile",
    "Order",
    # Enums
    "OrderStatus",
]
