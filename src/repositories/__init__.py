"""Repository implementations."""
from src.repositories.base import BaseRepository
from src.repositories.order_repository import OrderRepository

__all__ = [
    "BaseRepository",
    "OrderRepository",
]
