"""Base repository with common persistence operations."""
from typing import Generic, Optional, Type, TypeVar, Union
from uuid import UUID

from src.utils.transaction import TransactionContext, store_operation

T = TypeVar("T")


def coerce_uuid(value: Union[UUID, str, None]) -> Optional[UUID]:
    """Convert a value to UUID, returning None when it is not a valid UUID."""
    if value is None:
        return None
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        return None


class BaseRepository(Generic[T]):
    """Generic repository bound to a SQLAlchemy session and a model class."""

    def __init__(self, session, model: Type[T]):
        self._session = session
        self._model = model

    @store_operation
    def find_by_id(self, entity_id: Union[UUID, str]) -> Optional[T]:
        """
        Find entity by primary key, always reading current database state.

        Returns None for unknown ids and for ids that are not valid UUIDs.
        """
        key = coerce_uuid(entity_id)
        if key is None:
            return None
        return self._session.get(self._model, key, populate_existing=True)

    def save(self, entity: T) -> T:
        """Persist entity and commit."""
        with TransactionContext(self._session):
            self._session.add(entity)
        return entity
