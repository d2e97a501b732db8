"""Transaction management utilities for order store operations."""
import logging
from functools import wraps
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError

from src.errors import StoreUnavailable

logger = logging.getLogger(__name__)


class TransactionContext:
    """
    Context manager for a single order store write.

    Commits on success and rolls back on exception. Database errors are
    re-raised as StoreUnavailable so callers can answer with a retryable
    response; any other exception propagates unchanged.

    Usage:
        with TransactionContext(session):
            result = session.execute(stmt)
        # committed here
    """

    def __init__(self, session):
        """
        Initialize transaction context.

        Args:
            session: SQLAlchemy session
        """
        self._session = session

    def __enter__(self):
        """Enter transaction context."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit transaction context with commit or rollback."""
        if exc_type is not None:
            self._rollback()
            if issubclass(exc_type, SQLAlchemyError):
                raise StoreUnavailable(str(exc_val)) from exc_val
            return False

        try:
            self._session.commit()
        except SQLAlchemyError as e:
            self._rollback()
            raise StoreUnavailable(str(e)) from e
        return False

    def _rollback(self):
        try:
            self._session.rollback()
        except SQLAlchemyError:
            logger.exception("Rollback failed")


def store_operation(func: Callable) -> Callable:
    """
    Decorator for repository methods that touch the database.

    Rolls back the repository session and raises StoreUnavailable when
    SQLAlchemy reports an error. Expects the instance to expose `_session`.

    Usage:
        class OrderRepository(BaseRepository[Order]):
            @store_operation
            def find_by_payment_reference(self, ref):
                ...
    """

    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except SQLAlchemyError as e:
            logger.error("Order store error in %s: %s", func.__name__, e)
            try:
                self._session.rollback()
            except SQLAlchemyError:
                logger.exception("Rollback failed")
            raise StoreUnavailable(str(e)) from e

    return wrapper
