"""Order repository implementation."""
import logging
from typing import Optional, Tuple, Union
from uuid import UUID

from sqlalchemy import func, update

from src.models import Order, OrderStatus, Profile
from src.repositories.base import BaseRepository, coerce_uuid
from src.utils.transaction import TransactionContext, store_operation

logger = logging.getLogger(__name__)


class OrderRepository(BaseRepository[Order]):
    """Repository for Order entity operations."""

    def __init__(self, session):
        super().__init__(session=session, model=Order)

    @store_operation
    def find_by_payment_reference(self, payment_reference: str) -> Optional[Order]:
        """Find the oldest order linked to a provider payment reference."""
        if not payment_reference:
            return None
        return (
            self._session.query(Order)
            .filter(Order.payment_reference == payment_reference)
            .order_by(Order.created_at.asc())
            .populate_existing()
            .first()
        )

    def compare_and_set_status(
        self,
        order_id: Union[UUID, str],
        expected_status: Optional[OrderStatus],
        new_status: OrderStatus,
        payment_reference: Optional[str] = None,
    ) -> bool:
        """
        Atomically move an order to new_status if it is still in expected_status.

        Runs as a single conditional UPDATE committed on its own, so two
        concurrent deliveries for the same order cannot both win.
        payment_reference is only written when the order has none yet.

        Args:
            order_id: Order primary key.
            expected_status: Status the order must currently have, or None
                for an unconditional write.
            new_status: Status to set.
            payment_reference: Optional provider payment reference to record.

        Returns:
            True if exactly one row was updated.

        Raises:
            StoreUnavailable: If the database operation failed.
        """
        key = coerce_uuid(order_id)
        if key is None:
            return False

        values = {"status": new_status}
        if payment_reference:
            values["payment_reference"] = func.coalesce(
                Order.payment_reference, payment_reference
            )

        stmt = update(Order).where(Order.id == key)
        if expected_status is not None:
            stmt = stmt.where(Order.status == expected_status)
        stmt = stmt.values(**values).execution_options(synchronize_session=False)

        with TransactionContext(self._session):
            result = self._session.execute(stmt)

        updated = result.rowcount == 1
        logger.debug(
            "compare_and_set_status order=%s expected=%s new=%s updated=%s",
            key,
            expected_status.value if expected_status else None,
            new_status.value,
            updated,
        )
        return updated

    @store_operation
    def get_order_with_user(
        self, order_id: Union[UUID, str]
    ) -> Tuple[Optional[Order], Optional[str]]:
        """
        Load an order together with its owner's contact email.

        Returns:
            (order, email). Either may be None: unknown order, order without
            an owner, or a profile without an email address.
        """
        key = coerce_uuid(order_id)
        if key is None:
            return None, None

        row = (
            self._session.query(Order, Profile.email)
            .outerjoin(Profile, Profile.id == Order.user_id)
            .filter(Order.id == key)
            .populate_existing()
            .first()
        )
        if not row:
            return None, None
        order, email = row
        return order, email or None
