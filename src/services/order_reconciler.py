"""Order reconciliation service: applies payment events to orders."""
import enum
import logging
from typing import Optional, Union
from uuid import UUID

from src.errors import ConflictingState, OrderNotFound, StoreUnavailable
from src.models.enums import OrderStatus
from src.repositories.order_repository import OrderRepository

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3


class ReconciliationOutcome(enum.Enum):
    """What a reconciliation did to the order."""

    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"
    NO_OP = "no_op"


class ReconciliationResult:
    """Result of a reconciliation operation."""

    def __init__(
        self,
        outcome: ReconciliationOutcome,
        order_id: Optional[Union[UUID, str]] = None,
        status: Optional[OrderStatus] = None,
        previous_status: Optional[OrderStatus] = None,
    ):
        self.outcome = outcome
        self.order_id = order_id
        self.status = status
        self.previous_status = previous_status

    @property
    def changed(self) -> bool:
        """True only when this call performed the status transition."""
        return self.outcome == ReconciliationOutcome.APPLIED

    def __repr__(self) -> str:
        return (
            f"<ReconciliationResult(outcome={self.outcome.value}, "
            f"order_id={self.order_id}, "
            f"status={self.status.value if self.status else None})>"
        )


class OrderReconciler:
    """Service applying classified payment events to orders.

    Every operation is idempotent under redelivery. Writes go through
    compare_and_set_status with the status observed on the preceding
    read; when another request changed the order in between, the order
    is re-read and the decision is made again.
    """

    def __init__(
        self,
        order_repository: OrderRepository,
        allow_paid_override: bool = True,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        """
        Initialize reconciler.

        Args:
            order_repository: Order store.
            allow_paid_override: Whether a completed payment may move a
                FAILED or EXPIRED order to PAID.
            max_attempts: Read/compare-and-set rounds before giving up.
        """
        self._order_repo = order_repository
        self._allow_paid_override = allow_paid_override
        self._max_attempts = max(1, max_attempts)

    def payment_completed(
        self, order_id: Union[UUID, str], payment_reference: Optional[str]
    ) -> ReconciliationResult:
        """
        Mark an order as paid.

        Args:
            order_id: Order id from the checkout session metadata.
            payment_reference: Stripe payment intent id, if any.

        Returns:
            ReconciliationResult (APPLIED or ALREADY_APPLIED).

        Raises:
            OrderNotFound: If the order does not exist.
            ConflictingState: If the order is FAILED/EXPIRED and overriding
                is disabled.
            StoreUnavailable: On store failure or persistent contention.
        """
        for _ in range(self._max_attempts):
            order = self._order_repo.find_by_id(order_id)
            if not order:
                raise OrderNotFound(order_id)

            current = order.status
            if current == OrderStatus.PAID:
                logger.info("Order %s already paid, nothing to do", order.id)
                return ReconciliationResult(
                    ReconciliationOutcome.ALREADY_APPLIED,
                    order_id=order.id,
                    status=current,
                    previous_status=current,
                )

            if current.is_terminal:
                if not self._allow_paid_override:
                    raise ConflictingState(order.id, current, OrderStatus.PAID)
                logger.warning(
                    "Order %s is %s but payment %s succeeded, overriding to paid",
                    order.id,
                    current.value,
                    payment_reference,
                )

            if self._order_repo.compare_and_set_status(
                order.id, current, OrderStatus.PAID, payment_reference
            ):
                logger.info(
                    "Order %s updated to paid (payment %s)", order.id, payment_reference
                )
                return ReconciliationResult(
                    ReconciliationOutcome.APPLIED,
                    order_id=order.id,
                    status=OrderStatus.PAID,
                    previous_status=current,
                )

            self._log_lost_race(order.id, current, OrderStatus.PAID)

        raise self._contention_error(order_id)

    def payment_failed(self, payment_reference: str) -> ReconciliationResult:
        """
        Mark the order linked to a failed payment intent as failed.

        An unknown payment reference is benign: the payment never got
        linked to an order.

        Args:
            payment_reference: Stripe payment intent id.

        Returns:
            ReconciliationResult (APPLIED, ALREADY_APPLIED or NO_OP).

        Raises:
            StoreUnavailable: On store failure or persistent contention.
        """
        for _ in range(self._max_attempts):
            order = self._order_repo.find_by_payment_reference(payment_reference)
            if not order:
                logger.info("No order found for payment_intent %s", payment_reference)
                return ReconciliationResult(ReconciliationOutcome.NO_OP)

            result = self._transition_from_pending(order, OrderStatus.FAILED)
            if result is not None:
                return result

        raise self._contention_error(payment_reference)

    def session_expired(self, order_id: Union[UUID, str]) -> ReconciliationResult:
        """
        Mark a pending order as expired.

        Args:
            order_id: Order id from the checkout session metadata.

        Returns:
            ReconciliationResult (APPLIED, ALREADY_APPLIED or NO_OP).

        Raises:
            OrderNotFound: If the order does not exist.
            StoreUnavailable: On store failure or persistent contention.
        """
        for _ in range(self._max_attempts):
            order = self._order_repo.find_by_id(order_id)
            if not order:
                raise OrderNotFound(order_id)

            result = self._transition_from_pending(order, OrderStatus.EXPIRED)
            if result is not None:
                return result

        raise self._contention_error(order_id)

    def _transition_from_pending(
        self, order, new_status: OrderStatus
    ) -> Optional[ReconciliationResult]:
        """Apply PENDING -> new_status; None means the CAS lost and must be retried."""
        current = order.status
        if current == new_status:
            logger.info("Order %s already %s, nothing to do", order.id, current.value)
            return ReconciliationResult(
                ReconciliationOutcome.ALREADY_APPLIED,
                order_id=order.id,
                status=current,
                previous_status=current,
            )
        if current.is_terminal:
            logger.info(
                "Order %s is %s, ignoring transition to %s",
                order.id,
                current.value,
                new_status.value,
            )
            return ReconciliationResult(
                ReconciliationOutcome.NO_OP,
                order_id=order.id,
                status=current,
                previous_status=current,
            )

        if self._order_repo.compare_and_set_status(
            order.id, OrderStatus.PENDING, new_status
        ):
            logger.info("Order %s marked as %s", order.id, new_status.value)
            return ReconciliationResult(
                ReconciliationOutcome.APPLIED,
                order_id=order.id,
                status=new_status,
                previous_status=current,
            )

        self._log_lost_race(order.id, current, new_status)
        return None

    @staticmethod
    def _log_lost_race(order_id, expected: OrderStatus, new_status: OrderStatus):
        logger.warning(
            "Order %s changed concurrently (expected %s while setting %s), re-reading",
            order_id,
            expected.value,
            new_status.value,
        )

    def _contention_error(self, reference) -> StoreUnavailable:
        return StoreUnavailable(
            f"Order for {reference} kept changing after "
            f"{self._max_attempts} attempts"
        )
