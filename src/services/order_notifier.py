"""Best-effort customer notifications for order status changes."""
import logging
from decimal import Decimal, InvalidOperation
from typing import Optional, Union
from uuid import UUID

from src.errors import NotificationFailed, StoreUnavailable
from src.models.enums import OrderStatus
from src.repositories.order_repository import OrderRepository
from src.services.email_service import EmailService

logger = logging.getLogger(__name__)

ORDER_STATUS_TEMPLATE = "order_status"

STATUS_MESSAGES = {
    OrderStatus.PAID: {
        "subject": "✅ Tu pago ha sido confirmado",
        "heading": "¡Pago confirmado!",
        "body": (
            "Tu pedido ha sido procesado exitosamente. "
            "Pronto recibirás más información sobre el envío."
        ),
        "color": "#22c55e",
    },
    OrderStatus.FAILED: {
        "subject": "❌ Tu pago no pudo ser procesado",
        "heading": "Pago fallido",
        "body": (
            "Lamentablemente no pudimos procesar tu pago. "
            "Por favor intenta de nuevo o usa otro método de pago."
        ),
        "color": "#ef4444",
    },
    OrderStatus.EXPIRED: {
        "subject": "⏰ Tu sesión de pago ha expirado",
        "heading": "Sesión expirada",
        "body": (
            "La sesión de pago ha expirado. "
            "Puedes volver a intentar realizando un nuevo pedido."
        ),
        "color": "#f59e0b",
    },
}


class OrderNotifier:
    """Sends order status emails without ever failing the caller.

    Every failure (profile lookup, rendering, delivery) is logged and
    swallowed; the order state and the webhook response never depend on it.
    """

    def __init__(
        self,
        order_repository: OrderRepository,
        email_service: EmailService,
        currency: str = "MXN",
    ):
        self._order_repo = order_repository
        self._email_service = email_service
        self._currency = currency

    def notify_status_change(
        self, order_id: Union[UUID, str], status: OrderStatus
    ) -> bool:
        """
        Email the order owner about a status change.

        Returns:
            True if an email was delivered.
        """
        if not self._email_service.is_configured:
            logger.info("Email API key not configured, skipping email for order %s", order_id)
            return False

        try:
            order, email = self._order_repo.get_order_with_user(order_id)
        except StoreUnavailable as e:
            logger.warning("Could not load recipient for order %s: %s", order_id, e)
            return False

        if not order or not email:
            logger.info("No recipient address for order %s, skipping email", order_id)
            return False

        return self.send_status_email(email, status, order.id, order.total_price)

    def send_status_email(
        self,
        to_email: str,
        status: OrderStatus,
        order_id: Union[UUID, str],
        total_price: Optional[Decimal] = None,
    ) -> bool:
        """
        Render and send the status email, one delivery attempt.

        Returns:
            True if the email was delivered.
        """
        info = STATUS_MESSAGES.get(status)
        if not info:
            logger.info("No email template for status: %s", status.value)
            return False

        try:
            self._deliver(to_email, info, order_id, total_price)
        except NotificationFailed as e:
            logger.warning("Notification for order %s not sent: %s", order_id, e)
            return False
        except Exception:
            logger.exception("Unexpected error notifying order %s", order_id)
            return False

        logger.info("Email sent to %s for order %s (%s)", to_email, order_id, status.value)
        return True

    def _deliver(self, to_email, info, order_id, total_price) -> None:
        html = self._email_service.render_template(
            ORDER_STATUS_TEMPLATE,
            {
                "heading": info["heading"],
                "body": info["body"],
                "color": info["color"],
                "total_price": _format_price(total_price),
                "currency": self._currency,
                "order_id": str(order_id),
            },
        )
        result = self._email_service.send_email(
            to_email=to_email, subject=info["subject"], body_html=html
        )
        if not result.success:
            raise NotificationFailed(result.error or "delivery failed")


def _format_price(total_price) -> Optional[str]:
    if total_price is None:
        return None
    try:
        return f"{Decimal(str(total_price)):.2f}"
    except InvalidOperation:
        return None
