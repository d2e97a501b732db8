"""Order domain model."""
from decimal import Decimal
from sqlalchemy import Uuid
from src.extensions import db
from src.models.base import BaseModel
from src.models.enums import OrderStatus


class Order(BaseModel):
    """
    Customer purchase attempt.

    Created as PENDING by the checkout flow. The payment webhook moves it
    to PAID, FAILED or EXPIRED through compare-and-set updates only.
    """

    __tablename__ = "orders"

    user_id = db.Column(
        Uuid(as_uuid=True),
        db.ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    status = db.Column(
        db.Enum(
            OrderStatus,
            name="order_status",
            native_enum=False,
            length=16,
            values_callable=lambda statuses: [s.value for s in statuses],
            validate_strings=True,
        ),
        nullable=False,
        default=OrderStatus.PENDING,
        index=True,
    )
    payment_reference = db.Column(db.String(255), nullable=True, index=True)
    total_price = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"))

    __table_args__ = (
        db.CheckConstraint("total_price >= 0", name="ck_orders_total_price_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, status={self.status.value})>"
