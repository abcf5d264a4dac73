"""Order and product persistence models."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from order_service.core.database.base import Base, IntegerPKMixin, TimestampMixin
from order_service.core.events import AggregateRoot
from order_service.features.orders.events import OrderCreatedEvent

MONEY = Numeric(18, 2)
CENT = Decimal("0.01")


class Product(Base, IntegerPKMixin):
    """Catalog product that orders reference."""

    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    price: Mapped[Decimal] = mapped_column(MONEY, nullable=False)

    def __repr__(self) -> str:
        return f"Product(id={self.id}, name={self.name!r}, price={self.price})"


class Order(Base, IntegerPKMixin, TimestampMixin, AggregateRoot):
    """Order aggregate.

    Orders are built with ``Order.create``, which raises
    ``OrderCreatedEvent``. The id is assigned by the database on insert.
    """

    __tablename__ = "orders"

    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(320), nullable=False)
    order_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)

    items: Mapped[list[OrderItem]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.id",
    )

    @classmethod
    def create(
        cls,
        customer_name: str,
        customer_email: str,
        lines: Iterable[tuple[Product, int]],
    ) -> Order:
        """Build a new order from (product, quantity) lines.

        Each item keeps the product's current price; the total is the sum of
        price times quantity.
        """
        items = [
            OrderItem(product_id=product.id, quantity=quantity, price=product.price)
            for product, quantity in lines
        ]
        if not items:
            raise ValueError("An order needs at least one item")

        total = sum((item.price * item.quantity for item in items), Decimal("0"))
        order = cls(
            customer_name=customer_name,
            customer_email=customer_email,
            order_date=datetime.now(UTC),
            total_amount=total.quantize(CENT),
            items=items,
        )
        order._raise_event(
            OrderCreatedEvent(
                customer_name=order.customer_name,
                customer_email=order.customer_email,
                total_amount=order.total_amount,
                order_date=order.order_date,
            )
        )
        return order

    def __repr__(self) -> str:
        return (
            f"Order(id={self.id}, customer_email={self.customer_email!r}, "
            f"total_amount={self.total_amount})"
        )


class OrderItem(Base, IntegerPKMixin):
    """One product line of an order."""

    __tablename__ = "order_items"

    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(MONEY, nullable=False)

    order: Mapped[Order] = relationship(back_populates="items")


__all__ = ["Order", "OrderItem", "Product"]
