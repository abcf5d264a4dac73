"""Orders service layer."""
from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
import logging
from typing import TYPE_CHECKING

from sqlalchemy import func, select

from order_service.core.exceptions import BadRequestException, NotFoundException
from order_service.features.orders.models import Order, Product

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from order_service.features.orders.schemas import OrderCreate
    from order_service.infra.database.uow import UnitOfWork

logger = logging.getLogger(__name__)

DEFAULT_PRODUCTS: tuple[tuple[str, Decimal], ...] = (
    ("Laptop", Decimal("1299.99")),
    ("Mouse", Decimal("29.99")),
    ("Keyboard", Decimal("79.99")),
    ("Monitor", Decimal("399.99")),
    ("USB Cable", Decimal("9.99")),
)


class OrderNotFoundError(NotFoundException):
    def __init__(self, order_id: int) -> None:
        super().__init__(
            detail=f"Order {order_id} not found",
            type="order-not-found",
            extra={"order_id": order_id},
        )


class ProductNotFoundError(BadRequestException):
    def __init__(self, product_ids: Sequence[int]) -> None:
        super().__init__(
            detail="One or more products not found",
            type="product-not-found",
            extra={"product_ids": list(product_ids)},
        )


class OrderService:
    """Service for placing and reading orders.

    Placing an order goes through a ``UnitOfWork`` so the
    ``OrderCreatedEvent`` lands in the outbox with the order itself.
    """

    async def create_order(self, uow: UnitOfWork, data: OrderCreate) -> Order:
        """Place a new order.

        Raises:
            ProductNotFoundError: If any requested product does not exist.
        """
        product_ids = {line.product_id for line in data.items}
        products = await self._load_products(uow.session, product_ids)

        missing = sorted(product_ids - products.keys())
        if missing:
            raise ProductNotFoundError(missing)

        order = Order.create(
            data.customer_name,
            str(data.customer_email),
            [(products[line.product_id], line.quantity) for line in data.items],
        )
        uow.add(order)
        await uow.commit()

        logger.info(
            "Order created",
            extra={
                "order_id": order.id,
                "total_amount": str(order.total_amount),
                "item_count": len(order.items),
            },
        )
        return order

    async def get_order(self, session: AsyncSession, order_id: int) -> Order:
        """Get an order by id.

        Raises:
            OrderNotFoundError: If the order does not exist.
        """
        order = await session.get(Order, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def list_orders(self, session: AsyncSession) -> Sequence[Order]:
        result = await session.execute(select(Order).order_by(Order.id.asc()))
        return result.scalars().all()

    async def _load_products(
        self, session: AsyncSession, product_ids: set[int]
    ) -> dict[int, Product]:
        result = await session.execute(select(Product).where(Product.id.in_(product_ids)))
        return {product.id: product for product in result.scalars().all()}


async def seed_products(session: AsyncSession) -> int:
    """Insert the default catalog when the products table is empty.

    Returns:
        Number of products inserted.
    """
    count = await session.scalar(select(func.count()).select_from(Product))
    if count:
        return 0

    session.add_all(Product(name=name, price=price) for name, price in DEFAULT_PRODUCTS)
    await session.commit()
    logger.info("Seeded default products", extra={"count": len(DEFAULT_PRODUCTS)})
    return len(DEFAULT_PRODUCTS)


__all__ = [
    "DEFAULT_PRODUCTS",
    "OrderNotFoundError",
    "OrderService",
    "ProductNotFoundError",
    "seed_products",
]
