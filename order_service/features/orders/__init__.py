"""Orders feature: the order aggregate, its events and HTTP endpoints."""

from .events import ORDER_EVENTS, OrderCreatedEvent
from .models import Order, OrderItem, Product

__all__ = ["ORDER_EVENTS", "Order", "OrderCreatedEvent", "OrderItem", "Product"]
