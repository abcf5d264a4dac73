"""Pydantic schemas for the Orders API.

Request and response bodies use camelCase keys.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class OrderItemCreate(CamelModel):
    """One requested order line."""

    product_id: int = Field(..., ge=1, description="Product id")
    quantity: int = Field(..., ge=1, le=10_000, description="Quantity ordered")


class OrderCreate(CamelModel):
    """Schema for placing a new order.

    Example:
        ```json
        {
            "customerName": "Ada Lovelace",
            "customerEmail": "ada@example.com",
            "items": [{"productId": 1, "quantity": 2}]
        }
        ```
    """

    customer_name: str = Field(..., min_length=1, max_length=200)
    customer_email: EmailStr
    items: list[OrderItemCreate] = Field(..., min_length=1)


class OrderItemResponse(CamelModel):
    id: int
    product_id: int
    quantity: int
    price: Decimal


class OrderResponse(CamelModel):
    """Schema for order responses."""

    id: int
    customer_name: str
    customer_email: str
    order_date: datetime
    total_amount: Decimal
    items: list[OrderItemResponse]


class OrderListResponse(CamelModel):
    """List of orders."""

    items: list[OrderResponse]
    total: int


__all__ = [
    "OrderCreate",
    "OrderItemCreate",
    "OrderItemResponse",
    "OrderListResponse",
    "OrderResponse",
]
