"""API request/response schemas for order endpoints."""

from datetime import datetime

from pydantic import Field

from tailorhub.common.schemas import CamelModel


class OrderCreateRequest(CamelModel):
    """Order creation payload accepted from customers."""

    customer_id: str = Field(min_length=1)
    service: str = Field(min_length=1)
    amount: int = Field(gt=0, strict=True)
    address: str = Field(min_length=1)


class OrderStatusRequest(CamelModel):
    status: str = Field(min_length=1)


class OrderUpdateRequest(CamelModel):
    """Body of `POST /orders/update`, which names the order in the payload."""

    order_id: str = Field(min_length=1)
    status: str = Field(min_length=1)


class OrderResponse(CamelModel):
    id: str
    customer_id: str
    service: str
    amount: int
    address: str
    status: str
    payment_id: str | None = None
    created_at: datetime


class OrderStatusResponse(CamelModel):
    id: str
    status: str


class OrderHistoryEntry(CamelModel):
    from_status: str | None
    to_status: str
    reason: str
    created_at: datetime
