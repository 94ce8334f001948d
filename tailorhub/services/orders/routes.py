"""HTTP surface for order creation, queries and status updates."""

from fastapi import APIRouter, Depends

from tailorhub.bootstrap import Services
from tailorhub.services.api.deps import get_services
from tailorhub.services.orders.schemas import (
    OrderCreateRequest,
    OrderHistoryEntry,
    OrderResponse,
    OrderStatusRequest,
    OrderStatusResponse,
    OrderUpdateRequest,
)

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderResponse)
def create_order(req: OrderCreateRequest, services: Services = Depends(get_services)):
    """Create an order in `PendingPayment`."""

    order = services.order_service.create_order(req.customer_id, req.service, req.amount, req.address)
    return OrderResponse.model_validate(order)


@router.get("", response_model=list[OrderResponse])
def list_orders(services: Services = Depends(get_services)):
    return [OrderResponse.model_validate(o) for o in services.order_service.list_orders()]


@router.get("/customer/{customer_id}", response_model=list[OrderResponse])
def list_customer_orders(customer_id: str, services: Services = Depends(get_services)):
    return [OrderResponse.model_validate(o) for o in services.order_service.list_customer_orders(customer_id)]


@router.post("/update", response_model=OrderStatusResponse)
def update_order_legacy(req: OrderUpdateRequest, services: Services = Depends(get_services)):
    """Status update naming the order in the body."""

    order = services.order_service.update_status(req.order_id, req.status)
    return OrderStatusResponse(id=order.id, status=order.status)


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: str, services: Services = Depends(get_services)):
    return OrderResponse.model_validate(services.order_service.get_order(order_id))


@router.get("/{order_id}/history", response_model=list[OrderHistoryEntry])
def order_history(order_id: str, services: Services = Depends(get_services)):
    return [OrderHistoryEntry.model_validate(h) for h in services.order_service.order_history(order_id)]


@router.put("/{order_id}", response_model=OrderStatusResponse)
def update_order(order_id: str, req: OrderStatusRequest, services: Services = Depends(get_services)):
    """Move the order along the status graph; 400 `InvalidTransition` otherwise."""

    order = services.order_service.update_status(order_id, req.status)
    return OrderStatusResponse(id=order.id, status=order.status)
