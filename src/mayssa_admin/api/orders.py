from typing import Optional

from fastapi import APIRouter, Depends, Response, status

from ..dependencies import get_orders, pagination_params
from ..models import OrderStatus
from ..orders import OrderManager
from ..schemas import AdvanceRequest, OffsiteOrderCreate, OrderCreate, OrderPatch, OrderRead

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
def place_order(payload: OrderCreate, orders: OrderManager = Depends(get_orders)):
    return orders.place(payload)


@router.post("/offsite", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
def record_offsite_order(payload: OffsiteOrderCreate, orders: OrderManager = Depends(get_orders)):
    return orders.record_offsite(payload)


@router.get("", response_model=list[OrderRead])
def list_orders(
    status_filter: Optional[OrderStatus] = None,
    pagination: tuple[int, int] = Depends(pagination_params),
    orders: OrderManager = Depends(get_orders),
):
    limit, offset = pagination
    return orders.list_orders(status_filter, limit=limit, offset=offset)


@router.get("/{order_id}", response_model=OrderRead)
def get_order(order_id: str, orders: OrderManager = Depends(get_orders)):
    return orders.get(order_id)


@router.patch("/{order_id}", response_model=OrderRead)
def edit_order(order_id: str, payload: OrderPatch, orders: OrderManager = Depends(get_orders)):
    return orders.edit(order_id, payload)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_order(order_id: str, orders: OrderManager = Depends(get_orders)) -> Response:
    orders.delete(order_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{order_id}/accept", response_model=OrderRead)
def accept_order(order_id: str, orders: OrderManager = Depends(get_orders)):
    return orders.accept(order_id)


@router.post("/{order_id}/reject", response_model=OrderRead)
def reject_order(order_id: str, orders: OrderManager = Depends(get_orders)):
    return orders.reject(order_id)


@router.post("/{order_id}/reopen", response_model=OrderRead)
def reopen_order(order_id: str, orders: OrderManager = Depends(get_orders)):
    return orders.reopen(order_id)


@router.post("/{order_id}/advance", response_model=OrderRead)
def advance_order(order_id: str, payload: AdvanceRequest, orders: OrderManager = Depends(get_orders)):
    return orders.advance(order_id, payload.status)
