"""
Orders API Endpoints
Order placement, item changes and status updates

Routers stay thin: every stock-affecting call goes through
OrderWorkflowService, and OrderError subclasses are rendered by the
exception handler registered in oms.main.
"""
from fastapi import APIRouter, Depends, Query
from typing import Optional

from oms.api.dependencies import get_workflow_service
from oms.domain.order import OrderCreate, OrderLineCreate, OrderItemQuantityUpdate, OrderPatch
from oms.services.order_workflow_service import OrderWorkflowService

router = APIRouter()


@router.get("/")
def get_orders(
    status: Optional[str] = Query(None, description="Filter by status (pending, picked, packed, shipped)"),
    customer_id: Optional[int] = Query(None, description="Filter by customer"),
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    service: OrderWorkflowService = Depends(get_workflow_service)
):
    """
    Get orders with optional filters, newest first
    """
    orders, total = service.list_orders(
        status=status,
        customer_id=customer_id,
        limit=limit,
        offset=offset
    )

    return {
        "status": "success",
        "total": total,
        "limit": limit,
        "offset": offset,
        "count": len(orders),
        "data": [order.to_dict() for order in orders]
    }


@router.get("/{order_id}")
def get_order(order_id: int, service: OrderWorkflowService = Depends(get_workflow_service)):
    """Get one order with its items"""
    order = service.get_order(order_id)
    return {"status": "success", "data": order.to_dict()}


@router.post("/", status_code=201)
def create_order(payload: OrderCreate, service: OrderWorkflowService = Depends(get_workflow_service)):
    """
    Create an order and reserve stock for all of its items

    Body: {"customerId": 1, "items": [{"productId": 1, "quantity": 3}]}
    """
    order = service.create_order(payload.customer_id, payload.items)
    return {"status": "success", "data": order.to_dict()}


@router.patch("/{order_id}")
def update_order(
    order_id: int,
    patch: OrderPatch,
    service: OrderWorkflowService = Depends(get_workflow_service)
):
    """
    Advance the order status and/or assign picker/packer

    Body: {"status": "picked", "pickerId": 3}
    """
    order = service.update_order(order_id, patch)
    return {"status": "success", "data": order.to_dict()}


@router.post("/{order_id}/items", status_code=201)
def add_order_item(
    order_id: int,
    payload: OrderLineCreate,
    service: OrderWorkflowService = Depends(get_workflow_service)
):
    """Add a line to a pending order"""
    item = service.add_item(order_id, payload.product_id, payload.quantity)
    return {"status": "success", "data": item.to_dict()}


@router.patch("/{order_id}/items/{item_id}")
def update_order_item(
    order_id: int,
    item_id: int,
    payload: OrderItemQuantityUpdate,
    service: OrderWorkflowService = Depends(get_workflow_service)
):
    """Change the quantity of a line in a pending order"""
    item = service.update_item_quantity(order_id, item_id, payload.quantity)
    return {"status": "success", "data": item.to_dict()}


@router.delete("/{order_id}/items/{item_id}")
def delete_order_item(
    order_id: int,
    item_id: int,
    service: OrderWorkflowService = Depends(get_workflow_service)
):
    """Remove a line from a pending order and return its stock"""
    item = service.remove_item(order_id, item_id)
    return {"status": "success", "data": item.to_dict()}
