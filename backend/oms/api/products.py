"""
Products API Endpoints
Read-only stock snapshot
"""
from fastapi import APIRouter, Depends, Query

from oms.api.dependencies import get_workflow_service
from oms.services.order_workflow_service import OrderWorkflowService

router = APIRouter()


@router.get("/")
def get_products(
    low_stock: bool = Query(False, description="Only products at or below their minimum stock"),
    service: OrderWorkflowService = Depends(get_workflow_service)
):
    """
    Get all products with their current stock levels
    """
    products = service.list_products(low_stock_only=low_stock)

    return {
        "status": "success",
        "count": len(products),
        "data": [product.to_dict() for product in products]
    }
