"""
FastAPI dependencies shared by the routers
"""
import threading
from typing import Optional

from oms.repositories import get_backend
from oms.services.order_workflow_service import OrderWorkflowService

_service: Optional[OrderWorkflowService] = None
_service_lock = threading.Lock()


def get_workflow_service() -> OrderWorkflowService:
    """
    FastAPI dependency returning the process-wide workflow service

    Usage:
        @router.post("/")
        def create(service: OrderWorkflowService = Depends(get_workflow_service)):
            ...
    """
    global _service
    with _service_lock:
        if _service is None:
            _service = OrderWorkflowService(get_backend())
        return _service


def reset_workflow_service() -> None:
    """Drop the cached service so the next request rebuilds it from settings"""
    global _service
    with _service_lock:
        _service = None
