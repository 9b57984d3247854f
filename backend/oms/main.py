"""
Warehouse OMS - Backend API
Order placement and stock control for the warehouse
"""
import logging
import time
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables before settings are read
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(env_path)

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from oms.api import orders, products
from oms.api.dependencies import get_workflow_service
from oms.core.config import settings
from oms.core.exceptions import OrderError
from oms.services.order_workflow_service import OrderWorkflowService

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title=settings.API_TITLE,
    version=settings.API_VERSION,
    description=settings.API_DESCRIPTION
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


# ============================================================================
# Error responses
# ============================================================================

@app.exception_handler(OrderError)
async def order_error_handler(request: Request, exc: OrderError):
    """Render workflow errors as {"status": "error", "error": {kind, message}}"""
    return JSONResponse(
        status_code=exc.http_status,
        content={"status": "error", "error": exc.to_dict()}
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies and parameters are InvalidInput"""
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))

    return JSONResponse(
        status_code=400,
        content={
            "status": "error",
            "error": {"kind": "InvalidInput", "message": "; ".join(problems) or "Invalid request"}
        }
    )


# Include API routers
app.include_router(products.router, prefix="/api/v1/products", tags=["Products"])
app.include_router(orders.router, prefix="/api/v1/orders", tags=["Orders"])


@app.get("/")
def root():
    """Root endpoint - API status"""
    return {
        "message": settings.API_TITLE,
        "status": "online",
        "version": settings.API_VERSION,
        "storage": settings.STORAGE_BACKEND
    }


@app.get("/health")
def health(service: OrderWorkflowService = Depends(get_workflow_service)):
    """Health check endpoint - tests storage connectivity"""
    start_time = time.time()

    storage_status = "unknown"
    storage_latency_ms = None
    storage_error = None

    try:
        storage_latency_ms = service.backend.check()
        storage_status = "connected"
    except Exception as e:
        logger.warning(f"Health check failed: {e}")
        storage_status = "disconnected"
        storage_error = type(e).__name__

    total_latency_ms = round((time.time() - start_time) * 1000, 2)

    return {
        "status": "healthy" if storage_status == "connected" else "degraded",
        "service": "warehouse-oms",
        "version": settings.API_VERSION,
        "storage": {
            "backend": service.backend.name,
            "status": storage_status,
            "latency_ms": storage_latency_ms,
            "error": storage_error
        },
        "total_latency_ms": total_latency_ms
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("oms.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.API_DEBUG)
