from fastapi import APIRouter

from app.estore.core.config import settings
from app.estore.routers.health import router as health_router
from app.estore.routers.metrics import router as metrics_router
from app.estore.routers.opname import router as opname_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(opname_router, tags=["opname"])
if settings.METRICS_ENABLED:
    api_router.include_router(metrics_router, tags=["ops"])
