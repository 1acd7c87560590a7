from fastapi import APIRouter

from app.shopgate.core.config import settings
from app.shopgate.routers.approvals import router as approvals_router
from app.shopgate.routers.audit import router as audit_router
from app.shopgate.routers.auth import router as auth_router
from app.shopgate.routers.health import router as health_router
from app.shopgate.routers.metrics import router as metrics_router
from app.shopgate.routers.permissions import router as permissions_router
from app.shopgate.routers.records import router as records_router
from app.shopgate.routers.shops import router as shops_router
from app.shopgate.routers.status import router as status_router

api_router = APIRouter(prefix=settings.API_PREFIX)
api_router.include_router(health_router, tags=["ops"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(shops_router, tags=["shops"])
api_router.include_router(permissions_router, tags=["permissions"])
api_router.include_router(status_router, tags=["status"])
api_router.include_router(records_router, tags=["records"])
api_router.include_router(approvals_router, tags=["approvals"])
api_router.include_router(audit_router, tags=["audit"])
if settings.METRICS_ENABLED:
    api_router.include_router(metrics_router, tags=["ops"])
