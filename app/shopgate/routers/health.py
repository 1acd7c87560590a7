from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.shopgate.core.config import settings
from app.shopgate.core.error_catalog import ErrorCatalog
from app.shopgate.core.errors import error_response
from app.shopgate.db.session import get_db

router = APIRouter()


def _trace_id(request: Request) -> str:
    return getattr(request.state, "trace_id", "")


@router.get("/health", summary="Liveness")
async def health(request: Request):
    return {"status": "ok", "service": settings.APP_NAME, "trace_id": _trace_id(request)}


@router.get("/ready", summary="Readiness (database reachable)")
def ready(request: Request, db=Depends(get_db)):
    try:
        db.execute(text("SELECT 1")).scalar_one()
    except SQLAlchemyError as exc:
        unavailable = ErrorCatalog.DB_UNAVAILABLE
        return error_response(
            unavailable.code,
            unavailable.message,
            {"error": exc.__class__.__name__},
            _trace_id(request),
            unavailable.status_code,
        )
    return {"status": "ready", "database": "ok", "trace_id": _trace_id(request)}
