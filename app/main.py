from fastapi import FastAPI

from app.shopgate.api import api_router
from app.shopgate.core.config import settings
from app.shopgate.core.errors import setup_exception_handlers
from app.shopgate.core.logging import configure_logging
from app.shopgate.middleware.observability import ObservabilityMiddleware, TraceIdMiddleware


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title=settings.APP_NAME,
        description="Shop-scoped access control, owner approvals and audit for mobile-phone shops.",
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        docs_url=f"{settings.API_PREFIX}/docs",
        redoc_url=None,
    )
    # Starlette runs the last-added middleware first: the trace id must exist before the request is timed.
    app.add_middleware(ObservabilityMiddleware)
    app.add_middleware(TraceIdMiddleware)
    setup_exception_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()
