from fastapi import APIRouter, Response

from app.shopgate.core.metrics import metrics

router = APIRouter()


@router.get("/metrics", include_in_schema=False)
def prometheus_scrape() -> Response:
    """Prometheus text exposition; mounted only when METRICS_ENABLED is set."""
    snapshot = metrics.render()
    return Response(snapshot.content, media_type=snapshot.content_type)
