"""
Prometheus metrics endpoint.

Public, like any Prometheus scrape target; it exposes HTTP and service
timings plus booking and credit counters, never business records.
"""

from fastapi import APIRouter, Response

from ..core.constants import METRICS_PATH
from ..monitoring.prometheus_metrics import prometheus_metrics

router = APIRouter()


@router.get(METRICS_PATH, include_in_schema=False, response_class=Response, response_model=None)
async def get_prometheus_metrics() -> Response:
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
        headers={
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "Pragma": "no-cache",
            "Expires": "0",
        },
    )
