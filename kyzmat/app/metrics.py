"""
Métriques Prometheus pour l'application.

Ce module définit les métriques Prometheus de la place de marché (requêtes HTTP, événements
d'authentification, opérations de catalogue) et expose `/metrics`.
"""

import time

from fastapi import APIRouter, Request
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

metrics_router = APIRouter()

REQUEST_COUNT = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "route", "status"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds", "Latency of HTTP requests", ["route"]
)

AUTH_EVENTS = Counter(
    "auth_events_total",
    "Authentication operations by outcome",
    ["operation", "outcome"],
)
CATALOG_MUTATIONS = Counter(
    "catalog_mutations_total",
    "Catalog item mutations",
    ["kind", "operation"],
)
CATALOG_LOAD_ERRORS = Counter(
    "catalog_load_errors_total",
    "Catalog collection loads that fell back to an empty list",
    ["kind"],
)
IMAGE_UPLOADS = Counter(
    "image_uploads_total",
    "Service image uploads by outcome",
    ["outcome"],
)


@metrics_router.get("/metrics")
def metrics():
    """
    Expose les métriques Prometheus au format texte.

    Returns:
        Response: Réponse HTTP contenant les métriques au format Prometheus.
    """
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    Middleware Prometheus pour mesurer les métriques HTTP.

    Le label `route` utilise le gabarit de la route (ex: `/catalog/{kind}`) pour borner la
    cardinalité.
    """

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response: Response = await call_next(request)
        route_obj = request.scope.get("route")
        route = getattr(route_obj, "path", None) or "unmatched"
        REQUEST_COUNT.labels(request.method, route, str(response.status_code)).inc()
        REQUEST_LATENCY.labels(route).observe(time.perf_counter() - start)
        return response
