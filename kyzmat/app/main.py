"""
Application principale FastAPI.

Ce module assemble tous les composants de la place de marché : middlewares, gestionnaires
d'erreurs, routes et métriques.

Responsabilités du module:
- Initialiser le logging structuré
- Construire l'application FastAPI avec son titre/debug
- Ajouter les middlewares (request id, timing, métriques, CORS)
- Monter les routers (santé, auth, profil, catalogue, services, admin, navigation, stockage)
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from kyzmat.api.routes_admin import router as admin_router
from kyzmat.api.routes_auth import router as auth_router
from kyzmat.api.routes_catalog import router as catalog_router
from kyzmat.api.routes_health import router as health_router
from kyzmat.api.routes_navigation import router as navigation_router
from kyzmat.api.routes_profile import router as profile_router
from kyzmat.api.routes_services import router as services_router
from kyzmat.api.routes_storage import router as storage_router
from kyzmat.apigw.errors import register_error_handlers
from kyzmat.app.metrics import PrometheusMiddleware, metrics_router
from kyzmat.core.container import container
from kyzmat.core.logging import setup_logging
from kyzmat.middlewares.request_id import RequestIDMiddleware
from kyzmat.middlewares.timing import TimingMiddleware


def create_app() -> FastAPI:
    """
    Construit et retourne l'application FastAPI prête à l'usage.

    Le dernier middleware ajouté est le plus externe: l'identifiant de requête est donc lié au
    contexte de logs avant la mesure de durée et les métriques.
    """
    settings = container.settings
    setup_logging(debug=settings.APP_DEBUG)
    app = FastAPI(title=settings.APP_NAME, debug=settings.APP_DEBUG)
    if settings.CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[str(o).rstrip("/") for o in settings.CORS_ORIGINS],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    app.add_middleware(PrometheusMiddleware)
    app.add_middleware(TimingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(profile_router)
    app.include_router(catalog_router)
    app.include_router(services_router)
    app.include_router(admin_router)
    app.include_router(navigation_router)
    app.include_router(storage_router)
    app.include_router(metrics_router)
    return app


app = create_app()
