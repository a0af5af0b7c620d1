"""
Endpoint de santé pour vérifier la disponibilité de l'API et de ses stockages.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from kyzmat.api.deps import get_container
from kyzmat.core.container import Container

router = APIRouter(tags=["health"])


@router.get("/health")
def health(c: Container = Depends(get_container)):
    """Vérifie la base relationnelle et indique le backend clé/valeur utilisé."""
    try:
        with c.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:
        database = "unavailable"
    return {
        "status": "ok" if database == "ok" else "degraded",
        "database": database,
        "storage": c.storage_backend,
        "redis_url": bool(c.settings.REDIS_URL),
    }
