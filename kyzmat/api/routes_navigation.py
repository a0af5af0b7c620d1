"""
Garde de navigation exposé en HTTP.

`GET /navigate?path=...` indique ce que l'interface doit faire pour un chemin donné, compte
tenu du jeton `Bearer` éventuel: afficher la page, rediriger (vers `/auth` en conservant le
chemin demandé, ou vers l'accueil si le rôle est insuffisant), ou afficher la page 404.
"""

from fastapi import APIRouter, Depends, Query

from kyzmat.api.deps import get_container, get_language, get_session_store
from kyzmat.api.schemas import NavigationResponse
from kyzmat.core.container import Container
from kyzmat.domain.authz import guard_route
from kyzmat.domain.localization import Language
from kyzmat.domain.session import SessionStore

router = APIRouter(tags=["navigation"])


@router.get("/navigate", response_model=NavigationResponse)
def navigate(
    path: str = Query(..., min_length=1),
    store: SessionStore = Depends(get_session_store),
    language: Language = Depends(get_language),
    c: Container = Depends(get_container),
):
    decision = guard_route(store.snapshot(), path)
    return NavigationResponse(
        path=path,
        action=decision.action,
        location=decision.location,
        from_path=decision.from_path,
        reason=decision.reason,
        message=c.translator.t(decision.reason, language) if decision.reason else None,
    )
