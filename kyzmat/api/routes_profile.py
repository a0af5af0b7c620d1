"""
Routes du profil de l'utilisateur connecté.

`GET /profile` et `PATCH /profile` (champs en libre-service seulement: le rôle ne se modifie
jamais par ce chemin), et `GET /profile/services`: les fiches de l'utilisateur, tous types
confondus, pour le panneau "mes services" des partenaires.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends

from kyzmat.api.deps import (
    get_container,
    get_current_identity,
    get_language,
    get_notifier,
    get_session_store,
    require_roles,
)
from kyzmat.api.schemas import LanguagePayload, MeResponse, notifications_out
from kyzmat.core.container import Container
from kyzmat.domain.authz import PARTNER_ROLES
from kyzmat.domain.entities import CatalogKind, Identity
from kyzmat.domain.localization import Language, LanguagePreference
from kyzmat.domain.notifications import Notifier
from kyzmat.domain.session import SessionStore

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=MeResponse)
def read_profile(
    identity: Identity = Depends(get_current_identity),
    store: SessionStore = Depends(get_session_store),
):
    return MeResponse(user=identity, profile=store.profile)


@router.patch("", response_model=MeResponse)
def patch_profile(
    partial: dict[str, Any] = Body(...),
    identity: Identity = Depends(get_current_identity),
    store: SessionStore = Depends(get_session_store),
):
    """Met à jour `full_name`, `phone`, `avatar_url`; tout autre champ est refusé (422)."""
    profile = store.update_profile(partial)
    return MeResponse(user=identity, profile=profile)


@router.get("/services")
def my_services(
    identity: Identity = Depends(get_current_identity),
    _profile=Depends(require_roles(*PARTNER_ROLES)),
    language: Language = Depends(get_language),
    notifier: Notifier = Depends(get_notifier),
    c: Container = Depends(get_container),
):
    """Fiches de l'utilisateur courant, regroupées par type et localisées."""
    out: dict[str, list[dict[str, Any]]] = {}
    for kind in CatalogKind:
        rows = c.catalog.list_owned(kind, identity.id, notifier)
        out[kind.value] = [c.catalog.localized(kind, r, language) for r in rows]
    return {
        "language": language.value,
        "items": out,
        "notifications": notifications_out(notifier.history),
    }


@router.get("/language")
def read_language(
    identity: Identity = Depends(get_current_identity), c: Container = Depends(get_container)
):
    """Langue d'interface mémorisée pour l'utilisateur (langue par défaut sinon)."""
    pref = LanguagePreference(c.kv.namespaced(f"user:{identity.id}"), c.default_language)
    return {"language": pref.get().value}


@router.put("/language")
def save_language(
    body: LanguagePayload,
    identity: Identity = Depends(get_current_identity),
    c: Container = Depends(get_container),
):
    pref = LanguagePreference(c.kv.namespaced(f"user:{identity.id}"), c.default_language)
    return {"language": pref.set(body.language).value}
