"""
Routes d'authentification.

Inscription, connexion, déconnexion, récupération et changement de mot de passe. Chaque route
passe par le magasin de session de la requête; les échecs remontent en `AuthError` et sont mis
en forme par les gestionnaires d'erreurs de l'application.
"""

import structlog
from fastapi import APIRouter, Depends

from kyzmat.api.deps import get_container, get_current_identity, get_session_store, open_session
from kyzmat.api.schemas import (
    LoginPayload,
    MeResponse,
    ResetRequestPayload,
    SessionResponse,
    SignupPayload,
    UpdatePasswordPayload,
)
from kyzmat.core.container import Container
from kyzmat.core.http_constants import HTTP_CREATED
from kyzmat.domain.entities import Identity
from kyzmat.domain.errors import AuthError
from kyzmat.domain.session import SessionStore

router = APIRouter(prefix="/auth", tags=["auth"])
log = structlog.get_logger(__name__)


def _session_response(store: SessionStore) -> SessionResponse:
    session = store.auth.get_session()
    if session is None:
        raise AuthError("not_authenticated", "no active session")
    return SessionResponse(
        access_token=session.access_token, user=session.user, profile=store.profile
    )


@router.post("/signup", response_model=SessionResponse, status_code=HTTP_CREATED)
def signup(p: SignupPayload, c: Container = Depends(get_container)):
    """Crée un compte (profil `user`) et ouvre sa session."""
    store = open_session(c)
    try:
        store.sign_up(str(p.email), p.password, p.full_name)
        return _session_response(store)
    finally:
        store.teardown()


@router.post("/login", response_model=SessionResponse)
def login(p: LoginPayload, c: Container = Depends(get_container)):
    """Authentifie un utilisateur et retourne un jeton d'accès."""
    store = open_session(c)
    try:
        store.sign_in(str(p.email), p.password)
        return _session_response(store)
    finally:
        store.teardown()


@router.post("/logout")
def logout(store: SessionStore = Depends(get_session_store)):
    """Ferme la session; les jetons JWT restent valides jusqu'à leur expiration."""
    store.sign_out()
    return {"signed_in": False}


@router.post("/reset-password")
def request_reset(p: ResetRequestPayload, c: Container = Depends(get_container)):
    """Demande un lien de récupération; la réponse ne révèle pas si le compte existe."""
    store = open_session(c)
    try:
        store.request_password_reset(str(p.email))
    finally:
        store.teardown()
    return {"sent": True}


@router.post("/update-password", response_model=MeResponse)
def update_password(
    p: UpdatePasswordPayload, store: SessionStore = Depends(get_session_store)
):
    """Change le mot de passe de la session courante ou d'une session de récupération."""
    if p.recovery_token:
        store.auth.exchange_recovery_token(p.recovery_token)
    store.reset_password(p.password)
    if store.identity is None:
        raise AuthError("not_authenticated", "no active session")
    return MeResponse(user=store.identity, profile=store.profile)


@router.get("/me", response_model=MeResponse)
def me(
    identity: Identity = Depends(get_current_identity),
    store: SessionStore = Depends(get_session_store),
):
    return MeResponse(user=identity, profile=store.profile)
