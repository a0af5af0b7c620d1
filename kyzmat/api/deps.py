"""Dépendances partagées pour les routes de l'API.

But du module
-------------
- Donner aux routes l'accès au conteneur (`get_container`, surchargeable en test).
- Ouvrir, pour chaque requête, un magasin de session alimenté par le jeton `Bearer` reçu:
  le client d'authentification travaille alors sur un stockage local propre à la requête.
- Exposer l'identité, le profil, les contrôles de rôle, la langue et le notificateur.
"""

from __future__ import annotations

import json
from collections.abc import Iterator

from fastapi import Depends, Header, Query

from kyzmat.core.container import Container, container
from kyzmat.core.http_constants import SESSION_STORAGE_KEY
from kyzmat.domain.authz import can_access
from kyzmat.domain.entities import Identity, Profile, Role
from kyzmat.domain.errors import AuthError, PermissionDenied
from kyzmat.domain.localization import Language, parse_language
from kyzmat.domain.notifications import Notifier
from kyzmat.domain.session import SessionStore
from kyzmat.infra.auth_client import LocalAuthClient
from kyzmat.infra.kv_store import InMemoryKeyValueStore


def get_container() -> Container:
    return container


def get_bearer_token(authorization: str | None = Header(None)) -> str | None:
    """Jeton du schéma `Bearer`, ou None."""
    if not authorization or not authorization.lower().startswith("bearer "):
        return None
    return authorization.split(" ", 1)[1].strip() or None


def open_session(c: Container, token: str | None = None) -> SessionStore:
    """Magasin de session initialisé à partir d'un jeton d'accès (éventuellement absent)."""
    storage = InMemoryKeyValueStore()
    if token:
        storage.set(SESSION_STORAGE_KEY, json.dumps({"access_token": token}))
    client = LocalAuthClient(c.auth_backend, storage, c.settings.PASSWORD_RESET_REDIRECT)
    store = SessionStore(client, c.profile_repo)
    store.initialize()
    return store


def get_session_store(
    c: Container = Depends(get_container), token: str | None = Depends(get_bearer_token)
) -> Iterator[SessionStore]:
    store = open_session(c, token)
    try:
        yield store
    finally:
        store.teardown()


def get_current_identity(
    store: SessionStore = Depends(get_session_store), token: str | None = Depends(get_bearer_token)
) -> Identity:
    """Identité authentifiée; 401 sinon."""
    if store.identity is None:
        if token:
            raise AuthError("invalid_token", "invalid or expired token")
        raise AuthError("not_authenticated", "authentication required")
    return store.identity


def get_current_profile(
    identity: Identity = Depends(get_current_identity),
    store: SessionStore = Depends(get_session_store),
) -> Profile | None:
    return store.profile


def require_roles(*roles: Role):
    """Dépendance exigeant une identité dont le rôle figure dans `roles`."""
    required = frozenset(roles)

    def _check(
        identity: Identity = Depends(get_current_identity),
        profile: Profile | None = Depends(get_current_profile),
    ) -> Profile:
        if not can_access(identity, profile, required):
            raise PermissionDenied("insufficient_role", "insufficient rights")
        return profile

    return _check


def get_language(
    lang: str | None = Query(None),
    accept_language: str | None = Header(None),
    c: Container = Depends(get_container),
) -> Language:
    """Langue de la requête: `?lang=`, sinon `Accept-Language`, sinon la langue par défaut."""
    if lang:
        return parse_language(lang, c.default_language)
    return parse_language(accept_language, c.default_language)


def get_notifier(
    c: Container = Depends(get_container), language: Language = Depends(get_language)
) -> Notifier:
    return Notifier(translator=c.translator, language=language)


def get_draft_store(
    c: Container = Depends(get_container), identity: Identity = Depends(get_current_identity)
):
    """Stockage des brouillons de l'utilisateur courant."""
    return c.kv.namespaced(f"user:{identity.id}")
