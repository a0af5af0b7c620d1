"""
Client d'authentification (côté application).

Expose l'interface consommée par le magasin de session: connexion, inscription, déconnexion,
session persistée, abonnement aux changements d'état et récupération de mot de passe.
`LocalAuthClient` délègue au service `AuthBackend` du même processus et conserve le jeton de
session dans le stockage clé/valeur local.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

import structlog

from kyzmat.core.http_constants import SESSION_STORAGE_KEY
from kyzmat.domain.entities import AuthEvent, AuthSession, Identity
from kyzmat.domain.errors import AuthError
from kyzmat.infra.auth_backend import AuthBackend

log = structlog.get_logger(__name__)

AuthCallback = Callable[[AuthEvent, AuthSession | None], None]


class Subscription:
    """Abonnement aux changements d'état d'authentification."""

    def __init__(self, listeners: list[AuthCallback], callback: AuthCallback):
        self._listeners = listeners
        self.callback = callback

    def unsubscribe(self) -> None:
        if self.callback in self._listeners:
            self._listeners.remove(self.callback)


class AuthProvider(ABC):
    """Interface abstraite du collaborateur d'authentification."""

    @abstractmethod
    def sign_in_with_password(self, email: str, password: str) -> AuthSession: ...

    @abstractmethod
    def sign_up(self, email: str, password: str, metadata: dict[str, Any] | None = None) -> AuthSession: ...

    @abstractmethod
    def sign_out(self) -> None: ...

    @abstractmethod
    def get_session(self) -> AuthSession | None: ...

    @abstractmethod
    def on_auth_state_change(self, callback: AuthCallback) -> Subscription: ...

    @abstractmethod
    def reset_password_for_email(self, email: str, redirect_to: str) -> None: ...

    @abstractmethod
    def update_user(self, *, password: str) -> Identity: ...


class LocalAuthClient(AuthProvider):
    """Client d'authentification branché sur `AuthBackend`, session dans un magasin local."""

    def __init__(self, backend: AuthBackend, storage, redirect_to: str = "/auth?mode=reset"):
        self.backend = backend
        self.storage = storage
        self.redirect_to = redirect_to
        self._listeners: list[AuthCallback] = []

    def _emit(self, event: AuthEvent, session: AuthSession | None) -> None:
        log.debug("auth_state_change", auth_event=event)
        for callback in list(self._listeners):
            callback(event, session)

    def _persist(self, session: AuthSession) -> None:
        self.storage.set(SESSION_STORAGE_KEY, json.dumps({"access_token": session.access_token}))

    def on_auth_state_change(self, callback: AuthCallback) -> Subscription:
        self._listeners.append(callback)
        return Subscription(self._listeners, callback)

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        session = self.backend.sign_in_with_password(email, password)
        self._persist(session)
        self._emit("SIGNED_IN", session)
        return session

    def sign_up(self, email: str, password: str, metadata: dict[str, Any] | None = None) -> AuthSession:
        session = self.backend.sign_up(email, password, metadata)
        self._persist(session)
        self._emit("SIGNED_IN", session)
        return session

    def sign_out(self) -> None:
        self.storage.delete(SESSION_STORAGE_KEY)
        self._emit("SIGNED_OUT", None)

    def get_session(self) -> AuthSession | None:
        """Relit la session persistée; un jeton expiré ou corrompu est oublié."""
        raw = self.storage.get(SESSION_STORAGE_KEY)
        if not raw:
            return None
        try:
            token = json.loads(raw)["access_token"]
            identity = self.backend.get_user(token)
        except (ValueError, KeyError, TypeError, AuthError) as err:
            log.info("persisted_session_discarded", reason=str(err))
            self.storage.delete(SESSION_STORAGE_KEY)
            return None
        return AuthSession(access_token=token, user=identity)

    def reset_password_for_email(self, email: str, redirect_to: str | None = None) -> None:
        self.backend.reset_password_for_email(email, redirect_to or self.redirect_to)

    def exchange_recovery_token(self, recovery_token: str) -> AuthSession:
        """Ouvre une session de récupération à partir du lien reçu par email."""
        session = self.backend.verify_recovery(recovery_token)
        self._persist(session)
        self._emit("PASSWORD_RECOVERY", session)
        return session

    def update_user(self, *, password: str) -> Identity:
        session = self.get_session()
        if session is None:
            raise AuthError("not_authenticated", "no active session")
        identity = self.backend.update_password(session.user.id, password)
        self._emit("USER_UPDATED", session)
        return identity
