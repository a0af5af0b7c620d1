"""
Magasin de session: qui est connecté, et avec quel rôle.

Source unique de vérité pour l'identité courante et son profil. Le magasin s'abonne aux
changements d'état du collaborateur d'authentification avant de lire la session persistée, ce
qui garantit qu'aucune notification n'est perdue pendant la vérification initiale.

Cycle de vie: `initialize()` -> opérations -> `teardown()`. Les consommateurs reçoivent les
changements via `subscribe()` et ne doivent pas décider d'une autorisation tant que `loading`
est vrai.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import structlog
from pydantic import ValidationError

from kyzmat.domain.authz import SessionState
from kyzmat.domain.entities import AuthEvent, AuthSession, Identity, Profile, ProfileUpdate
from kyzmat.domain.errors import AuthError, DomainError

log = structlog.get_logger(__name__)

SessionListener = Callable[[SessionState], None]


class SessionStore:
    """État d'identité partagé, muté uniquement par ses propres opérations et les événements."""

    def __init__(self, auth, profiles):
        """Initialise le magasin.

        Paramètres:
        - auth: collaborateur d'authentification (`AuthProvider`).
        - profiles: dépôt de profils (`get`, `update`).
        """
        self.auth = auth
        self.profiles = profiles
        self.identity: Identity | None = None
        self.profile: Profile | None = None
        self.loading = True
        self._subscription = None
        self._listeners: list[SessionListener] = []

    # -- cycle de vie -------------------------------------------------------

    def initialize(self) -> SessionState:
        """Abonnement aux événements puis vérification de la session persistée."""
        if self._subscription is None:
            self._subscription = self.auth.on_auth_state_change(self._on_auth_event)
        self.loading = True
        session = self.auth.get_session()
        if session is not None:
            self._set(session.user, self._fetch_profile(session.user.id))
        self.loading = False
        self._publish()
        return self.snapshot()

    def teardown(self) -> None:
        """Résilie l'abonnement aux événements d'authentification."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._listeners.clear()

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Enregistre un consommateur; retourne la fonction de désabonnement."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def snapshot(self) -> SessionState:
        return SessionState(identity=self.identity, profile=self.profile, loading=self.loading)

    # -- état interne -------------------------------------------------------

    def _set(self, identity: Identity | None, profile: Profile | None) -> None:
        # un profil n'existe jamais sans identité
        self.identity = identity
        self.profile = profile if identity is not None else None

    def _publish(self) -> None:
        state = self.snapshot()
        for listener in list(self._listeners):
            listener(state)

    def _fetch_profile(self, user_id: str) -> Profile | None:
        try:
            return self.profiles.get(user_id)
        except DomainError as err:
            log.error("profile_fetch_failed", user_id=user_id, cause=err.cause)
            if self.profile is not None and self.profile.id == user_id:
                return self.profile
            return None

    def _on_auth_event(self, event: AuthEvent, session: AuthSession | None) -> None:
        if event == "SIGNED_OUT" or session is None:
            self._set(None, None)
        else:
            self._set(session.user, self._fetch_profile(session.user.id))
        log.debug("session_changed", auth_event=event, signed_in=self.identity is not None)
        self._publish()

    def refresh_profile(self) -> Profile | None:
        """Relit le profil de l'identité courante."""
        if self.identity is None:
            return None
        self.profile = self._fetch_profile(self.identity.id)
        self._publish()
        return self.profile

    # -- opérations déléguées -----------------------------------------------

    def _call(self, operation: str, fn: Callable[[], Any]) -> None:
        try:
            fn()
        except AuthError:
            raise
        except DomainError as err:
            raise AuthError(err.cause, err.message) from err
        log.info("auth_operation_ok", operation=operation)

    def sign_in(self, email: str, password: str) -> None:
        """Connexion; l'état est mis à jour par l'événement `SIGNED_IN`."""
        self._call("sign_in", lambda: self.auth.sign_in_with_password(email, password))

    def sign_up(self, email: str, password: str, display_name: str) -> None:
        """Inscription avec nom affiché (métadonnée `full_name`)."""
        self._call(
            "sign_up", lambda: self.auth.sign_up(email, password, {"full_name": display_name})
        )

    def sign_out(self) -> None:
        self._call("sign_out", self.auth.sign_out)

    def request_password_reset(self, email: str) -> None:
        self._call("request_password_reset", lambda: self.auth.reset_password_for_email(email))

    def reset_password(self, new_password: str) -> None:
        self._call("reset_password", lambda: self.auth.update_user(password=new_password))

    def update_profile(self, partial: dict[str, Any]) -> Profile:
        """Met à jour le profil de l'identité courante uniquement, puis le relit.

        En cas d'échec, l'état local précédent est conservé.
        """
        if self.identity is None:
            raise AuthError("not_authenticated", "no active session")
        try:
            update = ProfileUpdate(**partial)
        except ValidationError as err:
            raise AuthError("invalid_profile_fields", str(err)) from err
        try:
            self.profiles.update(self.identity.id, update.model_dump(exclude_unset=True))
            fresh = self.profiles.get(self.identity.id)
        except DomainError as err:
            log.error("profile_update_failed", user_id=self.identity.id, cause=err.cause)
            raise AuthError("profile_update_failed", err.message) from err
        self.profile = fresh
        self._publish()
        return fresh
