"""
Service d'authentification côté serveur.

Gère l'inscription, la connexion par mot de passe, l'émission et la vérification des jetons JWT,
la récupération de mot de passe et le changement de mot de passe. La création d'un compte crée
aussi son profil (rôle `user`), comme le ferait un déclencheur en base.

Toutes les erreurs sont levées sous forme d'`AuthError` avec une cause courte:
`invalid_credentials`, `email_exists`, `weak_password`, `rate_limited`, `invalid_token`.
"""

from __future__ import annotations

import uuid
from typing import Any

import structlog
from sqlalchemy.exc import IntegrityError

from kyzmat.app.metrics import AUTH_EVENTS
from kyzmat.domain.auth import create_token, decode_token, hash_password, verify_password
from kyzmat.domain.entities import AuthSession, Identity
from kyzmat.domain.errors import AuthError, PersistenceError
from kyzmat.infra.repo.account_repo import UserRepo

log = structlog.get_logger(__name__)


class AuthBackend:
    """Collaborateur d'authentification (comptes, jetons, récupération)."""

    def __init__(
        self,
        users: UserRepo,
        secret: str,
        alg: str = "HS256",
        expires_min: int = 60,
        recovery_expires_min: int = 15,
        password_min_length: int = 6,
        max_failed_attempts: int = 5,
        max_tracked_emails: int = 10_000,
    ):
        self.users = users
        self.secret = secret
        self.alg = alg
        self.expires_min = expires_min
        self.recovery_expires_min = recovery_expires_min
        self.password_min_length = password_min_length
        self.max_failed_attempts = max_failed_attempts
        self.max_tracked_emails = max_tracked_emails
        # email -> échecs consécutifs, borné (les plus anciennes entrées sont oubliées)
        self._failed: dict[str, int] = {}
        # Messages de récupération "envoyés" (pas de serveur mail ici)
        self.outbox: list[dict[str, Any]] = []

    def _issue(self, user: dict[str, Any]) -> AuthSession:
        token = create_token(
            self.secret,
            self.alg,
            self.expires_min,
            {"sub": user["id"], "email": user["email"]},
        )
        return AuthSession(access_token=token, user=Identity(id=user["id"], email=user["email"]))

    def _record_failure(self, email: str) -> None:
        count = self._failed.pop(email, 0) + 1
        while len(self._failed) >= self.max_tracked_emails:
            del self._failed[next(iter(self._failed))]
        self._failed[email] = count

    def _check_password_strength(self, password: str) -> None:
        if len(password or "") < self.password_min_length:
            raise AuthError(
                "weak_password",
                f"password must contain at least {self.password_min_length} characters",
            )

    def sign_up(self, email: str, password: str, metadata: dict[str, Any] | None = None) -> AuthSession:
        """Crée un compte et son profil puis ouvre une session."""
        self._check_password_strength(password)
        email = email.strip().lower()
        if self.users.get_by_email(email):
            AUTH_EVENTS.labels("signup", "email_exists").inc()
            raise AuthError("email_exists", "user already registered")
        full_name = (metadata or {}).get("full_name")
        try:
            user = self.users.create_with_profile(
                str(uuid.uuid4()), email, hash_password(password), full_name
            )
        except IntegrityError as err:
            AUTH_EVENTS.labels("signup", "email_exists").inc()
            raise AuthError("email_exists", "user already registered") from err
        AUTH_EVENTS.labels("signup", "ok").inc()
        log.info("user_signed_up", user_id=user["id"])
        return self._issue(user)

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        """Vérifie les identifiants et ouvre une session.

        Au-delà de `max_failed_attempts` échecs consécutifs pour un email, les tentatives sont
        refusées (`rate_limited`) jusqu'à une récupération de mot de passe.
        """
        email = email.strip().lower()
        if self._failed.get(email, 0) >= self.max_failed_attempts:
            AUTH_EVENTS.labels("login", "rate_limited").inc()
            raise AuthError("rate_limited", "too many failed attempts")
        user = self.users.get_by_email(email)
        if not user or not verify_password(password, user.get("password_hash", "")):
            self._record_failure(email)
            AUTH_EVENTS.labels("login", "invalid_credentials").inc()
            raise AuthError("invalid_credentials", "invalid login credentials")
        self._failed.pop(email, None)
        AUTH_EVENTS.labels("login", "ok").inc()
        return self._issue(user)

    def get_user(self, access_token: str) -> Identity:
        """Retourne l'identité portée par un jeton d'accès valide."""
        data = decode_token(access_token, self.secret, self.alg)
        if not data:
            raise AuthError("invalid_token", "invalid or expired token")
        user = self.users.get(data.sub)
        if not user:
            raise AuthError("invalid_token", "user not found")
        return Identity(id=user["id"], email=user["email"])

    def reset_password_for_email(self, email: str, redirect_to: str) -> None:
        """Émet un jeton de récupération si le compte existe.

        Répond de la même façon que le compte existe ou non.
        """
        user = self.users.get_by_email(email.strip().lower())
        if not user:
            log.info("password_recovery_unknown_email")
            return
        token = create_token(
            self.secret,
            self.alg,
            self.recovery_expires_min,
            {"sub": user["id"], "email": user["email"]},
            purpose="recovery",
        )
        self.outbox.append({"to": user["email"], "redirect_to": redirect_to, "token": token})
        AUTH_EVENTS.labels("recovery", "sent").inc()
        log.info("password_recovery_sent", user_id=user["id"])

    def verify_recovery(self, recovery_token: str) -> AuthSession:
        """Échange un jeton de récupération contre une session."""
        data = decode_token(recovery_token, self.secret, self.alg, purpose="recovery")
        user = self.users.get(data.sub) if data else None
        if not user:
            raise AuthError("invalid_token", "invalid or expired recovery token")
        self._failed.pop(user["email"], None)
        return self._issue(user)

    def update_password(self, user_id: str, new_password: str) -> Identity:
        """Remplace le mot de passe d'un compte existant."""
        self._check_password_strength(new_password)
        user = self.users.get(user_id)
        if not user:
            raise AuthError("invalid_token", "user not found")
        try:
            self.users.set_password_hash(user_id, hash_password(new_password))
        except PersistenceError as err:
            raise AuthError("update_failed", err.message) from err
        self._failed.pop(user["email"], None)
        AUTH_EVENTS.labels("password_update", "ok").inc()
        return Identity(id=user["id"], email=user["email"])
