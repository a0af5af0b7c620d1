"""Fonctions utilitaires partagées par les tests (comptes, en-têtes, images)."""

from __future__ import annotations

import base64

from kyzmat.domain.entities import Role

PASSWORD = "secret-pass"

# PNG 1x1 transparent
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


def make_account(container, email: str, role: Role = Role.USER, full_name: str = "Test User"):
    """Crée un compte (et son profil) puis lui attribue `role`; retourne (identité, profil)."""
    session = container.auth_backend.sign_up(email, PASSWORD, {"full_name": full_name})
    profile = container.profile_repo.set_role(session.user.id, role)
    return session.user, profile


def bearer(container, email: str) -> dict[str, str]:
    """En-tête `Authorization` d'une session fraîche pour `email`."""
    session = container.auth_backend.sign_in_with_password(email, PASSWORD)
    return {"Authorization": f"Bearer {session.access_token}"}
