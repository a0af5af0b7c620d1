"""
Exceptions du domaine.

Chaque exception porte une cause courte (`cause`) servant à la fois de code d'erreur API et de
suffixe de clé de traduction pour la notification affichée à l'utilisateur.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base des erreurs métier."""

    def __init__(self, cause: str, message: str | None = None) -> None:
        super().__init__(message or cause)
        self.cause = cause
        self.message = message or cause


class AuthError(DomainError):
    """Échec d'une opération d'authentification (identifiants, doublon, limite...)."""


class PersistenceError(DomainError):
    """Échec d'une lecture ou écriture auprès du stockage relationnel."""


class FormValidationError(DomainError):
    """Contraintes de champs non respectées, détectées avant tout appel réseau."""

    def __init__(self, errors: dict[str, str]) -> None:
        super().__init__("validation_error", "; ".join(f"{k}: {v}" for k, v in errors.items()))
        self.errors = errors


class UploadError(DomainError):
    """Fichier refusé (taille, type) ou échec du stockage objet."""


class NotFoundError(DomainError):
    """Ressource introuvable."""


class PermissionDenied(DomainError):
    """Contrôle de rôle ou de propriété refusé pour une mutation."""
