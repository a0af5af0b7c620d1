# Schémas Pydantic exposés par l'API (requêtes et réponses).

from typing import Any, Literal

from pydantic import BaseModel, EmailStr, Field

from kyzmat.domain.entities import Identity, Profile
from kyzmat.domain.localization import Language


class SignupPayload(BaseModel):
    """Inscription: email, mot de passe et nom affiché (copié dans le profil)."""

    email: EmailStr
    password: str
    full_name: str = Field(min_length=2)


class LoginPayload(BaseModel):
    email: EmailStr
    password: str


class ResetRequestPayload(BaseModel):
    email: EmailStr


class UpdatePasswordPayload(BaseModel):
    """Nouveau mot de passe; `recovery_token` ouvre la session de récupération si fourni."""

    password: str
    recovery_token: str | None = None


class SessionResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: Identity
    profile: Profile | None = None


class MeResponse(BaseModel):
    user: Identity
    profile: Profile | None = None


class NotificationOut(BaseModel):
    key: str
    description: str
    variant: Literal["default", "destructive"] = "default"


class CatalogListResponse(BaseModel):
    """Collection localisée d'un type.

    Champs:
    - kind: type de fiche (places/artists/rentals)
    - language: langue de résolution des champs
    - items: fiches localisées, colonnes miroirs retirées
    - notifications: avertissements (ex: échec de chargement)
    """

    kind: str
    language: str
    items: list[dict[str, Any]]
    notifications: list[NotificationOut] = []


class ServiceResponse(BaseModel):
    item: dict[str, Any]
    notifications: list[NotificationOut] = []


class RoleChangePayload(BaseModel):
    role: str


class NavigationResponse(BaseModel):
    """Décision du garde de navigation pour un chemin."""

    path: str
    action: Literal["loading", "redirect", "render", "not_found"]
    location: str | None = None
    from_path: str | None = None
    reason: str | None = None
    message: str | None = None


def notifications_out(history) -> list[NotificationOut]:
    """Notifications émises pendant la requête, dans l'ordre."""
    return [NotificationOut(key=n.key, description=n.description, variant=n.variant) for n in history]


class LanguagePayload(BaseModel):
    language: Language
