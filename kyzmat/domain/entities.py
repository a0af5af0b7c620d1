"""
Entités du domaine métier.

Ce module définit les modèles de données principaux de la place de marché: identités, profils,
rôles et fiches de catalogue bilingues (lieux, artistes, locations de matériel).

Convention bilingue: chaque champ texte localisable possède un champ "de base" (langue par défaut)
et deux champs miroirs suffixés `_kg` et `_ru`, optionnels.
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Rôle applicatif, seul signal d'autorisation."""

    USER = "user"
    PARTNER = "partner"
    ADMIN = "admin"


class CatalogKind(str, Enum):
    """Type de fiche de catalogue, nommé d'après sa table."""

    PLACES = "places"
    ARTISTS = "artists"
    RENTALS = "rentals"


class Identity(BaseModel):
    """Identité authentifiée émise par le collaborateur d'authentification."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str


class Profile(BaseModel):
    """Profil applicatif (une ligne par identité)."""

    id: str
    role: Role = Role.USER
    full_name: str | None = None
    phone: str | None = None
    avatar_url: str | None = None


class ProfileUpdate(BaseModel):
    """Champs en libre-service d'un profil (le rôle n'en fait pas partie)."""

    model_config = ConfigDict(extra="forbid")

    full_name: str | None = None
    phone: str | None = None
    avatar_url: str | None = None


class AuthSession(BaseModel):
    """Session retournée par le collaborateur d'authentification."""

    access_token: str
    token_type: str = "bearer"
    user: Identity


AuthEvent = Literal["SIGNED_IN", "SIGNED_OUT", "USER_UPDATED", "PASSWORD_RECOVERY"]


SHADOW_SUFFIXES = ("kg", "ru")

# Champs localisables communs à toutes les fiches
COMMON_LOCALIZED_FIELDS = ("name", "description", "price", "contacts")

# Champs localisables spécifiques par type de fiche
KIND_LOCALIZED_FIELDS: dict[CatalogKind, tuple[str, ...]] = {
    CatalogKind.PLACES: ("address", "capacity"),
    CatalogKind.ARTISTS: ("genre", "experience"),
    CatalogKind.RENTALS: ("specs",),
}


def localized_fields(kind: CatalogKind) -> tuple[str, ...]:
    """Retourne l'ensemble des champs localisables d'un type de fiche."""
    return COMMON_LOCALIZED_FIELDS + KIND_LOCALIZED_FIELDS[kind]


def writable_columns(kind: CatalogKind) -> tuple[str, ...]:
    """Colonnes texte (base + miroirs) qu'un formulaire peut écrire."""
    cols: list[str] = []
    for field in localized_fields(kind):
        cols.append(field)
        cols.extend(f"{field}_{suffix}" for suffix in SHADOW_SUFFIXES)
    return tuple(cols)


class CatalogItem(BaseModel):
    """Forme commune d'une fiche de catalogue."""

    model_config = ConfigDict(extra="allow")

    id: str
    owner_id: str
    name: str = ""
    name_kg: str | None = None
    name_ru: str | None = None
    description: str | None = None
    description_kg: str | None = None
    description_ru: str | None = None
    price: str | None = None
    price_kg: str | None = None
    price_ru: str | None = None
    contacts: str | None = None
    contacts_kg: str | None = None
    contacts_ru: str | None = None
    rating: float | None = None
    image_url: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class Venue(CatalogItem):
    """Lieu (salle, restaurant, espace événementiel)."""

    address: str | None = None
    address_kg: str | None = None
    address_ru: str | None = None
    capacity: str | None = None
    capacity_kg: str | None = None
    capacity_ru: str | None = None


class Artist(CatalogItem):
    """Artiste ou prestataire de spectacle."""

    genre: str | None = None
    genre_kg: str | None = None
    genre_ru: str | None = None
    experience: str | None = None
    experience_kg: str | None = None
    experience_ru: str | None = None


class RentalAsset(CatalogItem):
    """Matériel proposé à la location."""

    specs: str | None = None
    specs_kg: str | None = None
    specs_ru: str | None = None


ITEM_MODELS: dict[CatalogKind, type[CatalogItem]] = {
    CatalogKind.PLACES: Venue,
    CatalogKind.ARTISTS: Artist,
    CatalogKind.RENTALS: RentalAsset,
}


class Draft(BaseModel):
    """Brouillon local d'un formulaire de création."""

    form_data: dict = Field(default_factory=dict, alias="formData")
    image_url: str | None = Field(default=None, alias="imageUrl")

    model_config = ConfigDict(populate_by_name=True)
