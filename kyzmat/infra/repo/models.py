"""SQLAlchemy models for persistence layer (users, profiles, catalog tables)."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    MetaData,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase

from kyzmat.domain.entities import CatalogKind


def _now() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Classe de base pour tous les modèles SQLAlchemy."""

    metadata = MetaData()


class UserORM(Base):
    """Comptes gérés par le collaborateur d'authentification."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)


class ProfileORM(Base):
    """Profil applicatif, une ligne par compte."""

    __tablename__ = "profiles"

    id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    role = Column(String(16), nullable=False, default="user")
    full_name = Column(String(255), nullable=True)
    phone = Column(String(64), nullable=True)
    avatar_url = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)


class _CatalogColumns:
    """Colonnes partagées par les trois tables de catalogue."""

    id = Column(String(36), primary_key=True)
    owner_id = Column(String(36), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    name_kg = Column(String(255), nullable=True)
    name_ru = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    description_kg = Column(Text, nullable=True)
    description_ru = Column(Text, nullable=True)
    price = Column(String(255), nullable=True)
    price_kg = Column(String(255), nullable=True)
    price_ru = Column(String(255), nullable=True)
    contacts = Column(Text, nullable=True)
    contacts_kg = Column(Text, nullable=True)
    contacts_ru = Column(Text, nullable=True)
    rating = Column(Float, nullable=True)
    image_url = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)


class PlaceORM(_CatalogColumns, Base):
    """Lieux."""

    __tablename__ = "places"

    address = Column(Text, nullable=True)
    address_kg = Column(Text, nullable=True)
    address_ru = Column(Text, nullable=True)
    capacity = Column(String(255), nullable=True)
    capacity_kg = Column(String(255), nullable=True)
    capacity_ru = Column(String(255), nullable=True)


class ArtistORM(_CatalogColumns, Base):
    """Artistes."""

    __tablename__ = "artists"

    genre = Column(String(255), nullable=True)
    genre_kg = Column(String(255), nullable=True)
    genre_ru = Column(String(255), nullable=True)
    experience = Column(Text, nullable=True)
    experience_kg = Column(Text, nullable=True)
    experience_ru = Column(Text, nullable=True)


class RentalORM(_CatalogColumns, Base):
    """Locations de matériel."""

    __tablename__ = "rentals"

    specs = Column(Text, nullable=True)
    specs_kg = Column(Text, nullable=True)
    specs_ru = Column(Text, nullable=True)


CATALOG_TABLES: dict[CatalogKind, type[Base]] = {
    CatalogKind.PLACES: PlaceORM,
    CatalogKind.ARTISTS: ArtistORM,
    CatalogKind.RENTALS: RentalORM,
}
