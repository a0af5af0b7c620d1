# ============================================================
# Module : kyzmat/infra/repo/catalog_repo.py
# Objet  : Accès SQL (CRUD) aux tables places/artists/rentals.
# Notes  : filtres par égalité uniquement; erreurs SQL -> PersistenceError.
# ============================================================

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import delete, inspect, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ...domain.entities import CatalogKind
from ...domain.errors import PersistenceError
from .db import session_scope
from .models import CATALOG_TABLES

log = structlog.get_logger(__name__)

# Colonnes jamais modifiables après création
IMMUTABLE_COLUMNS = frozenset({"id", "owner_id", "created_at"})


def row_to_dict(row: Any) -> dict[str, Any]:
    """Convertit une ligne ORM en dict (dates au format ISO)."""
    out: dict[str, Any] = {}
    for attr in inspect(row).mapper.column_attrs:
        value = getattr(row, attr.key)
        out[attr.key] = value.isoformat() if isinstance(value, datetime) else value
    return out


class CatalogTableRepo:
    """CRUD minimal sur une table de catalogue."""

    def __init__(self, factory: sessionmaker, kind: CatalogKind) -> None:
        """Construit le repo pour la table du type `kind`."""
        self._factory = factory
        self.kind = CatalogKind(kind)
        self.model = CATALOG_TABLES[self.kind]
        self._columns = {c.key for c in inspect(self.model).mapper.column_attrs}

    def _where(self, stmt, filters: dict[str, Any]):
        for col, value in filters.items():
            if col not in self._columns:
                raise PersistenceError("unknown_column", f"{self.kind.value}.{col}")
            stmt = stmt.where(getattr(self.model, col) == value)
        return stmt

    def _clean(self, values: dict[str, Any]) -> dict[str, Any]:
        return {k: v for k, v in values.items() if k in self._columns}

    def select(self, **filters: Any) -> list[dict[str, Any]]:
        """Retourne toutes les lignes satisfaisant les égalités données."""
        try:
            with session_scope(self._factory) as s:
                stmt = self._where(select(self.model), filters).order_by(self.model.created_at)
                return [row_to_dict(r) for r in s.execute(stmt).scalars().all()]
        except SQLAlchemyError as err:
            log.error("catalog_select_failed", table=self.kind.value, error=str(err))
            raise PersistenceError("select_failed", str(err)) from err

    def get(self, item_id: str) -> dict[str, Any] | None:
        """Retourne une ligne par id, ou None."""
        rows = self.select(id=item_id)
        return rows[0] if rows else None

    def insert(self, values: dict[str, Any]) -> dict[str, Any]:
        """Insère une ligne (id généré si absent) et la renvoie."""
        data = self._clean(values)
        data.setdefault("id", str(uuid.uuid4()))
        try:
            with session_scope(self._factory) as s:
                row = self.model(**data)
                s.add(row)
                s.flush()
                return row_to_dict(row)
        except SQLAlchemyError as err:
            log.error("catalog_insert_failed", table=self.kind.value, error=str(err))
            raise PersistenceError("insert_failed", str(err)) from err

    def update(self, values: dict[str, Any], **filters: Any) -> list[dict[str, Any]]:
        """Met à jour les lignes filtrées; les colonnes immuables sont ignorées."""
        data = {k: v for k, v in self._clean(values).items() if k not in IMMUTABLE_COLUMNS}
        try:
            with session_scope(self._factory) as s:
                if data:
                    s.execute(self._where(update(self.model), filters).values(**data))
                rows = s.execute(self._where(select(self.model), filters)).scalars().all()
                return [row_to_dict(r) for r in rows]
        except SQLAlchemyError as err:
            log.error("catalog_update_failed", table=self.kind.value, error=str(err))
            raise PersistenceError("update_failed", str(err)) from err

    def delete(self, **filters: Any) -> int:
        """Supprime définitivement les lignes filtrées; retourne le nombre supprimé."""
        try:
            with session_scope(self._factory) as s:
                result = s.execute(self._where(delete(self.model), filters))
                return result.rowcount or 0
        except SQLAlchemyError as err:
            log.error("catalog_delete_failed", table=self.kind.value, error=str(err))
            raise PersistenceError("delete_failed", str(err)) from err
