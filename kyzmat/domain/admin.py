"""
Administration: comptes, rôles et modération du catalogue.

Les opérations sur les comptes passent par les procédures privilégiées (`AdminRpc`) qui
revérifient le rôle de l'appelant; les opérations sur les fiches réutilisent le service de
catalogue, où la règle de propriété laisse passer les administrateurs.
"""

from __future__ import annotations

from typing import Any

import structlog

from kyzmat.domain.authz import ADMIN_ROLES, can_access
from kyzmat.domain.catalog import CatalogService
from kyzmat.domain.entities import ITEM_MODELS, CatalogItem, CatalogKind, Identity, Profile, Role
from kyzmat.domain.errors import FormValidationError, PermissionDenied

log = structlog.get_logger(__name__)


class AdminService:
    def __init__(self, rpc, catalog: CatalogService):
        self.rpc = rpc
        self.catalog = catalog

    @staticmethod
    def _require_admin(identity: Identity | None, profile: Profile | None) -> None:
        if not can_access(identity, profile, ADMIN_ROLES):
            raise PermissionDenied("admin_required", "admin role required")

    def list_users(self, identity: Identity | None, profile: Profile | None) -> list[dict[str, Any]]:
        """Tous les comptes, chacun avec son profil (ou None)."""
        self._require_admin(identity, profile)
        return self.rpc.list_users(identity.id)

    def change_user_role(
        self, identity: Identity | None, profile: Profile | None, user_id: str, role: str
    ) -> Profile:
        """Attribue `role` au compte `user_id`; un rôle inconnu est refusé."""
        self._require_admin(identity, profile)
        try:
            new_role = Role(role)
        except ValueError as err:
            raise FormValidationError({"role": "admin.invalidRole"}) from err
        return self.rpc.change_user_role(identity.id, user_id, new_role)

    def list_all_items(
        self, identity: Identity | None, profile: Profile | None, kind: CatalogKind
    ) -> list[CatalogItem]:
        """Fiches complètes d'un type (toutes colonnes, traductions comprises)."""
        self._require_admin(identity, profile)
        model = ITEM_MODELS[CatalogKind(kind)]
        return [model.model_validate(row) for row in self.catalog.list_items(kind)]

    def delete_any_item(
        self, identity: Identity | None, profile: Profile | None, kind: CatalogKind, item_id: str
    ) -> None:
        """Suppression d'une fiche quel que soit son propriétaire."""
        self._require_admin(identity, profile)
        self.catalog.delete_item(kind, profile, item_id)
        log.info("admin_item_deleted", kind=CatalogKind(kind).value, item_id=item_id, by=identity.id)
