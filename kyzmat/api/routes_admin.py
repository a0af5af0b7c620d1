"""
Routes d'administration (rôle `admin` requis).

Liste des comptes avec leur profil, changement de rôle, consultation et suppression de toute
fiche du catalogue quel qu'en soit le propriétaire.
"""

from fastapi import APIRouter, Depends, Response

from kyzmat.api.deps import get_container, get_current_identity, require_roles
from kyzmat.api.schemas import RoleChangePayload
from kyzmat.core.container import Container
from kyzmat.core.http_constants import HTTP_NO_CONTENT
from kyzmat.domain.authz import ADMIN_ROLES
from kyzmat.domain.entities import CatalogKind, Identity, Profile

router = APIRouter(prefix="/admin", tags=["admin"])
admin_dep = Depends(require_roles(*ADMIN_ROLES))


@router.get("/users")
def list_users(
    identity: Identity = Depends(get_current_identity),
    profile: Profile = admin_dep,
    c: Container = Depends(get_container),
):
    return c.admin.list_users(identity, profile)


@router.put("/users/{user_id}/role", response_model=Profile)
def change_role(
    user_id: str,
    body: RoleChangePayload,
    identity: Identity = Depends(get_current_identity),
    profile: Profile = admin_dep,
    c: Container = Depends(get_container),
):
    return c.admin.change_user_role(identity, profile, user_id, body.role)


@router.get("/items/{kind}")
def list_items(
    kind: CatalogKind,
    identity: Identity = Depends(get_current_identity),
    profile: Profile = admin_dep,
    c: Container = Depends(get_container),
):
    """Fiches brutes (toutes colonnes, y compris les traductions)."""
    return c.admin.list_all_items(identity, profile, kind)


@router.delete("/items/{kind}/{item_id}", status_code=HTTP_NO_CONTENT)
def delete_item(
    kind: CatalogKind,
    item_id: str,
    identity: Identity = Depends(get_current_identity),
    profile: Profile = admin_dep,
    c: Container = Depends(get_container),
):
    c.admin.delete_any_item(identity, profile, kind, item_id)
    return Response(status_code=HTTP_NO_CONTENT)
