"""Tests du service d'administration."""

import pytest

from kyzmat.domain.entities import CatalogKind, Role, Venue
from kyzmat.domain.errors import FormValidationError, NotFoundError, PermissionDenied
from tests.helpers import make_account


def test_list_users_requires_admin(container, partner):
    identity, profile = partner
    with pytest.raises(PermissionDenied):
        container.admin.list_users(identity, profile)


def test_list_users_joins_profiles(container, admin, partner):
    identity, profile = admin
    users = container.admin.list_users(identity, profile)
    by_email = {u["email"]: u for u in users}
    assert by_email["partner@kyzmat.kg"]["profile"]["role"] == "partner"
    assert by_email["admin@kyzmat.kg"]["profile"]["role"] == "admin"


def test_change_user_role(container, admin):
    identity, profile = admin
    user, _ = make_account(container, "member@kyzmat.kg")
    updated = container.admin.change_user_role(identity, profile, user.id, "partner")
    assert updated.role is Role.PARTNER
    assert container.profile_repo.get(user.id).role is Role.PARTNER


def test_change_user_role_rejects_unknown_role_and_user(container, admin):
    identity, profile = admin
    user, _ = make_account(container, "member2@kyzmat.kg")
    with pytest.raises(FormValidationError):
        container.admin.change_user_role(identity, profile, user.id, "superuser")
    with pytest.raises(NotFoundError):
        container.admin.change_user_role(identity, profile, "no-such-user", "partner")


def test_admin_rpc_rechecks_caller(container, partner):
    identity, _ = partner
    with pytest.raises(PermissionDenied):
        container.admin_rpc.list_users(identity.id)


def test_list_and_delete_any_item(container, admin, partner):
    p_identity, p_profile = partner
    row = container.catalog.create_item(CatalogKind.PLACES, p_identity, p_profile, {"name": "Hall"})
    identity, profile = admin
    items = container.admin.list_all_items(identity, profile, CatalogKind.PLACES)
    assert isinstance(items[0], Venue)
    assert items[0].owner_id == p_identity.id
    container.admin.delete_any_item(identity, profile, CatalogKind.PLACES, row["id"])
    assert container.catalog.list_items(CatalogKind.PLACES) == []
