"""Tests du magasin de session (identité, profil, événements d'authentification)."""

from unittest.mock import Mock

import pytest

from kyzmat.domain.entities import Role
from kyzmat.domain.errors import AuthError, PersistenceError
from kyzmat.domain.session import SessionStore
from kyzmat.infra.auth_client import LocalAuthClient
from kyzmat.infra.kv_store import InMemoryKeyValueStore
from tests.helpers import PASSWORD


@pytest.fixture
def local_storage():
    return InMemoryKeyValueStore()


@pytest.fixture
def auth_client(container, local_storage):
    return LocalAuthClient(container.auth_backend, local_storage)


@pytest.fixture
def store(auth_client, container):
    s = SessionStore(auth_client, container.profile_repo)
    yield s
    s.teardown()


def test_initialize_without_session(store):
    assert store.loading is True
    state = store.initialize()
    assert state.loading is False
    assert state.identity is None and state.profile is None


def test_sign_up_sets_identity_and_profile(store):
    store.initialize()
    store.sign_up("Aibek@Kyzmat.kg", PASSWORD, "Айбек")
    assert store.identity.email == "aibek@kyzmat.kg"
    assert store.profile.role is Role.USER
    assert store.profile.full_name == "Айбек"


def test_persisted_session_is_restored(container, local_storage, store):
    store.initialize()
    store.sign_up("nurlan@kyzmat.kg", PASSWORD, "Нурлан")
    user_id = store.identity.id

    other = SessionStore(LocalAuthClient(container.auth_backend, local_storage), container.profile_repo)
    state = other.initialize()
    assert state.identity.id == user_id
    assert state.profile.id == user_id
    other.teardown()


def test_invalid_persisted_token_is_discarded(container, local_storage):
    local_storage.set("kyzmat-auth-token", '{"access_token": "garbage"}')
    s = SessionStore(LocalAuthClient(container.auth_backend, local_storage), container.profile_repo)
    assert s.initialize().identity is None
    assert local_storage.get("kyzmat-auth-token") is None


def test_sign_out_clears_identity_and_profile_together(store):
    seen = []
    store.initialize()
    store.subscribe(seen.append)
    store.sign_up("a@kyzmat.kg", PASSWORD, "Asel")
    store.sign_out()
    assert store.identity is None and store.profile is None
    assert seen[-1].identity is None and seen[-1].profile is None
    # jamais de profil sans identité dans les états publiés
    assert all(s.identity is not None or s.profile is None for s in seen)


def test_sign_in_errors_surface_as_auth_error(store, container):
    container.auth_backend.sign_up("b@kyzmat.kg", PASSWORD)
    store.initialize()
    with pytest.raises(AuthError) as exc:
        store.sign_in("b@kyzmat.kg", "wrong-password")
    assert exc.value.cause == "invalid_credentials"
    assert store.identity is None


def test_sign_up_duplicate_and_weak_password(store):
    store.initialize()
    store.sign_up("c@kyzmat.kg", PASSWORD, "C")
    store.sign_out()
    with pytest.raises(AuthError) as exc:
        store.sign_up("c@kyzmat.kg", PASSWORD, "C")
    assert exc.value.cause == "email_exists"
    with pytest.raises(AuthError) as exc:
        store.sign_up("d@kyzmat.kg", "123", "D")
    assert exc.value.cause == "weak_password"


def test_update_profile_requires_identity(store):
    store.initialize()
    with pytest.raises(AuthError) as exc:
        store.update_profile({"full_name": "X"})
    assert exc.value.cause == "not_authenticated"


def test_update_profile_writes_own_row_and_refetches(store):
    store.initialize()
    store.sign_up("e@kyzmat.kg", PASSWORD, "E")
    profile = store.update_profile({"phone": "+996 555 000 000"})
    assert profile.phone == "+996 555 000 000"
    assert store.profile.phone == "+996 555 000 000"


def test_update_profile_rejects_role(store):
    store.initialize()
    store.sign_up("f@kyzmat.kg", PASSWORD, "F")
    with pytest.raises(AuthError) as exc:
        store.update_profile({"role": "admin"})
    assert exc.value.cause == "invalid_profile_fields"
    assert store.profile.role is Role.USER


def test_update_profile_failure_keeps_prior_state(container, auth_client):
    profiles = Mock(wraps=container.profile_repo)
    s = SessionStore(auth_client, profiles)
    s.initialize()
    s.sign_up("g@kyzmat.kg", PASSWORD, "G")
    before = s.profile
    profiles.update.side_effect = PersistenceError("profile_update_failed", "db down")
    with pytest.raises(AuthError) as exc:
        s.update_profile({"full_name": "New"})
    assert exc.value.cause == "profile_update_failed"
    assert s.profile == before
    s.teardown()


def test_password_recovery_flow(container, store):
    container.auth_backend.sign_up("h@kyzmat.kg", PASSWORD)
    store.initialize()
    store.request_password_reset("h@kyzmat.kg")
    token = container.auth_backend.outbox[-1]["token"]
    store.auth.exchange_recovery_token(token)
    assert store.identity.email == "h@kyzmat.kg"
    store.reset_password("brand-new-pass")
    store.sign_out()
    store.sign_in("h@kyzmat.kg", "brand-new-pass")
    assert store.identity is not None


def test_reset_password_without_session(store):
    store.initialize()
    with pytest.raises(AuthError) as exc:
        store.reset_password("whatever123")
    assert exc.value.cause == "not_authenticated"


def test_teardown_stops_event_delivery(store, container):
    store.initialize()
    store.teardown()
    store.auth.sign_up("i@kyzmat.kg", PASSWORD)
    assert store.identity is None
