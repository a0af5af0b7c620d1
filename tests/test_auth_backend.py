"""Tests du service d'authentification côté serveur et de l'accès SQL aux comptes."""

from unittest.mock import Mock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from kyzmat.core.http_constants import HTTP_SERVICE_UNAVAILABLE
from kyzmat.domain.errors import AuthError, PersistenceError
from kyzmat.infra.auth_backend import AuthBackend
from kyzmat.infra.repo.account_repo import UserRepo
from tests.helpers import PASSWORD


def _failing_factory(**session_methods):
    session = Mock()
    for name, error in session_methods.items():
        getattr(session, name).side_effect = error
    return Mock(return_value=session)


def test_failed_attempts_table_is_bounded(container):
    backend = AuthBackend(
        container.user_repo, secret="s", max_failed_attempts=2, max_tracked_emails=3
    )
    for i in range(10):
        with pytest.raises(AuthError):
            backend.sign_in_with_password(f"ghost{i}@kyzmat.kg", "wrong-pass")
    assert len(backend._failed) == 3
    assert "ghost0@kyzmat.kg" not in backend._failed


def test_rate_limit_still_applies_to_tracked_email(container):
    container.auth_backend.sign_up("aida@kyzmat.kg", PASSWORD, {"full_name": "Аида"})
    backend = AuthBackend(
        container.user_repo, secret="s", max_failed_attempts=2, max_tracked_emails=3
    )
    for _ in range(2):
        with pytest.raises(AuthError):
            backend.sign_in_with_password("aida@kyzmat.kg", "wrong-pass")
    with pytest.raises(AuthError) as exc:
        backend.sign_in_with_password("aida@kyzmat.kg", PASSWORD)
    assert exc.value.cause == "rate_limited"


def test_user_lookups_wrap_database_errors():
    down = OperationalError("SELECT", {}, Exception("db down"))
    repo = UserRepo(_failing_factory(execute=down, get=down))
    with pytest.raises(PersistenceError) as exc:
        repo.get_by_email("a@kyzmat.kg")
    assert exc.value.cause == "users_select_failed"
    with pytest.raises(PersistenceError):
        repo.get("id-1")


def test_create_with_profile_wraps_errors_but_keeps_duplicates():
    repo = UserRepo(_failing_factory(flush=OperationalError("INSERT", {}, Exception("db down"))))
    with pytest.raises(PersistenceError) as exc:
        repo.create_with_profile("id-1", "a@kyzmat.kg", "hash", "A")
    assert exc.value.cause == "user_create_failed"

    repo = UserRepo(_failing_factory(flush=IntegrityError("INSERT", {}, Exception("dup"))))
    with pytest.raises(IntegrityError):
        repo.create_with_profile("id-1", "a@kyzmat.kg", "hash", "A")


def test_signup_with_database_down_is_unavailable(client, container, monkeypatch):
    monkeypatch.setattr(
        container.user_repo,
        "get_by_email",
        Mock(side_effect=PersistenceError("users_select_failed", "db down")),
    )
    r = client.post(
        "/auth/signup",
        json={"email": "aida@kyzmat.kg", "password": PASSWORD, "full_name": "Аида"},
    )
    assert r.status_code == HTTP_SERVICE_UNAVAILABLE
    assert r.json()["details"]["cause"] == "users_select_failed"
