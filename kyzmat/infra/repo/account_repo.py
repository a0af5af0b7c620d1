# ============================================================
# Module : kyzmat/infra/repo/account_repo.py
# Objet  : Accès SQL aux comptes (users) et profils (profiles),
#          plus les procédures privilégiées d'administration.
# ============================================================

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ...domain.entities import Profile, Role
from ...domain.errors import NotFoundError, PermissionDenied, PersistenceError
from .catalog_repo import row_to_dict
from .db import session_scope
from .models import ProfileORM, UserORM

log = structlog.get_logger(__name__)

SELF_SERVICE_FIELDS = frozenset({"full_name", "phone", "avatar_url"})


class UserRepo:
    """Comptes (email, empreinte du mot de passe)."""

    def __init__(self, factory: sessionmaker) -> None:
        self._factory = factory

    def get_by_email(self, email: str) -> dict[str, Any] | None:
        """Recherche un compte par email (insensible à la casse)."""
        try:
            with session_scope(self._factory) as s:
                row = s.execute(
                    select(UserORM).where(UserORM.email == email.strip().lower())
                ).scalar_one_or_none()
                return row_to_dict(row) if row else None
        except SQLAlchemyError as err:
            raise PersistenceError("users_select_failed", str(err)) from err

    def get(self, user_id: str) -> dict[str, Any] | None:
        """Retourne un compte par id."""
        try:
            with session_scope(self._factory) as s:
                row = s.get(UserORM, user_id)
                return row_to_dict(row) if row else None
        except SQLAlchemyError as err:
            raise PersistenceError("users_select_failed", str(err)) from err

    def create_with_profile(
        self, user_id: str, email: str, password_hash: str, full_name: str | None
    ) -> dict[str, Any]:
        """Crée le compte et son profil (rôle `user`) dans la même transaction.

        Lève `IntegrityError` si l'email existe déjà, `PersistenceError` pour tout autre échec.
        """
        try:
            with session_scope(self._factory) as s:
                user = UserORM(
                    id=user_id,
                    email=email.strip().lower(),
                    password_hash=password_hash,
                    full_name=full_name,
                )
                s.add(user)
                s.add(ProfileORM(id=user_id, role=Role.USER.value, full_name=full_name))
                s.flush()
                return row_to_dict(user)
        except IntegrityError:
            raise
        except SQLAlchemyError as err:
            raise PersistenceError("user_create_failed", str(err)) from err

    def set_password_hash(self, user_id: str, password_hash: str) -> None:
        """Remplace l'empreinte du mot de passe."""
        try:
            with session_scope(self._factory) as s:
                row = s.get(UserORM, user_id)
                if row is None:
                    raise NotFoundError("user_not_found", user_id)
                row.password_hash = password_hash
        except SQLAlchemyError as err:
            raise PersistenceError("password_update_failed", str(err)) from err


class ProfileRepo:
    """Profils applicatifs."""

    def __init__(self, factory: sessionmaker) -> None:
        self._factory = factory

    def get(self, user_id: str) -> Profile | None:
        """Retourne le profil d'un compte, ou None."""
        try:
            with session_scope(self._factory) as s:
                row = s.get(ProfileORM, user_id)
                return _to_profile(row) if row else None
        except SQLAlchemyError as err:
            raise PersistenceError("profile_select_failed", str(err)) from err

    def update(self, user_id: str, values: dict[str, Any]) -> Profile:
        """Met à jour les champs en libre-service d'un profil."""
        data = {k: v for k, v in values.items() if k in SELF_SERVICE_FIELDS}
        try:
            with session_scope(self._factory) as s:
                row = s.get(ProfileORM, user_id)
                if row is None:
                    raise NotFoundError("profile_not_found", user_id)
                for key, value in data.items():
                    setattr(row, key, value)
                s.flush()
                return _to_profile(row)
        except SQLAlchemyError as err:
            raise PersistenceError("profile_update_failed", str(err)) from err

    def set_role(self, user_id: str, role: Role) -> Profile:
        """Attribue un rôle sans contrôle d'appelant (amorçage d'un premier administrateur)."""
        with session_scope(self._factory) as s:
            row = s.get(ProfileORM, user_id)
            if row is None:
                raise NotFoundError("profile_not_found", user_id)
            row.role = Role(role).value
            s.flush()
            return _to_profile(row)


def _to_profile(row: ProfileORM) -> Profile:
    return Profile(
        id=row.id,
        role=Role(row.role),
        full_name=row.full_name,
        phone=row.phone,
        avatar_url=row.avatar_url,
    )


class AdminRpc:
    """Procédures à privilèges élevés (liste des comptes, changement de rôle).

    Équivalent de fonctions SQL `security definer`: elles contournent les restrictions par
    ligne de l'appelant mais vérifient elles-mêmes que l'appelant est administrateur.
    """

    def __init__(self, factory: sessionmaker) -> None:
        self._factory = factory

    def _ensure_admin(self, s, caller_id: str) -> None:
        caller = s.get(ProfileORM, caller_id)
        if caller is None or caller.role != Role.ADMIN.value:
            log.warning("admin_rpc_denied", caller_id=caller_id)
            raise PermissionDenied("admin_required", "only admins may call this procedure")

    def list_users(self, caller_id: str) -> list[dict[str, Any]]:
        """Liste tous les comptes avec leur profil."""
        try:
            with session_scope(self._factory) as s:
                self._ensure_admin(s, caller_id)
                stmt = (
                    select(UserORM, ProfileORM)
                    .join(ProfileORM, ProfileORM.id == UserORM.id, isouter=True)
                    .order_by(UserORM.created_at)
                )
                out = []
                for user, profile in s.execute(stmt).all():
                    out.append(
                        {
                            "id": user.id,
                            "email": user.email,
                            "created_at": user.created_at.isoformat(),
                            "profile": _to_profile(profile).model_dump(mode="json")
                            if profile
                            else None,
                        }
                    )
                return out
        except SQLAlchemyError as err:
            raise PersistenceError("users_select_failed", str(err)) from err

    def change_user_role(self, caller_id: str, user_id: str, new_role: Role) -> Profile:
        """Change le rôle d'un compte."""
        role = Role(new_role)
        try:
            with session_scope(self._factory) as s:
                self._ensure_admin(s, caller_id)
                row = s.get(ProfileORM, user_id)
                if row is None:
                    raise NotFoundError("profile_not_found", user_id)
                row.role = role.value
                s.flush()
                log.info("user_role_changed", user_id=user_id, role=role.value, by=caller_id)
                return _to_profile(row)
        except SQLAlchemyError as err:
            raise PersistenceError("role_update_failed", str(err)) from err
