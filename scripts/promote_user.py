"""
Attribution d'un rôle à un compte, hors API (amorçage du premier administrateur).

Les changements de rôle passent normalement par `/admin`, qui exige déjà un administrateur;
ce script écrit directement le profil à partir de l'email du compte.

Usage: python -m scripts.promote_user user@example.com --role admin
"""

from __future__ import annotations

import argparse

from kyzmat.core.container import Container
from kyzmat.domain.entities import Role


def promote(c: Container, email: str, role: Role) -> str:
    """Attribue `role` au compte `email`; retourne l'id du compte."""
    user = c.user_repo.get_by_email(email)
    if user is None:
        raise SystemExit(f"no account for {email}")
    c.profile_repo.set_role(user["id"], role)
    return user["id"]


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("email", help="Email of the account to promote")
    parser.add_argument("--role", choices=[r.value for r in Role], default=Role.ADMIN.value)
    args = parser.parse_args(argv)

    user_id = promote(Container(), args.email, Role(args.role))
    print(f"role={args.role} user_id={user_id}")


if __name__ == "__main__":  # pragma: no cover - script entry
    main()
