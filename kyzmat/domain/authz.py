"""
Contrôle d'accès par rôle et par propriété.

Deux niveaux de contrôle:
- l'accès à un écran (ou à une famille d'endpoints) selon un ensemble de rôles requis,
- la mutation d'une fiche précise, réservée à son propriétaire ou à un administrateur.

Le garde de navigation (`guard_route`) combine l'état de session et la table des routes pour
décider d'afficher, de rediriger ou d'attendre la fin du chargement de la session.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

from kyzmat.domain.entities import Identity, Profile, Role
from kyzmat.domain.errors import PermissionDenied

AUTH_PATH = "/auth"
HOME_PATH = "/"

PARTNER_ROLES = frozenset({Role.PARTNER, Role.ADMIN})
ADMIN_ROLES = frozenset({Role.ADMIN})


def can_access(
    identity: Identity | None, profile: Profile | None, required_roles: Iterable[Role]
) -> bool:
    """Décide si une identité peut accéder à une ressource protégée.

    Sans rôle requis, toute identité non nulle est autorisée. Avec des rôles requis, il faut une
    identité, un profil, et que le rôle du profil appartienne à l'ensemble. Un administrateur
    n'a pas de passe-droit implicite ici.
    """
    if identity is None:
        return False
    roles = frozenset(Role(r) for r in required_roles)
    if not roles:
        return True
    return profile is not None and profile.role in roles


def can_manage_owned_resource(profile: Profile | None, resource_owner_id: str | None) -> bool:
    """Vrai si le profil est administrateur ou propriétaire de la fiche."""
    if profile is None:
        return False
    return profile.role == Role.ADMIN or profile.id == resource_owner_id


def ensure_can_manage(profile: Profile | None, resource_owner_id: str | None) -> None:
    """Lève `PermissionDenied` si la mutation d'une fiche n'est pas permise."""
    if not can_manage_owned_resource(profile, resource_owner_id):
        raise PermissionDenied("not_owner", "only the owner or an admin may modify this item")


@dataclass(frozen=True)
class RouteRule:
    """Règle d'accès d'une route de l'interface (`:param` = segment variable)."""

    pattern: str
    auth_required: bool = False
    roles: frozenset[Role] = frozenset()

    def matches(self, path: str) -> bool:
        expected = [s for s in self.pattern.split("/") if s]
        actual = [s for s in path.split("/") if s]
        if len(expected) != len(actual):
            return False
        return all(e.startswith(":") or e == a for e, a in zip(expected, actual, strict=True))


ROUTES: tuple[RouteRule, ...] = (
    RouteRule("/auth"),
    RouteRule("/"),
    RouteRule("/catalog"),
    RouteRule("/places/:id"),
    RouteRule("/artists/:id"),
    RouteRule("/rentals/:id"),
    RouteRule("/profile", auth_required=True),
    RouteRule("/profile/settings", auth_required=True),
    RouteRule("/profile/favorites", auth_required=True),
    RouteRule("/profile/history", auth_required=True),
    RouteRule("/profile/services", auth_required=True, roles=PARTNER_ROLES),
    RouteRule("/create-service/:type", auth_required=True, roles=PARTNER_ROLES),
    RouteRule("/edit-service/:type/:id", auth_required=True, roles=PARTNER_ROLES),
    RouteRule("/admin", auth_required=True, roles=ADMIN_ROLES),
)


def match_route(path: str) -> RouteRule | None:
    """Retourne la règle correspondant au chemin (sans query string), ou None (404)."""
    bare = path.split("?", 1)[0].split("#", 1)[0] or "/"
    return next((rule for rule in ROUTES if rule.matches(bare)), None)


@dataclass(frozen=True)
class SessionState:
    """Instantané de session consulté par le garde."""

    identity: Identity | None = None
    profile: Profile | None = None
    loading: bool = False


@dataclass(frozen=True)
class GuardDecision:
    """Résultat du garde de navigation."""

    action: Literal["loading", "redirect", "render", "not_found"]
    location: str | None = None
    from_path: str | None = None
    reason: str | None = None


def guard_route(state: SessionState, path: str) -> GuardDecision:
    """Évalue l'accès à `path` pour l'état de session donné.

    - Session en cours de chargement: décision différée (pas de redirection).
    - Identité absente sur route protégée: redirection vers `/auth`, en conservant `path`.
    - Rôle insuffisant: redirection silencieuse vers l'accueil.
    """
    rule = match_route(path)
    if rule is None:
        return GuardDecision("not_found")
    if not rule.auth_required:
        return GuardDecision("render")
    if state.loading:
        return GuardDecision("loading")
    if state.identity is None:
        return GuardDecision(
            "redirect", location=AUTH_PATH, from_path=path, reason="auth.loginRequired"
        )
    if not can_access(state.identity, state.profile, rule.roles):
        return GuardDecision("redirect", location=HOME_PATH, reason="auth.insufficientRights")
    return GuardDecision("render")
