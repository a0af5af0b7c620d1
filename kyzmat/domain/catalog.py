"""
Catalogue: lecture des collections, recherche/tri et mutations contrôlées.

Les collections sont toujours chargées en entier (pas de pagination ni de filtrage côté
stockage) et conservées dans un cache clé -> résultat, invalidé explicitement après chaque
mutation du type concerné. Un échec de chargement produit une liste vide et une notification,
jamais une exception.
"""

from __future__ import annotations

import re
import threading
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Literal

import structlog

from kyzmat.app.metrics import CATALOG_LOAD_ERRORS, CATALOG_MUTATIONS
from kyzmat.domain.authz import PARTNER_ROLES, can_access, ensure_can_manage
from kyzmat.domain.entities import CatalogKind, Identity, Profile, localized_fields, writable_columns
from kyzmat.domain.errors import DomainError, NotFoundError, PermissionDenied, PersistenceError
from kyzmat.domain.localization import Language, localize_record
from kyzmat.domain.notifications import Notifier

log = structlog.get_logger(__name__)

PriceSort = Literal["default", "asc", "desc"]

_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")


def parse_price(value: Any) -> int:
    """Lit le préfixe entier d'un prix (`"1500 сом"` -> 1500); 0 si illisible ou absent."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int | float):
        return int(value)
    m = _INT_PREFIX.match(value or "") if isinstance(value, str) else None
    return int(m.group(1)) if m else 0


def _field(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def filter_and_sort(items: Iterable[Any], search_text: str = "", price_sort: PriceSort = "default") -> list[Any]:
    """Filtre par sous-chaîne (nom ou description de base) puis trie par prix.

    La recherche porte sur les champs de base uniquement, pas sur les valeurs localisées.
    Le tri est stable; `default` conserve l'ordre d'origine.
    """
    needle = (search_text or "").lower()
    out = [
        item
        for item in items
        if needle in (_field(item, "name") or "").lower()
        or needle in (_field(item, "description") or "").lower()
    ] if needle else list(items)
    if price_sort == "asc":
        out.sort(key=lambda i: parse_price(_field(i, "price")))
    elif price_sort == "desc":
        out.sort(key=lambda i: parse_price(_field(i, "price")), reverse=True)
    return out


class QueryCache:
    """Cache clé -> résultat avec invalidation explicite, partagé entre threads.

    Le chargement se fait hors verrou. Un résultat n'est conservé que si aucune invalidation
    n'a eu lieu pendant son chargement: une lecture commencée avant une mutation ne peut pas
    réinstaller une collection périmée.
    """

    def __init__(self):
        self._data: dict[str, Any] = {}
        self._lock = threading.Lock()
        self._generation = 0

    def fetch(self, key: str, loader: Callable[[], Any]) -> Any:
        with self._lock:
            if key in self._data:
                return self._data[key]
            generation = self._generation
        value = loader()
        with self._lock:
            if self._generation == generation:
                self._data[key] = value
        return value

    def invalidate(self, prefix: str) -> None:
        """Oublie toutes les clés commençant par `prefix`."""
        with self._lock:
            self._generation += 1
            for key in [k for k in self._data if k.startswith(prefix)]:
                del self._data[key]


class CatalogService:
    """Service de catalogue (lieux, artistes, locations).

    Responsabilités:
    - Charger les collections via les dépôts de tables, avec cache.
    - Appliquer la règle de propriété à chaque mutation d'une fiche.
    - Retirer l'image stockée lors d'une suppression.
    """

    def __init__(self, repos, storage=None, bucket: str = "service-images"):
        """Paramètres:
        - repos: dict `CatalogKind -> CatalogTableRepo`.
        - storage: stockage objet (optionnel) pour nettoyer les images supprimées.
        - bucket: bucket des images de services.
        """
        self.repos = repos
        self.storage = storage
        self.bucket = bucket
        self.cache = QueryCache()

    def _repo(self, kind: CatalogKind):
        return self.repos[CatalogKind(kind)]

    def list_items(self, kind: CatalogKind, notifier: Notifier | None = None) -> list[dict[str, Any]]:
        """Collection complète d'un type; liste vide et notification en cas d'échec."""
        kind = CatalogKind(kind)
        try:
            return self.cache.fetch(kind.value, self._repo(kind).select)
        except PersistenceError as err:
            CATALOG_LOAD_ERRORS.labels(kind.value).inc()
            log.error("catalog_load_failed", kind=kind.value, cause=err.cause)
            if notifier:
                notifier.error("catalog.loadError", err.message)
            return []

    def list_owned(
        self, kind: CatalogKind, owner_id: str, notifier: Notifier | None = None
    ) -> list[dict[str, Any]]:
        """Fiches d'un propriétaire (panneau "mes services")."""
        kind = CatalogKind(kind)
        try:
            return self.cache.fetch(
                f"{kind.value}:owner:{owner_id}",
                lambda: self._repo(kind).select(owner_id=owner_id),
            )
        except PersistenceError as err:
            CATALOG_LOAD_ERRORS.labels(kind.value).inc()
            if notifier:
                notifier.error("catalog.loadError", err.message)
            return []

    def get_item(self, kind: CatalogKind, item_id: str) -> dict[str, Any]:
        """Retourne une fiche; `NotFoundError` si absente."""
        row = self._repo(kind).get(item_id)
        if row is None:
            raise NotFoundError("item_not_found", f"{CatalogKind(kind).value}/{item_id}")
        return row

    def localized(self, kind: CatalogKind, record: Mapping[str, Any], language: Language) -> dict[str, Any]:
        """Vue d'une fiche avec ses champs résolus dans `language`."""
        return localize_record(record, localized_fields(CatalogKind(kind)), language)

    def search(
        self,
        kind: CatalogKind,
        search_text: str = "",
        price_sort: PriceSort = "default",
        notifier: Notifier | None = None,
    ) -> list[dict[str, Any]]:
        """Collection filtrée et triée."""
        return filter_and_sort(self.list_items(kind, notifier), search_text, price_sort)

    def _invalidate(self, kind: CatalogKind) -> None:
        self.cache.invalidate(kind.value)

    def _clean(self, kind: CatalogKind, values: Mapping[str, Any]) -> dict[str, Any]:
        allowed = set(writable_columns(kind)) | {"image_url"}
        return {k: v for k, v in values.items() if k in allowed}

    def create_item(
        self, kind: CatalogKind, identity: Identity | None, profile: Profile | None, values: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Crée une fiche appartenant à l'identité courante (partenaire ou admin)."""
        kind = CatalogKind(kind)
        if not can_access(identity, profile, PARTNER_ROLES):
            raise PermissionDenied("partner_required", "only partners and admins may create items")
        data = self._clean(kind, values)
        data["owner_id"] = identity.id
        row = self._repo(kind).insert(data)
        self._invalidate(kind)
        CATALOG_MUTATIONS.labels(kind.value, "create").inc()
        log.info("catalog_item_created", kind=kind.value, item_id=row["id"], owner_id=identity.id)
        return row

    def update_item(
        self, kind: CatalogKind, profile: Profile | None, item_id: str, values: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Met à jour une fiche; réservé au propriétaire ou à un administrateur."""
        kind = CatalogKind(kind)
        existing = self.get_item(kind, item_id)
        ensure_can_manage(profile, existing["owner_id"])
        rows = self._repo(kind).update(self._clean(kind, values), id=item_id)
        self._invalidate(kind)
        CATALOG_MUTATIONS.labels(kind.value, "update").inc()
        return rows[0] if rows else existing

    def delete_item(self, kind: CatalogKind, profile: Profile | None, item_id: str) -> None:
        """Suppression définitive d'une fiche et, si possible, de son image."""
        kind = CatalogKind(kind)
        existing = self.get_item(kind, item_id)
        ensure_can_manage(profile, existing["owner_id"])
        self._repo(kind).delete(id=item_id)
        self._invalidate(kind)
        CATALOG_MUTATIONS.labels(kind.value, "delete").inc()
        log.info("catalog_item_deleted", kind=kind.value, item_id=item_id)
        self._remove_image(existing.get("image_url"), existing["owner_id"])

    def _remove_image(self, image_url: str | None, owner_id: str) -> None:
        # seuls les objets rangés sous le préfixe du propriétaire de la fiche sont supprimés
        if not image_url or self.storage is None:
            return
        path = self.storage.owned_path(self.bucket, image_url, owner_id)
        if path is None:
            log.warning("catalog_image_not_owned", owner_id=owner_id)
            return
        try:
            self.storage.remove(self.bucket, [path])
        except (DomainError, OSError) as err:
            log.warning("catalog_image_remove_failed", path=path, error=str(err))
