"""
Routes publiques du catalogue (lieux, artistes, locations).

La collection complète est chargée puis filtrée (`q`, sur les champs de base) et triée par prix
(`sort`), et chaque fiche est rendue dans la langue de la requête, avec repli sur le champ de
base quand la traduction manque.
"""

from typing import Literal

from fastapi import APIRouter, Depends, Query

from kyzmat.api.deps import get_container, get_language, get_notifier
from kyzmat.api.schemas import CatalogListResponse, notifications_out
from kyzmat.core.container import Container
from kyzmat.domain.entities import CatalogKind
from kyzmat.domain.localization import Language
from kyzmat.domain.notifications import Notifier

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get("/{kind}", response_model=CatalogListResponse)
def list_catalog(
    kind: CatalogKind,
    q: str = Query(""),
    sort: Literal["default", "asc", "desc"] = Query("default"),
    language: Language = Depends(get_language),
    notifier: Notifier = Depends(get_notifier),
    c: Container = Depends(get_container),
):
    """Collection d'un type; un échec de chargement donne une liste vide et une notification."""
    rows = c.catalog.search(kind, q, sort, notifier)
    return CatalogListResponse(
        kind=kind.value,
        language=language.value,
        items=[c.catalog.localized(kind, r, language) for r in rows],
        notifications=notifications_out(notifier.history),
    )


@router.get("/{kind}/{item_id}")
def get_catalog_item(
    kind: CatalogKind,
    item_id: str,
    language: Language = Depends(get_language),
    c: Container = Depends(get_container),
):
    """Fiche détaillée localisée; 404 si absente."""
    return c.catalog.localized(kind, c.catalog.get_item(kind, item_id), language)
