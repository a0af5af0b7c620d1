"""
Brouillons de formulaires de création.

Un brouillon est un instantané `{formData, imageUrl}` sérialisé en JSON dans le stockage
clé/valeur local, sous la clé `{type}-form-draft`. Il n'existe que pour la création: un
formulaire d'édition n'a pas de brouillon (la fiche existante en tient lieu).
"""

from __future__ import annotations

import json
from typing import Any

import structlog

from kyzmat.core.http_constants import DRAFT_KEY_SUFFIX
from kyzmat.domain.entities import CatalogKind, Draft
from kyzmat.domain.notifications import Notifier

log = structlog.get_logger(__name__)


def draft_key(kind: CatalogKind) -> str:
    """Clé de stockage du brouillon d'un type (`places` -> `place-form-draft`)."""
    singular = {
        CatalogKind.PLACES: "place",
        CatalogKind.ARTISTS: "artist",
        CatalogKind.RENTALS: "rental",
    }[CatalogKind(kind)]
    return f"{singular}{DRAFT_KEY_SUFFIX}"


class FormDraft:
    """Sauvegarde, rechargement et effacement du brouillon d'un type de fiche."""

    def __init__(self, store, kind: CatalogKind, notifier: Notifier, is_editing: bool = False):
        self.store = store
        self.kind = CatalogKind(kind)
        self.key = draft_key(self.kind)
        self.notifier = notifier
        self.is_editing = is_editing

    def save_draft(self, form_data: dict[str, Any], image_url: str | None) -> bool:
        """Écrase le brouillon avec les valeurs courantes; sans effet en édition."""
        if self.is_editing:
            return False
        payload = Draft(form_data=dict(form_data), image_url=image_url)
        self.store.set(self.key, json.dumps(payload.model_dump(by_alias=True)))
        self.notifier.info("services.messages.draftSaved")
        log.debug("draft_saved", key=self.key)
        return True

    def peek(self) -> Draft | None:
        """Lit le brouillon sans notifier (None si absent ou illisible)."""
        raw = self.store.get(self.key)
        if not raw:
            return None
        try:
            return Draft.model_validate(json.loads(raw))
        except ValueError:
            return None

    def load_draft(self) -> Draft | None:
        """Relit le brouillon; notifie "aucun brouillon" s'il n'existe pas."""
        raw = self.store.get(self.key)
        if not raw:
            self.notifier.error("services.messages.draftNotFound")
            return None
        try:
            draft = Draft.model_validate(json.loads(raw))
        except ValueError as err:
            # pydantic.ValidationError et json.JSONDecodeError dérivent de ValueError
            log.error("draft_load_failed", key=self.key, error=str(err))
            self.notifier.error("services.messages.draftLoadError")
            return None
        self.notifier.info("services.messages.draftLoaded")
        return draft

    def clear_draft(self) -> None:
        self.store.delete(self.key)
