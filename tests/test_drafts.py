"""Tests des brouillons de formulaires."""

import json

from kyzmat.domain.drafts import FormDraft, draft_key
from kyzmat.domain.entities import CatalogKind
from kyzmat.infra.kv_store import InMemoryKeyValueStore


def test_draft_keys():
    assert draft_key(CatalogKind.PLACES) == "place-form-draft"
    assert draft_key(CatalogKind.ARTISTS) == "artist-form-draft"
    assert draft_key(CatalogKind.RENTALS) == "rental-form-draft"


def test_save_then_load(notifier):
    store = InMemoryKeyValueStore()
    draft = FormDraft(store, CatalogKind.PLACES, notifier)
    assert draft.save_draft({"name": "Зал"}, "data:image/png;base64,AA==") is True
    assert json.loads(store.get("place-form-draft")) == {
        "formData": {"name": "Зал"},
        "imageUrl": "data:image/png;base64,AA==",
    }
    loaded = draft.load_draft()
    assert loaded.form_data == {"name": "Зал"}
    assert notifier.keys() == ["services.messages.draftSaved", "services.messages.draftLoaded"]


def test_load_missing_notifies(notifier):
    draft = FormDraft(InMemoryKeyValueStore(), CatalogKind.ARTISTS, notifier)
    assert draft.load_draft() is None
    assert notifier.last.key == "services.messages.draftNotFound"


def test_corrupt_draft_notifies_error(notifier):
    store = InMemoryKeyValueStore()
    store.set("rental-form-draft", "{not json")
    draft = FormDraft(store, CatalogKind.RENTALS, notifier)
    assert draft.load_draft() is None
    assert notifier.last.key == "services.messages.draftLoadError"
    assert draft.peek() is None


def test_editing_never_writes_drafts(notifier):
    store = InMemoryKeyValueStore()
    draft = FormDraft(store, CatalogKind.PLACES, notifier, is_editing=True)
    assert draft.save_draft({"name": "x"}, None) is False
    assert store.get("place-form-draft") is None


def test_clear_draft(notifier):
    store = InMemoryKeyValueStore()
    draft = FormDraft(store, CatalogKind.PLACES, notifier)
    draft.save_draft({"name": "x"}, None)
    draft.clear_draft()
    assert draft.peek() is None
