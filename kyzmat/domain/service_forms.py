"""
Formulaires de services (création et édition des fiches de catalogue).

Chaque type de fiche dispose d'un schéma de validation et de quatre étapes: informations de
base, image, description, contacts. Les champs localisables existent en deux saisies: langue par
défaut (champ de base) et langue alternative (champ `_ru`), selon
`resolve_writable_field_name`.

`ServiceForm` assemble l'assistant d'étapes, le brouillon (création uniquement) et l'image, et
réalise la soumission: validation, envoi de l'image, écriture en base, effacement du brouillon.
"""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from kyzmat.domain.drafts import FormDraft
from kyzmat.domain.entities import CatalogKind, Identity, Profile, localized_fields
from kyzmat.domain.errors import DomainError, FormValidationError, UploadError
from kyzmat.domain.images import DEFAULT_MAX_BYTES, ImageUpload
from kyzmat.domain.localization import Language, Translator, resolve_writable_field_name
from kyzmat.domain.notifications import Notifier
from kyzmat.domain.step_form import REQUIRED_KEY, Step, StepForm

log = structlog.get_logger(__name__)


class _ServiceFormData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=2)
    name_ru: str | None = None
    description: str | None = None
    description_ru: str | None = None
    price: str | None = None
    price_ru: str | None = None
    contacts: str | None = None
    contacts_ru: str | None = None


class PlaceFormData(_ServiceFormData):
    address: str = Field(min_length=5)
    address_ru: str | None = None
    capacity: str | None = None
    capacity_ru: str | None = None


class ArtistFormData(_ServiceFormData):
    genre: str | None = None
    genre_ru: str | None = None
    experience: str | None = None
    experience_ru: str | None = None


class RentalFormData(_ServiceFormData):
    specs: str | None = None
    specs_ru: str | None = None


FORM_SCHEMAS: dict[CatalogKind, type[_ServiceFormData]] = {
    CatalogKind.PLACES: PlaceFormData,
    CatalogKind.ARTISTS: ArtistFormData,
    CatalogKind.RENTALS: RentalFormData,
}

# Champs obligatoires de l'étape "informations de base"
REQUIRED_FIELDS: dict[CatalogKind, tuple[str, ...]] = {
    CatalogKind.PLACES: ("name", "address"),
    CatalogKind.ARTISTS: ("name",),
    CatalogKind.RENTALS: ("name",),
}

_BASIC_FIELDS: dict[CatalogKind, tuple[str, ...]] = {
    CatalogKind.PLACES: ("name", "address", "capacity"),
    CatalogKind.ARTISTS: ("name", "genre", "experience"),
    CatalogKind.RENTALS: ("name", "specs"),
}

_MESSAGE_KEYS = {"name": "forms.validation.nameMin", "address": "forms.validation.addressMin"}


def bilingual(field: str) -> tuple[str, str]:
    """Les deux clés de saisie d'un champ localisable (langue par défaut, langue alternative)."""
    return (
        resolve_writable_field_name(field, Language.KY),
        resolve_writable_field_name(field, Language.RU),
    )


def form_fields(kind: CatalogKind) -> tuple[str, ...]:
    """Toutes les clés de saisie d'un formulaire de ce type."""
    return tuple(key for f in localized_fields(CatalogKind(kind)) for key in bilingual(f))


def validate_form(kind: CatalogKind, values: dict[str, Any]) -> _ServiceFormData:
    """Valide les valeurs saisies; `FormValidationError` avec une clé de message par champ."""
    cleaned = {k: (v if v != "" else None) for k, v in values.items()}
    for required in REQUIRED_FIELDS[CatalogKind(kind)]:
        cleaned[required] = values.get(required) or ""
    try:
        return FORM_SCHEMAS[CatalogKind(kind)].model_validate(cleaned)
    except ValidationError as err:
        errors: dict[str, str] = {}
        for e in err.errors():
            field = str(e["loc"][0]) if e["loc"] else "__root__"
            errors[field] = _MESSAGE_KEYS.get(field, e["msg"])
        raise FormValidationError(errors) from err


class ServiceForm:
    """Contrôleur d'un formulaire de service (création ou édition)."""

    def __init__(
        self,
        kind: CatalogKind,
        catalog,
        draft_store,
        storage,
        notifier: Notifier,
        identity: Identity,
        profile: Profile | None,
        initial: dict[str, Any] | None = None,
        translator: Translator | None = None,
        bucket: str = "service-images",
        max_bytes: int = DEFAULT_MAX_BYTES,
    ):
        self.kind = CatalogKind(kind)
        self.catalog = catalog
        self.notifier = notifier
        self.identity = identity
        self.profile = profile
        self.initial = initial
        self.is_editing = initial is not None
        self.translator = translator or notifier.translator
        self.fields = form_fields(self.kind)
        self.values: dict[str, Any] = {k: (initial or {}).get(k) or "" for k in self.fields}
        self.image = ImageUpload(
            storage, notifier, bucket=bucket, max_bytes=max_bytes, owner_id=identity.id
        )
        if initial:
            self.image.image_url = initial.get("image_url")
        self.draft = FormDraft(draft_store, self.kind, notifier, is_editing=self.is_editing)
        self.wizard = StepForm(
            steps=self._build_steps(),
            on_submit=self._submit,
            notifier=notifier,
            save_draft=None if self.is_editing else self.save_draft,
        )
        self.result: dict[str, Any] | None = None
        self.errors: dict[str, str] = {}
        self.failure: DomainError | None = None

    def _title(self, key: str) -> str:
        if self.translator is None:
            return key
        return self.translator.t(key, self.notifier.language)

    def _basic_valid(self) -> bool:
        return all(self.values.get(f) for f in REQUIRED_FIELDS[self.kind])

    def _build_steps(self) -> list[Step]:
        basic = tuple(k for f in _BASIC_FIELDS[self.kind] for k in bilingual(f))
        return [
            Step("basic-info", self._title("services.steps.basicInfo"), basic, self._basic_valid),
            Step("image", self._title("services.steps.image"), ("image_url",), True),
            Step("description", self._title("services.steps.description"), bilingual("description"), True),
            Step(
                "contacts",
                self._title("services.steps.contacts"),
                bilingual("price") + bilingual("contacts"),
                True,
            ),
        ]

    # -- saisie ---------------------------------------------------------------

    def set_field(self, field: str, value: Any, language: Language | None = None) -> None:
        """Affecte une saisie; `language` choisit la clé (base ou `_ru`)."""
        key = resolve_writable_field_name(field, language) if language else field
        if key not in self.fields:
            raise KeyError(key)
        self.values[key] = value

    def update(self, values: dict[str, Any]) -> None:
        """Affecte plusieurs saisies; les clés inconnues sont ignorées."""
        for key, value in values.items():
            if key in self.fields:
                self.values[key] = value if value is not None else ""

    # -- brouillon --------------------------------------------------------------

    def save_draft(self) -> bool:
        return self.draft.save_draft(self.values, self.image.image_url)

    def load_draft(self) -> bool:
        """Remplace les saisies et l'image par celles du brouillon, s'il existe."""
        draft = self.draft.load_draft()
        if draft is None:
            return False
        self.update(draft.form_data)
        self.image.restore(draft.image_url)
        return True

    # -- soumission ---------------------------------------------------------------

    def submit(self) -> dict[str, Any] | None:
        """Soumet depuis la dernière étape; retourne la fiche enregistrée ou None."""
        self.result = None
        self.failure = None
        if not self.wizard.submit() and self.failure is None:
            invalid = self.wizard.invalid_steps()
            if invalid:
                self.failure = FormValidationError({s: REQUIRED_KEY for s in invalid})
        return self.result

    def complete(self) -> dict[str, Any] | None:
        """Parcourt les étapes restantes puis soumet (formulaire rempli d'un seul tenant)."""
        while not self.wizard.is_last:
            if not self.wizard.go_to(self.wizard.index + 1):
                self.notifier.error(REQUIRED_KEY)
                self.failure = FormValidationError({self.wizard.current.id: REQUIRED_KEY})
                return None
        return self.submit()

    def _submit(self) -> None:
        try:
            data = validate_form(self.kind, self.values)
        except FormValidationError as err:
            self.errors = err.errors
            self.failure = err
            self.notifier.error(REQUIRED_KEY)
            return
        had_pending = self.image.pending is not None
        image_url = self.image.upload(self.identity.id)
        if had_pending and image_url is None:
            self.failure = UploadError("storage_failed", "image upload failed")
            return
        payload = data.model_dump()
        payload["image_url"] = image_url
        try:
            if self.is_editing:
                row = self.catalog.update_item(self.kind, self.profile, self.initial["id"], payload)
                self.notifier.info("services.messages.updateSuccess")
            else:
                row = self.catalog.create_item(self.kind, self.identity, self.profile, payload)
                self.draft.clear_draft()
                self.notifier.info("services.messages.createSuccess")
        except DomainError as err:
            key = "updateError" if self.is_editing else "createError"
            log.error("service_form_submit_failed", kind=self.kind.value, cause=err.cause)
            self.failure = err
            self.notifier.error(f"services.messages.{key}", err.message)
            return
        self.result = row
