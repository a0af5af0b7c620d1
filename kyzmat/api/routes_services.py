"""
Routes de gestion des services (création, édition, suppression, brouillons).

Les formulaires arrivent en `multipart/form-data`: un champ `payload` (objet JSON des saisies,
clés de base pour le kirghiz et suffixe `_ru` pour le russe) et un fichier `image` optionnel.
Le formulaire est rejoué côté serveur par `ServiceForm`, étape par étape, avant l'écriture.
Réservé aux partenaires et administrateurs; l'édition et la suppression exigent en plus d'être
propriétaire de la fiche (ou administrateur).
"""

import json
from typing import Any

import structlog
from fastapi import APIRouter, Depends, File, Form, Response, UploadFile

from kyzmat.api.deps import (
    get_container,
    get_current_identity,
    get_draft_store,
    get_notifier,
    require_roles,
)
from kyzmat.api.schemas import ServiceResponse, notifications_out
from kyzmat.core.container import Container
from kyzmat.core.http_constants import HTTP_CREATED, HTTP_NO_CONTENT
from kyzmat.domain.authz import PARTNER_ROLES, ensure_can_manage
from kyzmat.domain.drafts import FormDraft
from kyzmat.domain.entities import CatalogKind, Draft, Identity, Profile
from kyzmat.domain.errors import FormValidationError, NotFoundError
from kyzmat.domain.images import check_image_reference, validate_image
from kyzmat.domain.notifications import Notifier
from kyzmat.domain.service_forms import ServiceForm

router = APIRouter(prefix="/services", tags=["services"])
log = structlog.get_logger(__name__)
partner_dep = Depends(require_roles(*PARTNER_ROLES))


def _parse_payload(payload: str) -> dict[str, Any]:
    try:
        data = json.loads(payload or "{}")
    except ValueError as err:
        raise FormValidationError({"payload": "invalid_json"}) from err
    if not isinstance(data, dict):
        raise FormValidationError({"payload": "invalid_json"})
    return data


def _attach_image(form: ServiceForm, image: UploadFile | None, max_bytes: int) -> None:
    if image is None or not image.filename:
        return
    data = image.file.read()
    # refus explicite (413/415) plutôt qu'une simple notification
    validate_image(image.content_type, len(data), max_bytes)
    form.image.select(image.filename, image.content_type, data)


def _build_form(
    c: Container,
    kind: CatalogKind,
    draft_store,
    notifier: Notifier,
    identity: Identity,
    profile: Profile | None,
    initial: dict[str, Any] | None = None,
) -> ServiceForm:
    return ServiceForm(
        kind,
        c.catalog,
        draft_store,
        c.object_storage,
        notifier,
        identity,
        profile,
        initial=initial,
        translator=c.translator,
        bucket=c.settings.STORAGE_BUCKET,
        max_bytes=c.settings.IMAGE_MAX_BYTES,
    )


def _finish(form: ServiceForm, notifier: Notifier) -> ServiceResponse:
    row = form.complete()
    if row is None:
        raise form.failure or FormValidationError(form.errors or {"form": "forms.required"})
    return ServiceResponse(item=row, notifications=notifications_out(notifier.history))


# -- brouillons (déclarés avant les routes `/{item_id}`) ---------------------


@router.get("/{kind}/draft", response_model=Draft, response_model_by_alias=True)
def read_draft(
    kind: CatalogKind,
    draft_store=Depends(get_draft_store),
    notifier: Notifier = Depends(get_notifier),
    _profile=partner_dep,
):
    draft = FormDraft(draft_store, kind, notifier).load_draft()
    if draft is None:
        last = notifier.last
        raise NotFoundError("draft_not_found", last.description if last else None)
    return draft


@router.put("/{kind}/draft", response_model=Draft, response_model_by_alias=True)
def save_draft(
    kind: CatalogKind,
    body: Draft,
    identity: Identity = Depends(get_current_identity),
    draft_store=Depends(get_draft_store),
    notifier: Notifier = Depends(get_notifier),
    _profile=partner_dep,
    c: Container = Depends(get_container),
):
    """Enregistre le brouillon; l'image est contrôlée comme un fichier envoyé."""
    if body.image_url:
        check_image_reference(
            body.image_url,
            c.object_storage,
            c.settings.STORAGE_BUCKET,
            identity.id,
            c.settings.IMAGE_MAX_BYTES,
        )
    FormDraft(draft_store, kind, notifier).save_draft(body.form_data, body.image_url)
    return body


@router.delete("/{kind}/draft", status_code=HTTP_NO_CONTENT)
def delete_draft(
    kind: CatalogKind,
    draft_store=Depends(get_draft_store),
    notifier: Notifier = Depends(get_notifier),
    _profile=partner_dep,
):
    FormDraft(draft_store, kind, notifier).clear_draft()
    return Response(status_code=HTTP_NO_CONTENT)


# -- fiches --------------------------------------------------------------------


@router.post("/{kind}", response_model=ServiceResponse, status_code=HTTP_CREATED)
def create_service(
    kind: CatalogKind,
    payload: str = Form("{}"),
    use_draft: bool = Form(False),
    image: UploadFile | None = File(None),
    identity: Identity = Depends(get_current_identity),
    profile: Profile | None = partner_dep,
    draft_store=Depends(get_draft_store),
    notifier: Notifier = Depends(get_notifier),
    c: Container = Depends(get_container),
):
    """Crée une fiche; `use_draft` reprend d'abord le brouillon enregistré."""
    form = _build_form(c, kind, draft_store, notifier, identity, profile)
    if use_draft:
        form.load_draft()
    form.update(_parse_payload(payload))
    _attach_image(form, image, c.settings.IMAGE_MAX_BYTES)
    return _finish(form, notifier)


@router.put("/{kind}/{item_id}", response_model=ServiceResponse)
def update_service(
    kind: CatalogKind,
    item_id: str,
    payload: str = Form("{}"),
    image: UploadFile | None = File(None),
    remove_image: bool = Form(False),
    identity: Identity = Depends(get_current_identity),
    profile: Profile | None = partner_dep,
    draft_store=Depends(get_draft_store),
    notifier: Notifier = Depends(get_notifier),
    c: Container = Depends(get_container),
):
    """Modifie une fiche existante; les champs absents du `payload` restent inchangés."""
    existing = c.catalog.get_item(kind, item_id)
    ensure_can_manage(profile, existing.get("owner_id"))
    form = _build_form(c, kind, draft_store, notifier, identity, profile, initial=existing)
    form.update(_parse_payload(payload))
    if remove_image:
        form.image.remove()
    _attach_image(form, image, c.settings.IMAGE_MAX_BYTES)
    return _finish(form, notifier)


@router.delete("/{kind}/{item_id}", status_code=HTTP_NO_CONTENT)
def delete_service(
    kind: CatalogKind,
    item_id: str,
    profile: Profile | None = partner_dep,
    c: Container = Depends(get_container),
):
    """Suppression définitive (et retrait de l'image stockée)."""
    c.catalog.delete_item(kind, profile, item_id)
    return Response(status_code=HTTP_NO_CONTENT)
