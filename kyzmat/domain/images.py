"""
Image d'un service: sélection, aperçu, progression simulée et envoi différé.

Une seule image par fiche. Le fichier choisi est validé (taille maximale, type `image/*`) puis
affiché immédiatement en aperçu (URL `data:`); l'envoi réel vers le stockage objet n'a lieu qu'à
la soumission du formulaire, et seule la référence retournée remplace l'aperçu.
"""

from __future__ import annotations

import base64
import re
import uuid
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import PurePosixPath

import structlog

from kyzmat.app.metrics import IMAGE_UPLOADS
from kyzmat.core.http_constants import UPLOAD_PROGRESS_CEILING, UPLOAD_PROGRESS_STEP
from kyzmat.domain.errors import UploadError
from kyzmat.domain.notifications import Notifier

log = structlog.get_logger(__name__)

DEFAULT_MAX_BYTES = 5 * 1024 * 1024

_UNSAFE_EXT = re.compile(r"[^a-z0-9]")


@dataclass(frozen=True)
class PendingImage:
    """Fichier local en attente d'envoi."""

    filename: str
    content_type: str
    data: bytes

    @property
    def extension(self) -> str:
        """Extension de stockage, tirée du type validé plutôt que du nom fourni."""
        subtype = _UNSAFE_EXT.sub("", self.content_type.split("/", 1)[-1].lower())
        if subtype:
            return subtype
        return _UNSAFE_EXT.sub("", PurePosixPath(self.filename).suffix.lower()) or "bin"

    def data_url(self) -> str:
        return f"data:{self.content_type};base64,{base64.b64encode(self.data).decode('ascii')}"

    @classmethod
    def from_data_url(cls, url: str, filename: str = "draft") -> PendingImage | None:
        """Reconstruit un fichier en attente depuis un aperçu `data:` (brouillon rechargé).

        Retourne None si l'URL n'est pas un aperçu `data:` base64 lisible. Le contenu n'est
        pas validé ici (voir `check_image_reference`).
        """
        if not url.startswith("data:") or ";base64," not in url:
            return None
        header, encoded = url[5:].split(";base64,", 1)
        try:
            data = base64.b64decode(encoded, validate=True)
        except ValueError:
            return None
        return cls(f"{filename}.{header.split('/', 1)[-1]}", header, data)


def validate_image(content_type: str | None, size: int, max_bytes: int = DEFAULT_MAX_BYTES) -> None:
    """Lève `UploadError` si le fichier dépasse la taille maximale ou n'est pas une image."""
    if size > max_bytes:
        raise UploadError("too_large", f"image exceeds {max_bytes} bytes")
    if not (content_type or "").startswith("image/"):
        raise UploadError("not_image", f"unsupported content type {content_type!r}")


def check_image_reference(
    url: str,
    storage,
    bucket: str,
    owner_id: str | None,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> PendingImage | None:
    """Contrôle une référence d'image venue d'un brouillon.

    Un aperçu `data:` passe par les mêmes règles qu'un fichier choisi (type `image/*`, taille
    maximale) et est retourné comme fichier en attente. Toute autre valeur doit être une URL
    publique sous le préfixe du propriétaire (`{bucket}/{owner_id}/`); on retourne alors None.
    Lève `UploadError` sinon.
    """
    if url.startswith("data:"):
        pending = PendingImage.from_data_url(url)
        if pending is None:
            raise UploadError("invalid_data_url", "unreadable image preview")
        validate_image(pending.content_type, len(pending.data), max_bytes)
        return pending
    if storage.owned_path(bucket, url, owner_id) is None:
        raise UploadError("foreign_reference", "image does not belong to the current user")
    return None


_REASON_KEYS = {
    "too_large": "forms.imageUpload.tooLarge",
    "not_image": "forms.imageUpload.notImage",
}


class ImageUpload:
    """État de l'étape image d'un formulaire."""

    def __init__(
        self,
        storage,
        notifier: Notifier,
        bucket: str = "service-images",
        max_bytes: int = DEFAULT_MAX_BYTES,
        image_url: str | None = None,
        owner_id: str | None = None,
    ):
        self.storage = storage
        self.owner_id = owner_id
        self.notifier = notifier
        self.bucket = bucket
        self.max_bytes = max_bytes
        self.image_url = image_url
        self.pending: PendingImage | None = None
        self.progress = 0
        self.uploading = False

    def select(self, filename: str, content_type: str, data: bytes) -> bool:
        """Accepte un fichier local; en cas de refus, l'état précédent est conservé."""
        try:
            validate_image(content_type, len(data), self.max_bytes)
        except UploadError as err:
            IMAGE_UPLOADS.labels(err.cause).inc()
            self.notifier.error(_REASON_KEYS.get(err.cause, "forms.imageUpload.error"))
            return False
        self.pending = PendingImage(filename, content_type, data)
        self.image_url = self.pending.data_url()
        self.progress = 0
        return True

    def simulate_progress(self) -> Iterator[int]:
        """Progression cosmétique par pas de 10, plafonnée à 90 (sans lien avec un envoi réel)."""
        self.progress = 0
        while self.progress < UPLOAD_PROGRESS_CEILING:
            self.progress += UPLOAD_PROGRESS_STEP
            yield self.progress

    def restore(self, image_url: str | None) -> bool:
        """Réinstalle la référence d'image d'un brouillon.

        La référence est contrôlée comme un fichier choisi; en cas de refus, l'état précédent est
        conservé et une notification est émise.
        """
        if not image_url:
            return False
        try:
            pending = check_image_reference(
                image_url, self.storage, self.bucket, self.owner_id, self.max_bytes
            )
        except UploadError as err:
            IMAGE_UPLOADS.labels(err.cause).inc()
            log.warning("draft_image_rejected", cause=err.cause, owner_id=self.owner_id)
            self.notifier.error(_REASON_KEYS.get(err.cause, "forms.imageUpload.error"))
            return False
        self.image_url = image_url
        self.pending = pending
        return True

    def remove(self) -> None:
        self.image_url = None
        self.pending = None
        self.progress = 0

    def upload(self, owner_id: str) -> str | None:
        """Envoie le fichier en attente et retourne l'URL publique.

        Sans fichier en attente, retourne la référence courante (ex: image existante en
        édition). En cas d'échec, notifie et retourne None; l'aperçu reste inchangé.
        """
        if self.pending is None:
            return self.image_url
        path = f"{owner_id}/{uuid.uuid4()}.{self.pending.extension}"
        self.uploading = True
        try:
            self.storage.upload(
                self.bucket,
                path,
                self.pending.data,
                cache_control="3600",
                upsert=False,
                on_progress=self._on_progress,
            )
        except UploadError as err:
            IMAGE_UPLOADS.labels("failed").inc()
            log.error("image_upload_failed", path=path, cause=err.cause)
            self.notifier.error("forms.imageUpload.error", err.message)
            return None
        finally:
            self.uploading = False
        IMAGE_UPLOADS.labels("ok").inc()
        self.image_url = self.storage.get_public_url(self.bucket, path)
        self.pending = None
        return self.image_url

    def _on_progress(self, percent: int) -> None:
        self.progress = percent
