"""
Stockage objet des images de services.

Interface minimale (`upload`, `get_public_url`, `remove`) et implémentation sur système de
fichiers: un répertoire par bucket, chemins relatifs `{owner_id}/{uuid}.{ext}`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path, PurePosixPath

import structlog

from kyzmat.domain.errors import NotFoundError, UploadError

log = structlog.get_logger(__name__)

ProgressCallback = Callable[[int], None]


class ObjectStorage(ABC):
    """Interface abstraite du collaborateur de stockage objet."""

    @abstractmethod
    def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        *,
        cache_control: str = "3600",
        upsert: bool = False,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        """Écrit `data` sous `bucket/path` et retourne le chemin."""
        ...

    @abstractmethod
    def get_public_url(self, bucket: str, path: str) -> str:
        """URL publique d'un objet."""
        ...

    @abstractmethod
    def remove(self, bucket: str, paths: list[str]) -> None:
        """Supprime des objets (les absents sont ignorés)."""
        ...

    def path_from_url(self, bucket: str, url: str) -> str:
        """Extrait le chemin d'objet d'une URL publique (`.../{bucket}/{path}`)."""
        marker = f"/{bucket}/"
        return url.split(marker, 1)[1] if marker in url else url

    def owned_path(self, bucket: str, url: str, owner_id: str | None) -> str | None:
        """Chemin d'objet d'une URL publique appartenant à `owner_id`, sinon None.

        L'URL doit commencer par le préfixe public du propriétaire et ne contenir aucun segment
        `..`.
        """
        if not owner_id or not url.startswith(self.get_public_url(bucket, f"{owner_id}/")):
            return None
        path = self.path_from_url(bucket, url)
        parts = PurePosixPath(path).parts
        if len(parts) < 2 or parts[0] != owner_id or ".." in parts or "." in parts:
            return None
        return path


class FileSystemObjectStorage(ObjectStorage):
    """Stockage objet sur disque local."""

    def __init__(self, root: str, public_base_url: str):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    def _resolve(self, bucket: str, path: str) -> Path:
        base = (self.root / bucket).resolve()
        target = (base / path).resolve()
        if base not in target.parents:
            raise UploadError("invalid_path", path)
        return target

    def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        *,
        cache_control: str = "3600",
        upsert: bool = False,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        target = self._resolve(bucket, path)
        if target.exists() and not upsert:
            raise UploadError("duplicate", f"{bucket}/{path} already exists")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as err:
            log.error("storage_upload_failed", bucket=bucket, path=path, error=str(err))
            raise UploadError("storage_failed", str(err)) from err
        if on_progress:
            on_progress(100)
        log.info("storage_uploaded", bucket=bucket, path=path, size=len(data))
        return path

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base_url}/{bucket}/{path}"

    def remove(self, bucket: str, paths: list[str]) -> None:
        for path in paths:
            target = self._resolve(bucket, path)
            target.unlink(missing_ok=True)

    def locate(self, bucket: str, path: str) -> Path:
        """Fichier d'un objet existant (service des URL publiques)."""
        try:
            target = self._resolve(bucket, path)
        except UploadError as err:
            raise NotFoundError("object_not_found", path) from err
        if not target.is_file():
            raise NotFoundError("object_not_found", path)
        return target
