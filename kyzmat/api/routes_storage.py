"""
Service des images publiques déposées par les formulaires de services.

Les URL retournées à l'envoi ont la forme `{STORAGE_PUBLIC_BASE_URL}/{bucket}/{path}`.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from kyzmat.api.deps import get_container
from kyzmat.core.container import Container

router = APIRouter(tags=["storage"])

# les objets servis ne sont jamais interprétés comme du contenu actif de l'API
_OBJECT_HEADERS = {
    "Cache-Control": "max-age=3600",
    "X-Content-Type-Options": "nosniff",
    "Content-Security-Policy": "default-src 'none'; sandbox",
}


@router.get("/storage/v1/object/public/{bucket}/{path:path}")
def public_object(bucket: str, path: str, c: Container = Depends(get_container)):
    target = c.object_storage.locate(bucket, path)
    return FileResponse(target, headers=_OBJECT_HEADERS)
