from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional
from urllib.parse import quote

from starlette.datastructures import UploadFile

from ..core.errors import StoreError
from ..crud.pantallas import create_pantalla, delete_pantalla
from ..schemas.pantalla import PantallaPayload
from ..store import RestStore

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 5 * 1024 * 1024
ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


class ImageValidationError(ValueError):
    """The submitted photo cannot be stored."""


@dataclass
class ImageFile:
    content: bytes
    content_type: str
    filename: str = ""

    @classmethod
    def from_upload(cls, upload: Any) -> Optional["ImageFile"]:
        """Read a multipart upload; an empty file input yields ``None``."""

        if not isinstance(upload, UploadFile) or not upload.filename:
            return None
        content = upload.file.read()
        if not content:
            return None
        return cls(content=content, content_type=(upload.content_type or "").lower(), filename=upload.filename)


def ensure_image_file_is_valid(image: ImageFile) -> None:
    if not image.content_type.startswith("image/"):
        raise ImageValidationError("El archivo seleccionado no es una imagen.")
    if image.content_type not in ALLOWED_IMAGE_TYPES:
        raise ImageValidationError("Formato de imagen no soportado. Usa JPG, PNG, WEBP o GIF.")
    if not image.content:
        raise ImageValidationError("La imagen seleccionada esta vacia.")
    if len(image.content) > MAX_IMAGE_BYTES:
        raise ImageValidationError("La imagen supera el tamano maximo de 5 MB.")


def pantalla_prefix(pantalla_id: int) -> str:
    return f"pantallas/{pantalla_id}"


def upload_pantalla_image(
    store: RestStore,
    bucket: str,
    pantalla_id: int,
    image: ImageFile,
    *,
    now: datetime | None = None,
) -> str:
    ensure_image_file_is_valid(image)
    stamp = int((now or datetime.now(timezone.utc)).timestamp() * 1000)
    extension = ALLOWED_IMAGE_TYPES[image.content_type]
    path = f"{pantalla_prefix(pantalla_id)}/{stamp}.{extension}"
    return store.upload_object(bucket, path, image.content, image.content_type, upsert=True)


def find_pantalla_image(store: RestStore, bucket: str, pantalla_id: int) -> Optional[str]:
    """Path of the newest photo stored for the pantalla, if any."""

    prefix = pantalla_prefix(pantalla_id)
    entries = store.list_objects(bucket, prefix)
    names = sorted(
        entry["name"]
        for entry in entries
        if entry.get("name") and entry.get("id") is not None
    )
    if not names:
        return None
    return f"{prefix}/{names[-1]}"


def thumbnail_url(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    return f"/api/storage/image?path={quote(path, safe='')}"


def remove_pantalla_images(store: RestStore, bucket: str, pantalla_id: int) -> None:
    """Delete every stored photo of the pantalla. Failures are logged only."""

    prefix = pantalla_prefix(pantalla_id)
    try:
        entries = store.list_objects(bucket, prefix)
        paths = [f"{prefix}/{entry['name']}" for entry in entries if entry.get("name")]
        store.remove_objects(bucket, paths)
    except StoreError:
        logger.warning("Could not remove photos of pantalla %s", pantalla_id, exc_info=True)


def sanitize_path(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    trimmed = path.strip()
    if not trimmed or ".." in trimmed:
        return None
    normalized = trimmed.lstrip("/\\")
    return normalized or None


def create_pantalla_with_photo(
    store: RestStore,
    bucket: str,
    payload: PantallaPayload,
    image: Optional[ImageFile],
) -> int:
    """Create the pantalla and upload its photo.

    When the upload fails the new row is deleted again and ``StoreError`` is
    raised with a message saying the photo was the reason.
    """

    if image is not None:
        ensure_image_file_is_valid(image)

    pantalla_id = create_pantalla(store, payload)
    if image is None:
        return pantalla_id

    try:
        upload_pantalla_image(store, bucket, pantalla_id, image)
    except StoreError as exc:
        try:
            delete_pantalla(store, pantalla_id)
        except StoreError:
            logger.error("Could not clean up pantalla %s after a failed upload", pantalla_id, exc_info=True)
        raise StoreError(
            f"La pantalla no se pudo crear porque falló la subida de la foto: {exc}",
            status_code=exc.status_code,
            details=exc.details,
        ) from exc
    return pantalla_id
