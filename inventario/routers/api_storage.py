from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response

from ..core.config import get_settings
from ..core.errors import StoreError
from ..services.images import sanitize_path
from ..store import RestStore, get_store_or_none

router = APIRouter(prefix="/api/storage", tags=["storage"])


@router.get("/image")
def storage_image(
    path: Optional[str] = Query(default=None),
    store: Optional[RestStore] = Depends(get_store_or_none),
):
    """Proxy a stored photo so the browser never needs the store key."""

    if store is None:
        return JSONResponse({"error": "Supabase configuration missing"}, status_code=500)

    sanitized = sanitize_path(path)
    if not sanitized:
        return JSONResponse({"error": "Invalid path"}, status_code=400)

    try:
        stored = store.download_object(get_settings().STORAGE_BUCKET, sanitized)
    except StoreError as exc:
        if exc.status_code is None:
            return JSONResponse({"error": "Unexpected error"}, status_code=500)
        return JSONResponse({"error": "Object not found"}, status_code=exc.status_code)

    headers = {"Cache-Control": "public, max-age=3600"}
    if stored.content_length:
        headers["Content-Length"] = stored.content_length
    return Response(content=stored.content, media_type=stored.content_type, headers=headers)
