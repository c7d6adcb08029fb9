from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from ..core.config import get_settings
from ..core.errors import StoreError
from ..crud.equipos import delete_equipo, get_equipo, list_equipos
from ..crud.pantallas import delete_pantalla
from ..deps.admin import require_admin_session
from ..schemas.equipo import EquipoRecord
from ..services.images import remove_pantalla_images
from ..store import RestStore, get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["equipos"])


@router.get("/equipos", response_model=list[EquipoRecord])
def api_list_equipos(store: RestStore = Depends(get_store)):
    return list_equipos(store)


@router.get("/equipos/{equipo_id}", response_model=EquipoRecord)
def api_get_equipo(equipo_id: str, store: RestStore = Depends(get_store)):
    equipo = get_equipo(store, equipo_id)
    if not equipo:
        raise HTTPException(404, "Equipo no encontrado")
    return equipo


@router.delete("/equipos/{equipo_id}", dependencies=[Depends(require_admin_session)])
def api_delete_equipo(equipo_id: str, store: RestStore = Depends(get_store)):
    if not equipo_id.strip():
        return JSONResponse({"error": "Identificador no proporcionado."}, status_code=400)
    try:
        delete_equipo(store, equipo_id.strip())
    except StoreError as exc:
        return JSONResponse({"error": str(exc) or "No se pudo eliminar el equipo."}, status_code=500)
    logger.info("Equipo deleted", extra={"extra_data": {"equipo_id": equipo_id}})
    return {"success": True}


@router.delete("/pantallas/{pantalla_id}", dependencies=[Depends(require_admin_session)])
def api_delete_pantalla(pantalla_id: str, store: RestStore = Depends(get_store)):
    try:
        parsed_id = int(pantalla_id.strip())
    except ValueError:
        return JSONResponse({"error": "Identificador de pantalla no valido."}, status_code=400)
    try:
        delete_pantalla(store, parsed_id)
    except StoreError as exc:
        return JSONResponse({"error": str(exc) or "No se pudo eliminar la pantalla."}, status_code=500)
    remove_pantalla_images(store, get_settings().STORAGE_BUCKET, parsed_id)
    logger.info("Pantalla deleted", extra={"extra_data": {"pantalla_id": parsed_id}})
    return {"success": True}
