"""HTML pages and form posts.

Listing and report pages are public. Every page that creates or edits
something depends on ``require_admin_session``; a 401 there is turned into a
redirect to ``/acceso`` by the HTTP exception handler.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Iterable, Mapping, Optional
from urllib.parse import quote
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from starlette.datastructures import FormData

from ..core.config import get_settings
from ..core.errors import FormError, StoreError
from ..core.jinja import get_templates
from ..crud.catalogs import (
    list_equipos_catalogo,
    list_fabricantes,
    list_switch_ports_catalogo,
    list_switches_catalogo,
    list_ubicaciones,
    list_usuarios,
)
from ..crud.equipos import create_equipo, get_equipo, list_equipos, sync_actuaciones, update_equipo, upsert_actuaciones
from ..crud.pantallas import get_pantalla, list_pantallas_sin_equipo, update_pantalla
from ..crud.patchpanels import (
    create_patchpanel,
    delete_patchpanel_ports,
    get_patchpanel,
    list_patchpanels,
    update_patchpanel,
    upsert_patchpanel_ports,
)
from ..crud.switches import (
    create_switch,
    delete_switch_ports,
    get_switch,
    list_switches,
    update_switch,
    upsert_switch_ports,
)
from ..deps.admin import is_admin, require_admin_session
from ..schemas.equipo import TIPOS_ACTUACION, TIPOS_EQUIPO
from ..services import forms
from ..services.assistant import build_assistant_context
from ..services.images import (
    ImageFile,
    ImageValidationError,
    create_pantalla_with_photo,
    find_pantalla_image,
    thumbnail_url,
    upload_pantalla_image,
)
from ..services.reporting import (
    IP_SORT_COLUMNS,
    TIPO_LABELS,
    EquipoFilters,
    build_ip_rows,
    calculate_indicators,
    collation_key,
    equipo_filter_options,
    filter_equipos,
    filter_switches_by_year,
    reference_years,
    select_switches,
    sort_ip_rows,
    sort_patchpanels,
    sort_switches,
    summarize_screens,
    switch_connection_rows,
)
from ..services.topology import NODE_HEIGHT, NODE_WIDTH, ORIENTATIONS, build_layout
from ..store import RestStore, get_store

logger = logging.getLogger(__name__)

templates = get_templates()

router = APIRouter()
admin_only = [Depends(require_admin_session)]

EXTRA_ACTUACION_ROWS = 2


async def form_data(request: Request) -> FormData:
    return await request.form()


def _render(request: Request, name: str, context: dict, status_code: int = 200) -> HTMLResponse:
    context = {"request": request, "is_admin": is_admin(request), "tipo_labels": TIPO_LABELS, **context}
    return templates.TemplateResponse(name, context, status_code=status_code)


def _back_href(origin: Optional[str]) -> str:
    return f"/?{origin}" if origin else "/"


def _from_suffix(origin: Optional[str]) -> str:
    return f"?from={quote(origin, safe='')}" if origin else ""


def _as_form_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _values_from(data: Mapping[str, Any]) -> dict[str, str]:
    return {key: _as_form_value(value) for key, value in data.items() if not isinstance(value, (dict, list))}


def _values_from_form(form: FormData) -> dict[str, str]:
    return {key: value for key, value in form.items() if isinstance(value, str)}


def _catalog(loader, store: RestStore) -> list:
    # Empty selects when the store cannot be read.
    try:
        return loader(store)
    except StoreError:
        logger.warning("Could not load %s", loader.__name__, exc_info=True)
        return []


def _today() -> date:
    return datetime.now(ZoneInfo(get_settings().TZ)).date()


# ---------- dashboard ----------


@router.get("/", response_class=HTMLResponse)
def dashboard_page(request: Request, store: RestStore = Depends(get_store)):
    today = _today()
    equipos = list_equipos(store)
    pantallas_sin_equipo = list_pantallas_sin_equipo(store)
    filters = EquipoFilters.from_query(request.query_params)
    filtrados = filter_equipos(equipos, filters, today)
    context = {
        "indicadores": calculate_indicators(equipos, today),
        "resumen_pantallas": summarize_screens(equipos, pantallas_sin_equipo, today),
        "anios": reference_years(today),
        "filters": filters,
        "options": equipo_filter_options(equipos),
        "equipos": filtrados,
        "total_equipos": len(equipos),
        "pantallas_sin_equipo": pantallas_sin_equipo,
        "assistant_context": build_assistant_context(filtrados, today),
        "from_query": request.url.query,
        "antiguedad_opciones": list(range(1, 21)),
    }
    return _render(request, "dashboard.html", context)


# ---------- equipos ----------


def _actuacion_rows_from_record(actuaciones: Iterable[Any]) -> list[dict[str, str]]:
    rows = [_values_from(a.model_dump()) for a in actuaciones]
    rows.extend({} for _ in range(EXTRA_ACTUACION_ROWS))
    return rows


def _actuacion_rows_from_form(form: FormData) -> list[dict[str, str]]:
    try:
        count = int(form.get("actuaciones_count") or 0)
    except ValueError:
        count = 0
    rows = []
    for index in range(max(count, 0)):
        prefix = f"actuaciones_{index}_"
        rows.append(
            {key[len(prefix):]: value for key, value in _values_from_form(form).items() if key.startswith(prefix)}
        )
    return rows


def _equipo_form_context(store: RestStore) -> dict:
    return {
        "fabricantes": _catalog(list_fabricantes, store),
        "ubicaciones": _catalog(list_ubicaciones, store),
        "usuarios": _catalog(list_usuarios, store),
        "tipos_equipo": TIPOS_EQUIPO,
        "tipos_actuacion": TIPOS_ACTUACION,
    }


@router.get("/equipos/nuevo", response_class=HTMLResponse, dependencies=admin_only)
def equipo_new_page(
    request: Request,
    tipo: Optional[str] = None,
    origin: Optional[str] = Query(default=None, alias="from"),
    store: RestStore = Depends(get_store),
):
    context = {
        **_equipo_form_context(store),
        "mode": "create",
        "values": {"tipo": tipo or "", "en_garantia": "false"},
        "actuaciones": _actuacion_rows_from_record([]),
        "back_href": _back_href(origin),
        "origin": origin or "",
        "message": None,
        "status": "idle",
    }
    return _render(request, "equipo_form.html", context)


@router.post("/equipos/nuevo", response_class=HTMLResponse, dependencies=admin_only)
def equipo_create(
    request: Request,
    origin: Optional[str] = Query(default=None, alias="from"),
    form: FormData = Depends(form_data),
    store: RestStore = Depends(get_store),
):
    try:
        payload, actuaciones = forms.parse_equipo_form(form)
        equipo_id = create_equipo(store, payload)
        if actuaciones:
            upsert_actuaciones(store, equipo_id, actuaciones)
    except (FormError, StoreError) as exc:
        context = {
            **_equipo_form_context(store),
            "mode": "create",
            "values": _values_from_form(form),
            "actuaciones": _actuacion_rows_from_form(form),
            "back_href": _back_href(origin),
            "origin": origin or "",
            "message": str(exc),
            "status": "error",
        }
        return _render(request, "equipo_form.html", context, status_code=400)
    logger.info("Equipo created", extra={"extra_data": {"equipo_id": equipo_id}})
    return RedirectResponse(url=f"/equipos/{equipo_id}/editar{_from_suffix(origin)}", status_code=303)


def _load_equipo(store: RestStore, equipo_id: str):
    equipo = get_equipo(store, equipo_id)
    if not equipo:
        raise HTTPException(404, "Equipo no encontrado")
    return equipo


@router.get("/equipos/{equipo_id}/editar", response_class=HTMLResponse, dependencies=admin_only)
def equipo_edit_page(
    request: Request,
    equipo_id: str,
    origin: Optional[str] = Query(default=None, alias="from"),
    store: RestStore = Depends(get_store),
):
    equipo = _load_equipo(store, equipo_id)
    context = {
        **_equipo_form_context(store),
        "mode": "edit",
        "equipo": equipo,
        "values": _values_from(equipo.model_dump()),
        "actuaciones": _actuacion_rows_from_record(equipo.actuaciones),
        "back_href": _back_href(origin),
        "origin": origin or "",
        "message": None,
        "status": "idle",
    }
    return _render(request, "equipo_form.html", context)


@router.post("/equipos/{equipo_id}/editar", response_class=HTMLResponse, dependencies=admin_only)
def equipo_update(
    request: Request,
    equipo_id: str,
    origin: Optional[str] = Query(default=None, alias="from"),
    form: FormData = Depends(form_data),
    store: RestStore = Depends(get_store),
):
    equipo = _load_equipo(store, equipo_id)
    try:
        payload, actuaciones = forms.parse_equipo_form(form)
        update_equipo(store, equipo_id, payload)
        sync_actuaciones(store, equipo_id, actuaciones, [a.id for a in equipo.actuaciones if a.id is not None])
    except (FormError, StoreError) as exc:
        context = {
            **_equipo_form_context(store),
            "mode": "edit",
            "equipo": equipo,
            "values": _values_from_form(form),
            "actuaciones": _actuacion_rows_from_form(form),
            "back_href": _back_href(origin),
            "origin": origin or "",
            "message": str(exc),
            "status": "error",
        }
        return _render(request, "equipo_form.html", context, status_code=400)

    equipo = _load_equipo(store, equipo_id)
    context = {
        **_equipo_form_context(store),
        "mode": "edit",
        "equipo": equipo,
        "values": _values_from(equipo.model_dump()),
        "actuaciones": _actuacion_rows_from_record(equipo.actuaciones),
        "back_href": _back_href(origin),
        "origin": origin or "",
        "message": "Equipo actualizado correctamente.",
        "status": "success",
    }
    return _render(request, "equipo_form.html", context)


# ---------- pantallas ----------


def _pantalla_form_context(store: RestStore) -> dict:
    return {"fabricantes": _catalog(list_fabricantes, store), "equipos": _catalog(list_equipos_catalogo, store)}


@router.get("/pantallas/nueva", response_class=HTMLResponse, dependencies=admin_only)
def pantalla_new_page(
    request: Request,
    origin: Optional[str] = Query(default=None, alias="from"),
    equipo_id: Optional[str] = None,
    store: RestStore = Depends(get_store),
):
    context = {
        **_pantalla_form_context(store),
        "mode": "create",
        "values": {"equipo_id": equipo_id or ""},
        "thumbnail": None,
        "back_href": _back_href(origin),
        "origin": origin or "",
        "message": None,
        "status": "idle",
    }
    return _render(request, "pantalla_form.html", context)


@router.post("/pantallas/nueva", response_class=HTMLResponse, dependencies=admin_only)
def pantalla_create(
    request: Request,
    origin: Optional[str] = Query(default=None, alias="from"),
    form: FormData = Depends(form_data),
    store: RestStore = Depends(get_store),
):
    try:
        payload = forms.parse_pantalla_form(form)
        image = ImageFile.from_upload(form.get("foto"))
        pantalla_id = create_pantalla_with_photo(store, get_settings().STORAGE_BUCKET, payload, image)
    except (FormError, ImageValidationError, StoreError) as exc:
        context = {
            **_pantalla_form_context(store),
            "mode": "create",
            "values": _values_from_form(form),
            "thumbnail": None,
            "back_href": _back_href(origin),
            "origin": origin or "",
            "message": str(exc),
            "status": "error",
        }
        return _render(request, "pantalla_form.html", context, status_code=400)
    logger.info("Pantalla created", extra={"extra_data": {"pantalla_id": pantalla_id}})
    return RedirectResponse(url=f"/pantallas/{pantalla_id}/editar{_from_suffix(origin)}", status_code=303)


def _load_pantalla(store: RestStore, pantalla_id: int):
    pantalla = get_pantalla(store, pantalla_id)
    if not pantalla:
        raise HTTPException(404, "Pantalla no encontrada")
    try:
        pantalla.thumbnail_url = thumbnail_url(find_pantalla_image(store, get_settings().STORAGE_BUCKET, pantalla_id))
    except StoreError:
        logger.warning("Could not list photos of pantalla %s", pantalla_id, exc_info=True)
    return pantalla


def _pantalla_edit_context(store: RestStore, pantalla, values: dict, origin: Optional[str]) -> dict:
    return {
        **_pantalla_form_context(store),
        "mode": "edit",
        "pantalla": pantalla,
        "values": values,
        "thumbnail": pantalla.thumbnail_url,
        "back_href": _back_href(origin),
        "origin": origin or "",
    }


@router.get("/pantallas/{pantalla_id}/editar", response_class=HTMLResponse, dependencies=admin_only)
def pantalla_edit_page(
    request: Request,
    pantalla_id: int,
    origin: Optional[str] = Query(default=None, alias="from"),
    store: RestStore = Depends(get_store),
):
    pantalla = _load_pantalla(store, pantalla_id)
    context = _pantalla_edit_context(store, pantalla, _values_from(pantalla.model_dump()), origin)
    return _render(request, "pantalla_form.html", {**context, "message": None, "status": "idle"})


@router.post("/pantallas/{pantalla_id}/editar", response_class=HTMLResponse, dependencies=admin_only)
def pantalla_update(
    request: Request,
    pantalla_id: int,
    origin: Optional[str] = Query(default=None, alias="from"),
    form: FormData = Depends(form_data),
    store: RestStore = Depends(get_store),
):
    pantalla = _load_pantalla(store, pantalla_id)
    try:
        payload = forms.parse_pantalla_form(form)
        image = ImageFile.from_upload(form.get("foto"))
        update_pantalla(store, pantalla_id, payload)
        if image is not None:
            upload_pantalla_image(store, get_settings().STORAGE_BUCKET, pantalla_id, image)
    except (FormError, ImageValidationError, StoreError) as exc:
        context = _pantalla_edit_context(store, pantalla, _values_from_form(form), origin)
        return _render(request, "pantalla_form.html", {**context, "message": str(exc), "status": "error"}, 400)

    pantalla = _load_pantalla(store, pantalla_id)
    context = _pantalla_edit_context(store, pantalla, _values_from(pantalla.model_dump()), origin)
    return _render(
        request,
        "pantalla_form.html",
        {**context, "message": "Pantalla actualizada correctamente.", "status": "success"},
    )


# ---------- switches ----------


def _parse_year_filter(anio: Optional[str]) -> tuple[Optional[int], bool]:
    if anio == "total":
        return None, True
    try:
        return (int(anio), False) if anio else (None, False)
    except ValueError:
        return None, False


@router.get("/switches", response_class=HTMLResponse)
def switches_page(request: Request, anio: Optional[str] = None, store: RestStore = Depends(get_store)):
    switches = sort_switches(list_switches(store))
    year, show_total = _parse_year_filter(anio)
    context = {
        "switches": filter_switches_by_year(switches, year),
        "total": len(switches),
        "year": year,
        "show_total": show_total,
        "from_query": request.url.query,
    }
    return _render(request, "switches.html", context)


def _switch_form_context(store: RestStore) -> dict:
    return {"fabricantes": _catalog(list_fabricantes, store), "ubicaciones": _catalog(list_ubicaciones, store)}


@router.get("/switches/nuevo", response_class=HTMLResponse, dependencies=admin_only)
def switch_new_page(
    request: Request,
    origin: Optional[str] = Query(default=None, alias="from"),
    store: RestStore = Depends(get_store),
):
    context = {
        **_switch_form_context(store),
        "mode": "create",
        "values": {},
        "back_href": _back_href(origin),
        "origin": origin or "",
        "message": None,
        "status": "idle",
    }
    return _render(request, "switch_form.html", context)


@router.post("/switches/nuevo", response_class=HTMLResponse, dependencies=admin_only)
def switch_create(
    request: Request,
    origin: Optional[str] = Query(default=None, alias="from"),
    form: FormData = Depends(form_data),
    store: RestStore = Depends(get_store),
):
    try:
        switch_id = create_switch(store, forms.parse_switch_form(form))
    except (FormError, StoreError) as exc:
        context = {
            **_switch_form_context(store),
            "mode": "create",
            "values": _values_from_form(form),
            "back_href": _back_href(origin),
            "origin": origin or "",
            "message": str(exc),
            "status": "error",
        }
        return _render(request, "switch_form.html", context, status_code=400)
    logger.info("Switch created", extra={"extra_data": {"switch_id": switch_id}})
    return RedirectResponse(url=f"/switches/{switch_id}/puertos{_from_suffix(origin)}", status_code=303)


def _load_switch(store: RestStore, switch_id: int):
    record = get_switch(store, switch_id)
    if not record:
        raise HTTPException(404, "Switch no encontrado")
    return record


@router.get("/switches/{switch_id}/editar", response_class=HTMLResponse, dependencies=admin_only)
def switch_edit_page(
    request: Request,
    switch_id: int,
    origin: Optional[str] = Query(default=None, alias="from"),
    store: RestStore = Depends(get_store),
):
    record = _load_switch(store, switch_id)
    context = {
        **_switch_form_context(store),
        "mode": "edit",
        "switch": record,
        "values": _values_from(record.model_dump()),
        "back_href": _back_href(origin),
        "origin": origin or "",
        "message": None,
        "status": "idle",
    }
    return _render(request, "switch_form.html", context)


@router.post("/switches/{switch_id}/editar", response_class=HTMLResponse, dependencies=admin_only)
def switch_update(
    request: Request,
    switch_id: int,
    origin: Optional[str] = Query(default=None, alias="from"),
    form: FormData = Depends(form_data),
    store: RestStore = Depends(get_store),
):
    record = _load_switch(store, switch_id)
    message, status, values, code = "Switch actualizado correctamente.", "success", None, 200
    try:
        update_switch(store, switch_id, forms.parse_switch_form(form))
        record = _load_switch(store, switch_id)
    except (FormError, StoreError) as exc:
        message, status, values, code = str(exc), "error", _values_from_form(form), 400
    context = {
        **_switch_form_context(store),
        "mode": "edit",
        "switch": record,
        "values": values if values is not None else _values_from(record.model_dump()),
        "back_href": _back_href(origin),
        "origin": origin or "",
        "message": message,
        "status": status,
    }
    return _render(request, "switch_form.html", context, status_code=code)


def _connection_options(store: RestStore) -> list[dict[str, str]]:
    options = []
    for equipo in _catalog(list_equipos_catalogo, store):
        nombre = (equipo.nombre or "").strip() or f"Equipo #{equipo.id}"
        modelo = f" ({equipo.modelo.strip()})" if equipo.modelo and equipo.modelo.strip() else ""
        options.append({"value": f"equipo:{equipo.id}", "label": f"{nombre}{modelo}"})
    for item in _catalog(list_switches_catalogo, store):
        nombre = (item.nombre or "").strip() or f"Switch #{item.id}"
        options.append({"value": f"switch:{item.id}", "label": f"{nombre} (Switch)"})
    return sorted(options, key=lambda option: collation_key(option["label"]))


def _switch_port_rows(record, form: Optional[FormData] = None) -> list[dict[str, Any]]:
    by_number = {port.numero: port for port in record.puertos if port.numero is not None}
    rows = []
    for numero in range(1, (record.puertos_totales or 0) + 1):
        base = f"puerto_{numero}_"
        if form is not None:
            row = {key[len(base):]: value for key, value in _values_from_form(form).items() if key.startswith(base)}
            row["conexion"] = row.pop("equipo_id", "")
        else:
            port = by_number.get(numero)
            row = {}
            if port is not None:
                row = _values_from(port.model_dump())
                row["conexion"] = port.conexion
                row["velocidad"] = row.pop("velocidad_mbps", "")
        row["numero"] = numero
        rows.append(row)
    return rows


def _switch_ports_response(request, store, record, *, message=None, status="idle", form=None, code=200):
    context = {
        "switch": record,
        "rows": _switch_port_rows(record, form),
        "opciones": _connection_options(store) if (record.puertos_totales or 0) > 0 else [],
        "message": message,
        "status": status,
    }
    return _render(request, "switch_ports.html", context, status_code=code)


@router.get("/switches/{switch_id}/puertos", response_class=HTMLResponse, dependencies=admin_only)
def switch_ports_page(request: Request, switch_id: int, store: RestStore = Depends(get_store)):
    return _switch_ports_response(request, store, _load_switch(store, switch_id))


@router.post("/switches/{switch_id}/puertos", response_class=HTMLResponse, dependencies=admin_only)
def switch_ports_save(
    request: Request,
    switch_id: int,
    form: FormData = Depends(form_data),
    store: RestStore = Depends(get_store),
):
    record = _load_switch(store, switch_id)
    try:
        changes = forms.parse_switch_ports_form(form, switch_id, record.puertos_totales)
        delete_switch_ports(store, changes.delete_ids)
        upsert_switch_ports(store, changes.upserts)
    except (FormError, StoreError) as exc:
        return _switch_ports_response(request, store, record, message=str(exc), status="error", form=form, code=400)
    return _switch_ports_response(
        request,
        store,
        _load_switch(store, switch_id),
        message="Puertos guardados correctamente.",
        status="success",
    )


# ---------- patch panels ----------


@router.get("/patchpanels", response_class=HTMLResponse)
def patchpanels_page(request: Request, store: RestStore = Depends(get_store)):
    switch_names = {item.id: (item.nombre or "").strip() or f"Switch #{item.id}" for item in list_switches_catalogo(store)}
    context = {"patchpanels": sort_patchpanels(list_patchpanels(store)), "switch_names": switch_names}
    return _render(request, "patchpanels.html", context)


def _load_patchpanel(store: RestStore, patchpanel_id: int):
    record = get_patchpanel(store, patchpanel_id)
    if not record:
        raise HTTPException(404, "Patch panel no encontrado")
    return record


@router.get("/patchpanels/nuevo", response_class=HTMLResponse, dependencies=admin_only)
def patchpanel_new_page(request: Request, store: RestStore = Depends(get_store)):
    context = {"ubicaciones": _catalog(list_ubicaciones, store), "mode": "create", "values": {}, "message": None, "status": "idle"}
    return _render(request, "patchpanel_form.html", context)


@router.post("/patchpanels/nuevo", response_class=HTMLResponse, dependencies=admin_only)
def patchpanel_create(request: Request, form: FormData = Depends(form_data), store: RestStore = Depends(get_store)):
    try:
        patchpanel_id = create_patchpanel(store, forms.parse_patchpanel_form(form))
    except (FormError, StoreError) as exc:
        context = {
            "ubicaciones": _catalog(list_ubicaciones, store),
            "mode": "create",
            "values": _values_from_form(form),
            "message": str(exc),
            "status": "error",
        }
        return _render(request, "patchpanel_form.html", context, status_code=400)
    return RedirectResponse(url=f"/patchpanels/{patchpanel_id}/puertos", status_code=303)


@router.get("/patchpanels/{patchpanel_id}/editar", response_class=HTMLResponse, dependencies=admin_only)
def patchpanel_edit_page(request: Request, patchpanel_id: int, store: RestStore = Depends(get_store)):
    record = _load_patchpanel(store, patchpanel_id)
    context = {
        "ubicaciones": _catalog(list_ubicaciones, store),
        "mode": "edit",
        "patchpanel": record,
        "values": _values_from(record.model_dump()),
        "message": None,
        "status": "idle",
    }
    return _render(request, "patchpanel_form.html", context)


@router.post("/patchpanels/{patchpanel_id}/editar", response_class=HTMLResponse, dependencies=admin_only)
def patchpanel_update(
    request: Request,
    patchpanel_id: int,
    form: FormData = Depends(form_data),
    store: RestStore = Depends(get_store),
):
    record = _load_patchpanel(store, patchpanel_id)
    message, status, values, code = "Patch panel actualizado correctamente.", "success", None, 200
    try:
        update_patchpanel(store, patchpanel_id, forms.parse_patchpanel_form(form))
        record = _load_patchpanel(store, patchpanel_id)
    except (FormError, StoreError) as exc:
        message, status, values, code = str(exc), "error", _values_from_form(form), 400
    context = {
        "ubicaciones": _catalog(list_ubicaciones, store),
        "mode": "edit",
        "patchpanel": record,
        "values": values if values is not None else _values_from(record.model_dump()),
        "message": message,
        "status": status,
    }
    return _render(request, "patchpanel_form.html", context, status_code=code)


def _patchpanel_options(store: RestStore) -> tuple[list[dict[str, str]], dict[str, list[dict[str, str]]], dict[int, int]]:
    switches = sorted(
        ({"value": str(item.id), "label": (item.nombre or "").strip() or f"Switch #{item.id}"}
         for item in _catalog(list_switches_catalogo, store)),
        key=lambda option: collation_key(option["label"]),
    )
    ports_by_switch: dict[str, list[dict[str, Any]]] = {}
    owner: dict[int, int] = {}
    for port in _catalog(list_switch_ports_catalogo, store):
        owner[port.id] = port.switch_id
        label = f"Puerto {port.numero}"
        if port.nombre and port.nombre.strip():
            label = f"{label} - {port.nombre.strip()}"
        ports_by_switch.setdefault(str(port.switch_id), []).append(
            {"value": str(port.id), "label": label, "numero": port.numero}
        )
    for options in ports_by_switch.values():
        options.sort(key=lambda option: (option["numero"], collation_key(option["label"])))
    return switches, ports_by_switch, owner


def _patchpanel_port_rows(record, form: Optional[FormData] = None) -> list[dict[str, Any]]:
    by_number = {port.numero: port for port in record.puertos}
    rows = []
    for numero in range(1, (record.puertos_totales or 0) + 1):
        base = f"puerto_{numero}_"
        if form is not None:
            row = {key[len(base):]: value for key, value in _values_from_form(form).items() if key.startswith(base)}
        else:
            port = by_number.get(numero)
            row = {}
            if port is not None:
                row = _values_from(port.model_dump())
                row["switch_id"] = str(port.puerto_switch.switch_id) if port.puerto_switch else ""
        row["numero"] = numero
        rows.append(row)
    return rows


def _patchpanel_ports_response(request, record, options, *, message=None, status="idle", form=None, code=200):
    switches, ports_by_switch, _ = options
    context = {
        "patchpanel": record,
        "rows": _patchpanel_port_rows(record, form),
        "switches": switches,
        "ports_by_switch": ports_by_switch,
        "message": message,
        "status": status,
    }
    return _render(request, "patchpanel_ports.html", context, status_code=code)


@router.get("/patchpanels/{patchpanel_id}/puertos", response_class=HTMLResponse, dependencies=admin_only)
def patchpanel_ports_page(request: Request, patchpanel_id: int, store: RestStore = Depends(get_store)):
    record = _load_patchpanel(store, patchpanel_id)
    return _patchpanel_ports_response(request, record, _patchpanel_options(store))


@router.post("/patchpanels/{patchpanel_id}/puertos", response_class=HTMLResponse, dependencies=admin_only)
def patchpanel_ports_save(
    request: Request,
    patchpanel_id: int,
    form: FormData = Depends(form_data),
    store: RestStore = Depends(get_store),
):
    record = _load_patchpanel(store, patchpanel_id)
    options = _patchpanel_options(store)
    try:
        changes = forms.parse_patchpanel_ports_form(form, patchpanel_id, record.puertos_totales, options[2])
        delete_patchpanel_ports(store, changes.delete_ids)
        upsert_patchpanel_ports(store, changes.upserts)
    except (FormError, StoreError) as exc:
        return _patchpanel_ports_response(
            request, record, options, message=str(exc), status="error", form=form, code=400
        )
    return _patchpanel_ports_response(
        request,
        _load_patchpanel(store, patchpanel_id),
        options,
        message="Puertos guardados correctamente.",
        status="success",
    )


# ---------- reports ----------


@router.get("/reportes/ips", response_class=HTMLResponse)
def ip_report_page(
    request: Request,
    sort: str = Query(default="ip"),
    direction: str = Query(default="asc", alias="dir"),
    store: RestStore = Depends(get_store),
):
    if sort not in IP_SORT_COLUMNS:
        sort = "ip"
    direction = "desc" if direction == "desc" else "asc"
    rows = sort_ip_rows(build_ip_rows(list_equipos(store)), sort, direction)
    context = {"rows": rows, "sort": sort, "direction": direction}
    return _render(request, "reporte_ips.html", context)


@router.get("/reportes/switches", response_class=HTMLResponse)
def switch_report_page(
    request: Request,
    selected: list[str] = Query(default=[], alias="switch"),
    store: RestStore = Depends(get_store),
):
    switches = list_switches(store)
    chosen = select_switches(switches, selected)
    context = {
        "switches": switches,
        "selected_ids": {str(value) for value in selected},
        "report": [(item, switch_connection_rows(item)) for item in chosen],
    }
    return _render(request, "reporte_switches.html", context)


@router.get("/reportes/switches/grafico", response_class=HTMLResponse)
def topology_page(
    request: Request,
    orientation: str = Query(default="columns"),
    store: RestStore = Depends(get_store),
):
    if orientation not in ORIENTATIONS:
        orientation = "columns"
    switches = list_switches(store)
    context = {
        "has_switches": bool(switches),
        "layout": build_layout(switches, orientation),
        "orientation": orientation,
        "node_width": NODE_WIDTH,
        "node_height": NODE_HEIGHT,
    }
    return _render(request, "reporte_grafico.html", context)
