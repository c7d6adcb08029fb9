"""Equipo and actuación persistence."""

from __future__ import annotations

from typing import Iterable

from ..core.errors import StoreError
from ..schemas.equipo import ActuacionInput, EquipoPayload, EquipoRecord
from ..store import RestStore, eq, in_
from .catalogs import fabricante_names

_BASE_COLUMNS = [
    "id",
    "nombre",
    "modelo",
    "tipo",
    "fecha_compra",
    "en_garantia",
    "precio_compra",
    "fabricante_id",
    "ubicacion_id",
    "usuario_id",
    "sistema_operativo",
    "so_precio",
    "so_serial",
    "numero_serie",
    "part_number",
    "ip",
    "tarjeta_red",
    "toma_red",
    "admite_update",
    "al_garbigune",
    "procesador",
    "ram",
    "ssd",
    "hdd",
    "tarjeta_grafica",
    "observaciones",
    "url",
    "fecha_bios",
    "pantallas:pantallas(id,pulgadas,modelo,fabricante_id,precio,fecha_compra)",
    "fabricante:fabricantes(nombre)",
    "ubicacion:ubicaciones(nombre)",
    "usuario:usuarios(nombre,apellidos,nombre_completo)",
    # switch_puertos references switches twice; the hint picks the owning switch.
    "puertos_conectados:switch_puertos(numero,vlan,switch:switches!switch_id(nombre))",
]

LIST_COLUMNS = ",".join(_BASE_COLUMNS)
DETAIL_COLUMNS = ",".join(
    _BASE_COLUMNS + ["actuaciones:actuaciones(id,tipo,descripcion,coste,fecha,hecha_por)"]
)


def list_equipos(store: RestStore) -> list[EquipoRecord]:
    """Every equipo, newest purchase first, with screens' manufacturer names resolved."""

    rows = store.select("equipos", LIST_COLUMNS, order="fecha_compra.desc.nullslast")
    equipos = [EquipoRecord.model_validate(row) for row in rows]
    _complete_screen_manufacturers(store, equipos)
    return equipos


def get_equipo(store: RestStore, equipo_id: str) -> EquipoRecord | None:
    row = store.select_one("equipos", DETAIL_COLUMNS, filters={"id": eq(equipo_id)})
    if not row:
        return None
    equipo = EquipoRecord.model_validate(row)
    equipo.actuaciones.sort(key=lambda a: (a.fecha or "", a.id or 0), reverse=True)
    _complete_screen_manufacturers(store, [equipo])
    return equipo


def create_equipo(store: RestStore, payload: EquipoPayload) -> str:
    rows = store.insert("equipos", payload.model_dump())
    if not rows or rows[0].get("id") is None:
        raise StoreError("El almacen no devolvio el identificador del equipo creado.")
    return str(rows[0]["id"])


def update_equipo(store: RestStore, equipo_id: str, payload: EquipoPayload) -> None:
    store.update("equipos", {"id": eq(equipo_id)}, payload.model_dump(exclude_unset=True))


def delete_equipo(store: RestStore, equipo_id: str) -> None:
    store.delete("equipos", {"id": eq(equipo_id)})


def sync_actuaciones(
    store: RestStore,
    equipo_id: str,
    items: list[ActuacionInput],
    existing_ids: Iterable[int] = (),
) -> None:
    """Make the equipo's actuaciones match ``items``.

    Rows whose id is no longer submitted are deleted; the rest are upserted.
    """

    kept = {item.id for item in items if item.id is not None}
    removed = [actuacion_id for actuacion_id in existing_ids if actuacion_id not in kept]
    delete_actuaciones(store, removed)
    if items:
        upsert_actuaciones(store, equipo_id, items)


def upsert_actuaciones(store: RestStore, equipo_id: str, items: list[ActuacionInput]) -> None:
    rows = []
    for item in items:
        row = item.model_dump()
        if row["id"] is None:
            row.pop("id")
        # Without a date the store's default (today) applies.
        if row["fecha"] is None:
            row.pop("fecha")
        row["equipo_id"] = equipo_id
        rows.append(row)
    store.upsert("actuaciones", rows)


def _complete_screen_manufacturers(store: RestStore, equipos: list[EquipoRecord]) -> None:
    ids = {
        pantalla.fabricante_id
        for equipo in equipos
        for pantalla in equipo.pantallas
        if pantalla.fabricante_id is not None
    }
    if not ids:
        return
    names = fabricante_names(store, ids)
    for equipo in equipos:
        for pantalla in equipo.pantallas:
            if pantalla.fabricante_id is not None:
                pantalla.fabricante_nombre = names.get(pantalla.fabricante_id)


def delete_actuaciones(store: RestStore, actuacion_ids: Iterable[int]) -> None:
    ids = list(actuacion_ids)
    if ids:
        store.delete("actuaciones", {"id": in_(ids)})
