"""Lookup lists (manufacturers, locations, users, selectable devices)."""

from __future__ import annotations

from typing import Iterable

from ..schemas.catalog import (
    CatalogoItem,
    EquipoCatalogoItem,
    SwitchCatalogoItem,
    SwitchPortCatalogoItem,
    UsuarioCatalogo,
)
from ..store import RestStore, in_


def list_fabricantes(store: RestStore) -> list[CatalogoItem]:
    rows = store.select("fabricantes", "id,nombre", order="nombre.asc.nullslast")
    return [CatalogoItem.model_validate(row) for row in rows]


def list_ubicaciones(store: RestStore) -> list[CatalogoItem]:
    rows = store.select("ubicaciones", "id,nombre", order="nombre.asc.nullslast")
    return [CatalogoItem.model_validate(row) for row in rows]


def list_usuarios(store: RestStore) -> list[UsuarioCatalogo]:
    rows = store.select(
        "usuarios",
        "id,nombre,apellidos,nombre_completo",
        order="nombre_completo.asc.nullslast",
    )
    return [UsuarioCatalogo.model_validate(row) for row in rows]


def list_equipos_catalogo(store: RestStore) -> list[EquipoCatalogoItem]:
    rows = store.select("equipos", "id,nombre,modelo", order="nombre.asc.nullslast")
    return [EquipoCatalogoItem.model_validate(row) for row in rows]


def list_switches_catalogo(store: RestStore) -> list[SwitchCatalogoItem]:
    rows = store.select("switches", "id,nombre", order="nombre.asc.nullslast")
    return [SwitchCatalogoItem.model_validate(row) for row in rows]


def list_switch_ports_catalogo(store: RestStore) -> list[SwitchPortCatalogoItem]:
    rows = store.select(
        "switch_puertos",
        "id,switch_id,numero,nombre",
        order="switch_id.asc,numero.asc",
    )
    return [SwitchPortCatalogoItem.model_validate(row) for row in rows]


def fabricante_names(store: RestStore, ids: Iterable[int]) -> dict[int, str | None]:
    """Resolve manufacturer names for ``ids`` with a single ``in.(...)`` query."""

    wanted = sorted(set(ids))
    if not wanted:
        return {}
    rows = store.select("fabricantes", "id,nombre", filters={"id": in_(wanted)})
    return {row["id"]: row.get("nombre") for row in rows}
