from __future__ import annotations

from ..core.errors import StoreError
from ..schemas.pantalla import PantallaPayload, PantallaRecord
from ..store import RestStore, eq, is_null

COLUMNS = (
    "id,equipo_id,pulgadas,modelo,fabricante_id,precio,fecha_compra,en_garantia,observaciones,"
    "fabricante:fabricantes(nombre),equipo:equipos(id,nombre,modelo)"
)


def list_pantallas_sin_equipo(store: RestStore) -> list[PantallaRecord]:
    """Screens not attached to any equipo (the dashboard counts them separately)."""

    rows = store.select(
        "pantallas",
        COLUMNS,
        filters={"equipo_id": is_null()},
        order="fecha_compra.desc.nullslast",
    )
    return [PantallaRecord.model_validate(row) for row in rows]


def get_pantalla(store: RestStore, pantalla_id: int) -> PantallaRecord | None:
    row = store.select_one("pantallas", COLUMNS, filters={"id": eq(pantalla_id)})
    return PantallaRecord.model_validate(row) if row else None


def create_pantalla(store: RestStore, payload: PantallaPayload) -> int:
    rows = store.insert("pantallas", payload.model_dump())
    if not rows or rows[0].get("id") is None:
        raise StoreError("El almacen no devolvio el identificador de la pantalla creada.")
    return int(rows[0]["id"])


def update_pantalla(store: RestStore, pantalla_id: int, payload: PantallaPayload) -> None:
    store.update("pantallas", {"id": eq(pantalla_id)}, payload.model_dump(exclude_unset=True))


def delete_pantalla(store: RestStore, pantalla_id: int) -> None:
    store.delete("pantallas", {"id": eq(pantalla_id)})
