from __future__ import annotations

from ..core.errors import StoreError
from ..schemas.patchpanel import PatchPanelPayload, PatchPanelPortUpsert, PatchPanelRecord
from ..store import RestStore, eq, in_

COLUMNS = (
    "id,nombre,ubicacion_id,puertos_totales,fecha_compra,observaciones,"
    "ubicacion:ubicaciones(nombre),"
    "puertos:patchpanel_puertos(id,patchpanel_id,numero,puerto_switch_id,etiqueta,observaciones,"
    "puerto_switch:switch_puertos(id,switch_id,numero,nombre))"
)


def _sorted_ports(record: PatchPanelRecord) -> PatchPanelRecord:
    record.puertos.sort(key=lambda p: p.numero)
    return record


def list_patchpanels(store: RestStore) -> list[PatchPanelRecord]:
    rows = store.select("patchpanels", COLUMNS)
    return [_sorted_ports(PatchPanelRecord.model_validate(row)) for row in rows]


def get_patchpanel(store: RestStore, patchpanel_id: int) -> PatchPanelRecord | None:
    row = store.select_one("patchpanels", COLUMNS, filters={"id": eq(patchpanel_id)})
    return _sorted_ports(PatchPanelRecord.model_validate(row)) if row else None


def create_patchpanel(store: RestStore, payload: PatchPanelPayload) -> int:
    rows = store.insert("patchpanels", payload.model_dump())
    if not rows or rows[0].get("id") is None:
        raise StoreError("El almacen no devolvio el identificador del patch panel creado.")
    return int(rows[0]["id"])


def update_patchpanel(store: RestStore, patchpanel_id: int, payload: PatchPanelPayload) -> None:
    store.update("patchpanels", {"id": eq(patchpanel_id)}, payload.model_dump(exclude_unset=True))


def upsert_patchpanel_ports(store: RestStore, ports: list[PatchPanelPortUpsert]) -> None:
    if not ports:
        return
    rows = []
    for port in ports:
        row = port.model_dump()
        if row["id"] is None:
            row.pop("id")
        # An empty label leaves whatever the store already holds.
        if row["etiqueta"] is None:
            row.pop("etiqueta")
        rows.append(row)
    store.upsert("patchpanel_puertos", rows)


def delete_patchpanel_ports(store: RestStore, port_ids: list[int]) -> None:
    if port_ids:
        store.delete("patchpanel_puertos", {"id": in_(port_ids)})
