from __future__ import annotations

from ..core.errors import StoreError
from ..schemas.switch import SwitchPayload, SwitchPortUpsert, SwitchRecord
from ..store import RestStore, eq, in_

PORT_COLUMNS = (
    "id,switch_id,numero,nombre,equipo_id,switch_conectado_id,vlan,velocidad_mbps,poe,observaciones,"
    "equipo:equipos(nombre,toma_red),"
    "switch_conectado:switches!switch_conectado_id(nombre)"
)

COLUMNS = (
    "id,nombre,modelo,fabricante_id,ubicacion_id,ip,ancho_banda_gbps,puertos_totales,precio,"
    "fecha_compra,en_garantia,observaciones,"
    "fabricante:fabricantes(nombre),ubicacion:ubicaciones(nombre),"
    f"puertos:switch_puertos!switch_id({PORT_COLUMNS})"
)


def _sorted_ports(record: SwitchRecord) -> SwitchRecord:
    record.puertos.sort(key=lambda p: p.numero if p.numero is not None else 1 << 30)
    return record


def list_switches(store: RestStore) -> list[SwitchRecord]:
    rows = store.select("switches", COLUMNS, order="nombre.asc.nullslast")
    return [_sorted_ports(SwitchRecord.model_validate(row)) for row in rows]


def get_switch(store: RestStore, switch_id: int) -> SwitchRecord | None:
    row = store.select_one("switches", COLUMNS, filters={"id": eq(switch_id)})
    return _sorted_ports(SwitchRecord.model_validate(row)) if row else None


def create_switch(store: RestStore, payload: SwitchPayload) -> int:
    rows = store.insert("switches", payload.model_dump())
    if not rows or rows[0].get("id") is None:
        raise StoreError("El almacen no devolvio el identificador del switch creado.")
    return int(rows[0]["id"])


def update_switch(store: RestStore, switch_id: int, payload: SwitchPayload) -> None:
    store.update("switches", {"id": eq(switch_id)}, payload.model_dump(exclude_unset=True))


def upsert_switch_ports(store: RestStore, ports: list[SwitchPortUpsert]) -> None:
    if not ports:
        return
    rows = []
    for port in ports:
        row = port.model_dump()
        if row["id"] is None:
            row.pop("id")
        rows.append(row)
    store.upsert("switch_puertos", rows)


def delete_switch_ports(store: RestStore, port_ids: list[int]) -> None:
    if port_ids:
        store.delete("switch_puertos", {"id": in_(port_ids)})


def delete_switch(store: RestStore, switch_id: int) -> None:
    # Ports reference the switch, so they go first.
    store.delete("switch_puertos", {"switch_id": eq(switch_id)})
    store.delete("switches", {"id": eq(switch_id)})
