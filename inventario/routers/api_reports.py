from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query

from ..crud.equipos import list_equipos
from ..crud.switches import list_switches
from ..services.reporting import build_ip_rows, sort_ip_rows
from ..services.topology import ORIENTATIONS, build_layout
from ..store import RestStore, get_store

router = APIRouter(prefix="/api/reportes", tags=["reportes"])


@router.get("/ips")
def api_ip_report(
    sort: str = Query(default="ip"),
    direction: str = Query(default="asc", alias="dir"),
    store: RestStore = Depends(get_store),
):
    rows = sort_ip_rows(build_ip_rows(list_equipos(store)), sort, direction)
    return [
        {**asdict(row), "switch_nombre": row.switch_nombre, "puerto_label": row.puerto_label}
        for row in rows
    ]


@router.get("/switches/grafico")
def api_topology(
    orientation: str = Query(default="columns"),
    store: RestStore = Depends(get_store),
):
    if orientation not in ORIENTATIONS:
        raise HTTPException(400, f"Orientacion no valida: {orientation}")
    return build_layout(list_switches(store), orientation).as_dict()
