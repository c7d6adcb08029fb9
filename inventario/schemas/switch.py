from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from .catalog import NombreRef


class PortEquipoRef(BaseModel):
    nombre: Optional[str] = None
    toma_red: Optional[str] = None


class SwitchPortRecord(BaseModel):
    id: int
    switch_id: Optional[int] = None
    numero: Optional[int] = None
    nombre: Optional[str] = None
    equipo_id: Optional[str] = None
    switch_conectado_id: Optional[int] = None
    vlan: Optional[int] = None
    velocidad_mbps: Optional[int] = None
    poe: Optional[bool] = False
    observaciones: Optional[str] = None
    equipo: Optional[PortEquipoRef] = None
    switch_conectado: Optional[NombreRef] = None

    @property
    def conexion(self) -> str:
        """Value of the connection selector in the ports form."""

        if self.equipo_id:
            return f"equipo:{self.equipo_id}"
        if self.switch_conectado_id is not None:
            return f"switch:{self.switch_conectado_id}"
        return ""


class SwitchRecord(BaseModel):
    id: int
    nombre: Optional[str] = None
    modelo: Optional[str] = None
    fabricante_id: Optional[int] = None
    ubicacion_id: Optional[int] = None
    ip: Optional[str] = None
    ancho_banda_gbps: Optional[float] = None
    puertos_totales: Optional[int] = None
    precio: Optional[float] = None
    fecha_compra: Optional[str] = None
    en_garantia: Optional[bool] = None
    observaciones: Optional[str] = None
    fabricante: Optional[NombreRef] = None
    ubicacion: Optional[NombreRef] = None
    puertos: list[SwitchPortRecord] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        if self.nombre and self.nombre.strip():
            return self.nombre.strip()
        if self.modelo and self.modelo.strip():
            return self.modelo.strip()
        return f"Switch {self.id}"


class SwitchPayload(BaseModel):
    nombre: Optional[str] = None
    modelo: Optional[str] = None
    fabricante_id: Optional[int] = None
    ubicacion_id: Optional[int] = None
    ip: Optional[str] = None
    ancho_banda_gbps: Optional[float] = None
    puertos_totales: Optional[int] = None
    precio: Optional[float] = None
    fecha_compra: Optional[str] = None
    en_garantia: bool = False
    observaciones: Optional[str] = None


class SwitchPortUpsert(BaseModel):
    id: Optional[int] = None
    switch_id: int
    numero: int
    nombre: Optional[str] = None
    equipo_id: Optional[str] = None
    switch_conectado_id: Optional[int] = None
    vlan: Optional[int] = None
    velocidad_mbps: Optional[int] = None
    poe: bool = False
    observaciones: Optional[str] = None
