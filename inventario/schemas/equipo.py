from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from .catalog import NombreRef

TIPOS_EQUIPO = ("sobremesa", "portatil", "tablet", "servidor", "almacenamiento")

TIPOS_ACTUACION = (
    "mantenimiento",
    "reparacion",
    "actualizacion",
    "instalacion",
    "revision",
    "otro",
)


class UsuarioRef(BaseModel):
    nombre: Optional[str] = None
    apellidos: Optional[str] = None
    nombre_completo: Optional[str] = None


class PantallaResumen(BaseModel):
    id: int
    pulgadas: Optional[float] = None
    modelo: Optional[str] = None
    fabricante_id: Optional[int] = None
    precio: Optional[float] = None
    fecha_compra: Optional[str] = None
    fabricante_nombre: Optional[str] = None


class PuertoConectado(BaseModel):
    """A switch port that points at this equipo."""

    numero: Optional[int] = None
    vlan: Optional[int] = None
    switch: Optional[NombreRef] = None


class Actuacion(BaseModel):
    id: Optional[int] = None
    equipo_id: Optional[str] = None
    tipo: Optional[str] = None
    descripcion: Optional[str] = None
    coste: Optional[float] = None
    fecha: Optional[str] = None
    hecha_por: Optional[str] = None


class EquipoRecord(BaseModel):
    id: str
    nombre: Optional[str] = None
    modelo: Optional[str] = None
    tipo: Optional[str] = None
    fecha_compra: Optional[str] = None
    en_garantia: Optional[bool] = False
    precio_compra: Optional[float] = None
    fabricante_id: Optional[int] = None
    ubicacion_id: Optional[int] = None
    usuario_id: Optional[int] = None
    sistema_operativo: Optional[str] = None
    so_precio: Optional[float] = None
    so_serial: Optional[str] = None
    numero_serie: Optional[str] = None
    part_number: Optional[str] = None
    ip: Optional[str] = None
    tarjeta_red: Optional[str] = None
    toma_red: Optional[str] = None
    admite_update: Optional[bool] = None
    al_garbigune: Optional[bool] = None
    procesador: Optional[str] = None
    ram: Optional[float] = None
    ssd: Optional[float] = None
    hdd: Optional[float] = None
    tarjeta_grafica: Optional[str] = None
    observaciones: Optional[str] = None
    url: Optional[str] = None
    fecha_bios: Optional[str] = None

    fabricante: Optional[NombreRef] = None
    ubicacion: Optional[NombreRef] = None
    usuario: Optional[UsuarioRef] = None
    pantallas: list[PantallaResumen] = Field(default_factory=list)
    actuaciones: list[Actuacion] = Field(default_factory=list)
    puertos_conectados: list[PuertoConectado] = Field(default_factory=list)

    @property
    def usuario_nombre(self) -> Optional[str]:
        if not self.usuario:
            return None
        if self.usuario.nombre_completo and self.usuario.nombre_completo.strip():
            return self.usuario.nombre_completo.strip()
        parts = [p.strip() for p in (self.usuario.nombre, self.usuario.apellidos) if p and p.strip()]
        return " ".join(parts) if parts else None


class EquipoPayload(BaseModel):
    """Columns written to ``equipos``. Unset fields are left untouched on update."""

    nombre: Optional[str] = None
    modelo: Optional[str] = None
    tipo: Optional[str] = None
    fecha_compra: Optional[str] = None
    en_garantia: bool = False
    precio_compra: Optional[float] = None
    fabricante_id: Optional[int] = None
    ubicacion_id: Optional[int] = None
    usuario_id: Optional[int] = None
    sistema_operativo: Optional[str] = None
    so_precio: Optional[float] = None
    so_serial: Optional[str] = None
    numero_serie: Optional[str] = None
    part_number: Optional[str] = None
    ip: Optional[str] = None
    tarjeta_red: Optional[str] = None
    toma_red: Optional[str] = None
    admite_update: Optional[bool] = None
    al_garbigune: Optional[bool] = None
    procesador: Optional[str] = None
    ram: Optional[float] = None
    ssd: Optional[float] = None
    hdd: Optional[float] = None
    tarjeta_grafica: Optional[str] = None
    observaciones: Optional[str] = None
    url: Optional[str] = None
    fecha_bios: Optional[str] = None


class ActuacionInput(BaseModel):
    id: Optional[int] = None
    tipo: str
    descripcion: Optional[str] = None
    coste: Optional[float] = None
    fecha: Optional[str] = None
    hecha_por: Optional[str] = None
