from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from .catalog import NombreRef


class EquipoRef(BaseModel):
    id: Optional[str] = None
    nombre: Optional[str] = None
    modelo: Optional[str] = None


class PantallaRecord(BaseModel):
    id: int
    equipo_id: Optional[str] = None
    pulgadas: Optional[float] = None
    modelo: Optional[str] = None
    fabricante_id: Optional[int] = None
    precio: Optional[float] = None
    fecha_compra: Optional[str] = None
    en_garantia: Optional[bool] = None
    observaciones: Optional[str] = None
    fabricante: Optional[NombreRef] = None
    equipo: Optional[EquipoRef] = None
    thumbnail_url: Optional[str] = None

    @property
    def fabricante_nombre(self) -> Optional[str]:
        return self.fabricante.nombre if self.fabricante else None


class PantallaPayload(BaseModel):
    modelo: Optional[str] = None
    fabricante_id: Optional[int] = None
    precio: Optional[float] = None
    fecha_compra: Optional[str] = None
    en_garantia: Optional[bool] = None
    pulgadas: Optional[float] = None
    equipo_id: Optional[str] = None
    observaciones: Optional[str] = None
