from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from .catalog import NombreRef, SwitchPortCatalogoItem


class PatchPanelPortRecord(BaseModel):
    id: int
    patchpanel_id: Optional[int] = None
    numero: int
    puerto_switch_id: Optional[int] = None
    etiqueta: Optional[str] = None
    observaciones: Optional[str] = None
    puerto_switch: Optional[SwitchPortCatalogoItem] = None


class PatchPanelRecord(BaseModel):
    id: int
    nombre: Optional[str] = None
    ubicacion_id: Optional[int] = None
    puertos_totales: Optional[int] = None
    fecha_compra: Optional[str] = None
    observaciones: Optional[str] = None
    ubicacion: Optional[NombreRef] = None
    puertos: list[PatchPanelPortRecord] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        if self.nombre and self.nombre.strip():
            return self.nombre.strip()
        return f"Patch panel #{self.id}"


class PatchPanelPortUpsert(BaseModel):
    id: Optional[int] = None
    patchpanel_id: int
    numero: int
    puerto_switch_id: Optional[int] = None
    etiqueta: Optional[str] = None
    observaciones: Optional[str] = None


class PatchPanelPayload(BaseModel):
    nombre: Optional[str] = None
    ubicacion_id: Optional[int] = None
    puertos_totales: Optional[int] = None
    fecha_compra: Optional[str] = None
    observaciones: Optional[str] = None
