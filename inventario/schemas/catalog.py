"""Lookup lists used to fill the select boxes of every form."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class NombreRef(BaseModel):
    """Embedded ``{nombre}`` object returned for joined lookups."""

    nombre: Optional[str] = None


class CatalogoItem(BaseModel):
    id: int
    nombre: Optional[str] = None


class UsuarioCatalogo(BaseModel):
    id: int
    nombre: Optional[str] = None
    apellidos: Optional[str] = None
    nombre_completo: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.nombre_completo and self.nombre_completo.strip():
            return self.nombre_completo.strip()
        parts = [p.strip() for p in (self.nombre, self.apellidos) if p and p.strip()]
        return " ".join(parts) if parts else f"Usuario #{self.id}"


class EquipoCatalogoItem(BaseModel):
    id: str
    nombre: Optional[str] = None
    modelo: Optional[str] = None


class SwitchCatalogoItem(BaseModel):
    id: int
    nombre: Optional[str] = None


class SwitchPortCatalogoItem(BaseModel):
    id: int
    switch_id: int
    numero: int
    nombre: Optional[str] = None
