from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class AssistantContext(BaseModel):
    equipos: list[dict[str, Any]] = Field(default_factory=list)


class AssistantRequest(BaseModel):
    prompt: Optional[str] = None
    contexto: Optional[AssistantContext] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "prompt": "Equipos con Windows 10 que no admiten actualizacion",
                "contexto": {"equipos": [{"id": "5b1c...", "sistema_operativo_normalizado": "windows 10"}]},
            }
        }
    }


class Highlight(BaseModel):
    id: str
    motivo: Optional[str] = None


class AssistantAnswer(BaseModel):
    filters: dict[str, Any] = Field(default_factory=dict)
    highlights: list[Highlight] = Field(default_factory=list)
    summary: Optional[str] = None
