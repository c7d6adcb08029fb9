from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class VerifyRequest(BaseModel):
    # Kept loose so a non-string password is treated like a missing one.
    password: Any = None

    model_config = {
        "json_schema_extra": {
            "example": {"password": "contraseña-local"}
        }
    }


class VerifyResponse(BaseModel):
    ok: bool
    error: str | None = None
