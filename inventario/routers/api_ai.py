from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ..core.config import get_settings
from ..schemas.assistant import AssistantAnswer, AssistantRequest
from ..services.assistant import AssistantError, AssistantNotConfigured, ask_assistant

router = APIRouter(prefix="/api", tags=["assistant"])


@router.post("/ai", response_model=AssistantAnswer)
async def ask(request: Request):
    settings = get_settings()
    if not settings.OPENAI_API_KEY:
        return JSONResponse({"message": "OPENAI_API_KEY no esta configurada en el entorno."}, status_code=500)

    try:
        body = AssistantRequest.model_validate(await request.json())
    except (ValueError, ValidationError):
        return JSONResponse({"message": "Cuerpo de la peticion invalido."}, status_code=400)

    prompt = (body.prompt or "").strip()
    if not prompt:
        return JSONResponse({"message": "El prompt no puede estar vacio."}, status_code=400)

    equipos = body.contexto.equipos if body.contexto else []
    try:
        return await ask_assistant(prompt, equipos, settings)
    except (AssistantNotConfigured, AssistantError) as exc:
        return JSONResponse({"message": str(exc)}, status_code=500)
