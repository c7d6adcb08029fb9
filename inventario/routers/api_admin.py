from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ..core.config import get_settings
from ..deps.admin import AdminGateUnavailable, mark_admin, verify_admin_password
from ..schemas.admin import VerifyRequest, VerifyResponse

router = APIRouter(prefix="/api/admin-local", tags=["admin"])


def _answer(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(VerifyResponse(ok=False, error=error).model_dump(), status_code=status_code)


@router.post("/verify", response_model=VerifyResponse, response_model_exclude_none=True)
async def verify(request: Request):
    # Malformed bodies count as a missing password.
    try:
        body = VerifyRequest.model_validate(await request.json())
    except ValueError:
        body = VerifyRequest()

    try:
        ok = verify_admin_password(body.password, get_settings())
    except AdminGateUnavailable as exc:
        return _answer(500, str(exc))
    except ValueError as exc:
        return _answer(400, str(exc))

    if not ok:
        return _answer(401, "Contraseña incorrecta")
    mark_admin(request)
    return VerifyResponse(ok=True)
