from __future__ import annotations

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from ..core.config import get_settings
from ..core.jinja import get_templates
from ..deps.admin import AdminGateUnavailable, clear_admin, is_admin, mark_admin, verify_admin_password

router = APIRouter()
templates = get_templates()


def _safe_next(target: str) -> str:
    # Only local paths; anything else goes back to the dashboard.
    if not target or not target.startswith("/") or target.startswith("//"):
        return "/"
    return target


@router.get("/acceso", response_class=HTMLResponse)
def acceso_page(request: Request, next: str = "/"):
    if is_admin(request):
        return RedirectResponse(url=_safe_next(next), status_code=302)
    return templates.TemplateResponse(
        "acceso.html", {"request": request, "next": _safe_next(next), "error": "", "is_admin": False}
    )


@router.post("/acceso", response_class=HTMLResponse)
def acceso_submit(request: Request, password: str = Form(""), next: str = Form("/")):
    target = _safe_next(next)
    error = ""
    status_code = 200
    try:
        if verify_admin_password(password, get_settings()):
            mark_admin(request)
            return RedirectResponse(url=target, status_code=302)
        error, status_code = "Contraseña incorrecta", 401
    except AdminGateUnavailable as exc:
        error, status_code = str(exc), 500
    except ValueError as exc:
        error, status_code = str(exc), 400
    return templates.TemplateResponse(
        "acceso.html",
        {"request": request, "next": target, "error": error, "is_admin": False},
        status_code=status_code,
    )


@router.get("/salir")
def salir(request: Request, next: str = "/"):
    clear_admin(request)
    return RedirectResponse(url=_safe_next(next), status_code=302)
