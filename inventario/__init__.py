"""Application factory and top-level wiring for the inventory app.

This module brings together configuration, templates, static files, the
session cookie that remembers a verified admin, the API and HTML routers,
and the error handlers. Reading ``create_app`` top to bottom gives the whole
picture of what runs on every request.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from .core.config import AppSettings, get_settings
from .core.errors import (
    StoreError,
    StoreNotConfigured,
    http_exception_handler,
    store_error_handler,
    store_not_configured_handler,
    validation_exception_handler,
)
from .middlewares import RequestIdMiddleware, SecurityHeadersMiddleware


def create_app(settings: AppSettings | None = None) -> FastAPI:
    settings = settings or get_settings()

    # ---------- App init ----------
    app = FastAPI(title=settings.APP_NAME)
    app.mount("/static", StaticFiles(directory=str(settings.STATIC_DIR)), name="static")

    # ---------- Middleware ----------
    # Starlette runs the last added middleware first, so the session is
    # available by the time the request logger reads it.
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.APP_SECRET,
        session_cookie=settings.SESSION_COOKIE_NAME,
        max_age=settings.SESSION_MAX_AGE,
        same_site="lax",
        https_only=False,  # set True once the app is always accessed via HTTPS at the edge
    )

    # ---------- Routers ----------
    from .routers import api_admin, api_ai, api_equipos, api_reports, api_storage, auth_ui, ui

    app.include_router(auth_ui.router)
    app.include_router(ui.router)
    app.include_router(api_admin.router)
    app.include_router(api_ai.router)
    app.include_router(api_equipos.router)
    app.include_router(api_reports.router)
    app.include_router(api_storage.router)

    # ---------- Exception handling ----------
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StoreNotConfigured, store_not_configured_handler)
    app.add_exception_handler(StoreError, store_error_handler)

    @app.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    return app


__all__ = ["create_app"]
