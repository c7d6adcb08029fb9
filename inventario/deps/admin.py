"""Admin password gate.

Read-only pages are public. Creating, editing and deleting needs the local
admin password once per session; the verified flag lives in the signed
session cookie.
"""

from __future__ import annotations

import hmac
import logging
from typing import Any

import bcrypt
from fastapi import HTTPException, Request, status

from ..core.config import AppSettings

logger = logging.getLogger(__name__)

SESSION_FLAG = "admin_verified"


class AdminGateUnavailable(RuntimeError):
    """No admin password (or hash) is configured on the server."""


def is_admin(request: Request) -> bool:
    return bool(request.session.get(SESSION_FLAG))


def require_admin_session(request: Request) -> bool:
    if not is_admin(request):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Contraseña requerida")
    return True


def mark_admin(request: Request) -> None:
    request.session[SESSION_FLAG] = True


def clear_admin(request: Request) -> None:
    request.session.pop(SESSION_FLAG, None)


def verify_admin_password(provided: Any, settings: AppSettings) -> bool:
    """Check ``provided`` against the configured hash or password.

    Raises ``AdminGateUnavailable`` when nothing is configured and
    ``ValueError`` when the provided password is blank.
    """

    hashed = (settings.ADMIN_PASSWORD_HASH or "").strip()
    expected = (settings.ADMIN_LOCAL_PASSWORD or "").strip()
    if not hashed and not expected:
        logger.warning("ADMIN_LOCAL_PASSWORD is not configured; refusing admin access")
        raise AdminGateUnavailable("Servicio no disponible")

    candidate = provided.strip() if isinstance(provided, str) else ""
    if not candidate:
        raise ValueError("Contraseña requerida")

    if hashed:
        try:
            return bcrypt.checkpw(candidate.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            logger.error("ADMIN_PASSWORD_HASH is not a valid bcrypt hash")
            return False
    return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))
