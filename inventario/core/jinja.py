"""Jinja2 environment and the formatting filters every page relies on.

Amounts are shown in euros with Spanish separators, dates in the Spanish
medium style (``5 mar 2024``) and port speeds in Mbps/Gbps.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any
from zoneinfo import ZoneInfo

from fastapi.templating import Jinja2Templates

from ..services.reporting import format_port_speed, parse_date
from .config import settings

# Dates are shown on the local calendar; aware timestamps are converted first.
LOCAL_TZ = ZoneInfo(settings.TZ) if settings.TZ else None

_MESES = ("ene", "feb", "mar", "abr", "may", "jun", "jul", "ago", "sept", "oct", "nov", "dic")


def _fmt_importe(value: Any) -> str:
    """``1234.5`` -> ``1.234,50 €``; missing values render as a dash."""

    if value is None or isinstance(value, bool):
        return "—"
    try:
        amount = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return "—"
    if not amount.is_finite():
        return "—"
    sign = "-" if amount < 0 else ""
    integer, fraction = f"{abs(amount):.2f}".split(".")
    grouped = f"{int(integer):,}".replace(",", ".")
    return f"{sign}{grouped},{fraction} €"


def _fmt_cents(value: Any) -> str:
    try:
        return _fmt_importe(Decimal(int(value)) / 100)
    except (TypeError, ValueError):
        return "—"


def _fmt_fecha(value: Any) -> str:
    if not value:
        return "Sin fecha"
    parsed = parse_date(value, LOCAL_TZ)
    if parsed is None:
        return "Fecha inválida"
    return f"{parsed.day} {_MESES[parsed.month - 1]} {parsed.year}"


def _fmt_bool(value: Any, unknown: str = "Sin dato") -> str:
    if value is None:
        return unknown
    return "Sí" if value else "No"


def get_templates() -> Jinja2Templates:
    """Create a ``Jinja2Templates`` instance with our standard filters registered."""

    templates = Jinja2Templates(directory=str(settings.TEMPLATES_DIR))
    env = templates.env
    env.filters["fmt_importe"] = _fmt_importe
    env.filters["fmt_cents"] = _fmt_cents
    env.filters["fmt_fecha"] = _fmt_fecha
    env.filters["fmt_speed"] = format_port_speed
    env.filters["fmt_bool"] = _fmt_bool
    return templates
