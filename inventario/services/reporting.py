from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..schemas.equipo import EquipoRecord
from ..schemas.pantalla import PantallaRecord
from ..schemas.patchpanel import PatchPanelRecord
from ..schemas.switch import SwitchPortRecord, SwitchRecord

DASHBOARD_TIPOS = ("sobremesa", "portatil", "tablet")

TIPO_LABELS = {
    "sobremesa": "Sobremesa",
    "portatil": "Portátil",
    "tablet": "Tablet",
    "servidor": "Servidor",
    "almacenamiento": "Almacenamiento",
}

_TRAILING_NUMBER = re.compile(r"(\d+)\s*$")
_DIGITS = re.compile(r"(\d+)")


# ---------- shared helpers ----------


def strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def collation_key(value: Optional[str]) -> tuple:
    """Case and accent insensitive sort key that orders embedded numbers numerically."""

    text = strip_accents((value or "").strip()).casefold()
    key = []
    for chunk in _DIGITS.split(text):
        if not chunk:
            continue
        key.append((0, int(chunk), "") if chunk.isdigit() else (1, 0, chunk))
    return tuple(key)


def _in_zone(value: datetime, tz: Optional[tzinfo]) -> datetime:
    # Naive timestamps are already local.
    if tz is not None and value.tzinfo is not None:
        return value.astimezone(tz)
    return value


def parse_date(value: Any, tz: Optional[tzinfo] = None) -> Optional[date]:
    """Calendar date of ``value``; aware timestamps are first moved to ``tz``."""

    if isinstance(value, datetime):
        return _in_zone(value, tz).date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return _in_zone(datetime.fromisoformat(text.replace("Z", "+00:00")), tz).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def years_since(purchased: date, today: date) -> int:
    years = today.year - purchased.year
    if (today.month, today.day) < (purchased.month, purchased.day):
        years -= 1
    return years


def to_cents(value: Any) -> int:
    """Euros to integer cents, rounding half up; junk counts as zero."""

    if value is None:
        return 0
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return 0
    if not amount.is_finite():
        return 0
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_number_es(value: float, decimals: int = 0) -> str:
    """es-ES number formatting: ``.`` thousands (from five digits on), ``,`` decimals."""

    quantum = Decimal(1).scaleb(-decimals)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    integer, _, fraction = f"{abs(rounded):f}".partition(".")
    if len(integer) > 4:
        groups = []
        while integer:
            groups.insert(0, integer[-3:])
            integer = integer[:-3]
        integer = ".".join(groups)
    return f"{sign}{integer},{fraction}" if fraction else f"{sign}{integer}"


# ---------- dashboard ----------


def reference_years(today: date) -> List[int]:
    return [today.year, today.year - 1, today.year - 2]


def _empty_bucket(years: Iterable[int]) -> Dict[str, Any]:
    years = list(years)
    return {
        "cantidad": 0,
        "gasto_total_cents": 0,
        "gasto_por_anio_cents": {year: 0 for year in years},
        "cantidad_por_anio": {year: 0 for year in years},
    }


def _add_to_bucket(bucket: Dict[str, Any], cents: int, fecha_compra: Any) -> None:
    bucket["cantidad"] += 1
    bucket["gasto_total_cents"] += cents
    purchased = parse_date(fecha_compra)
    if purchased and purchased.year in bucket["cantidad_por_anio"]:
        bucket["cantidad_por_anio"][purchased.year] += 1
        bucket["gasto_por_anio_cents"][purchased.year] += cents


def calculate_indicators(equipos: Iterable[EquipoRecord], today: date) -> Dict[str, Dict[str, Any]]:
    """Count and spend per dashboard tipo, overall and for the last three years.

    Spend is purchase price plus operating system price, in cents.
    """

    years = reference_years(today)
    indicators = {tipo: _empty_bucket(years) for tipo in DASHBOARD_TIPOS}
    for equipo in equipos:
        tipo = (equipo.tipo or "").lower()
        if tipo not in indicators:
            continue
        cents = to_cents(equipo.precio_compra) + to_cents(equipo.so_precio)
        _add_to_bucket(indicators[tipo], cents, equipo.fecha_compra)
    return indicators


def summarize_screens(
    equipos: Iterable[EquipoRecord],
    pantallas_sin_equipo: Iterable[PantallaRecord],
    today: date,
) -> Dict[str, Any]:
    summary = _empty_bucket(reference_years(today))
    for equipo in equipos:
        for pantalla in equipo.pantallas:
            _add_to_bucket(summary, to_cents(pantalla.precio), pantalla.fecha_compra)
    for pantalla in pantallas_sin_equipo:
        _add_to_bucket(summary, to_cents(pantalla.precio), pantalla.fecha_compra)
    return summary


# ---------- equipment list ----------

TRISTATE_FILTERS = ("todos", "si", "no", "desconocido")


def _flag(params: Mapping[str, Any], name: str, submitted: bool) -> bool:
    # Unchecked boxes are simply absent once the filter form has been sent.
    if not submitted:
        return True
    return name in params


@dataclass
class EquipoFilters:
    tipo: Optional[str] = None
    anio: Optional[int] = None
    mostrar_boxes: bool = True
    mostrar_no_boxes: bool = True
    mostrar_asignados: bool = True
    mostrar_sin_asignar: bool = True
    sistema_operativo: str = ""
    ubicacion: str = ""
    tipo_seleccionado: str = ""
    antiguedad_minima: Optional[int] = None
    admite_update: str = "todos"
    al_garbigune: str = "todos"
    q: str = ""

    @classmethod
    def from_query(cls, params: Mapping[str, Any]) -> "EquipoFilters":
        submitted = "filtrar" in params

        def _int(name: str) -> Optional[int]:
            raw = params.get(name)
            try:
                return int(raw) if raw not in (None, "") else None
            except (TypeError, ValueError):
                return None

        def _tristate(name: str) -> str:
            raw = (params.get(name) or "todos").strip().lower()
            return raw if raw in TRISTATE_FILTERS else "todos"

        return cls(
            tipo=(params.get("tipo") or "").strip().lower() or None,
            anio=_int("anio"),
            mostrar_boxes=_flag(params, "boxes", submitted),
            mostrar_no_boxes=_flag(params, "no_boxes", submitted),
            mostrar_asignados=_flag(params, "asignados", submitted),
            mostrar_sin_asignar=_flag(params, "sin_asignar", submitted),
            sistema_operativo=(params.get("so") or "").strip(),
            ubicacion=(params.get("ubicacion") or "").strip(),
            tipo_seleccionado=(params.get("tipo_equipo") or "").strip().lower(),
            antiguedad_minima=_int("antiguedad"),
            admite_update=_tristate("admite_update"),
            al_garbigune=_tristate("al_garbigune"),
            q=(params.get("q") or "").strip(),
        )


def _tristate_matches(choice: str, value: Optional[bool]) -> bool:
    if choice == "si":
        return value is True
    if choice == "no":
        return value is False
    if choice == "desconocido":
        return value is None
    return True


def _normalize_for_search(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true 1 si yes" if value else "false 0 no"
    if isinstance(value, (int, float)):
        text = str(int(value)) if isinstance(value, float) and value.is_integer() else str(value)
        return f"{text} {text.replace('.', ',')}"
    if isinstance(value, (list, tuple)):
        return " ".join(_normalize_for_search(item) for item in value)
    if isinstance(value, dict):
        return " ".join(_normalize_for_search(item) for item in value.values())
    text = str(value).lower()
    return f"{text} {strip_accents(text)}".strip()


def _search_values(equipo: EquipoRecord) -> List[Any]:
    values: List[Any] = list(equipo.model_dump().values())
    if equipo.tipo and equipo.tipo.lower() in TIPO_LABELS:
        values.append(TIPO_LABELS[equipo.tipo.lower()])
    if equipo.usuario_nombre:
        values.append(equipo.usuario_nombre)
    if equipo.admite_update is not None:
        values.append("admite update" if equipo.admite_update else "no admite update")
    if equipo.al_garbigune is not None:
        values.append("al garbigune" if equipo.al_garbigune else "no garbigune")
    return values


def matches_search(equipo: EquipoRecord, query: str) -> bool:
    needle = strip_accents(query.strip().lower())
    if not needle:
        return True
    return any(needle in _normalize_for_search(value) for value in _search_values(equipo))


def filter_equipos(
    equipos: Iterable[EquipoRecord],
    filters: EquipoFilters,
    today: date,
) -> List[EquipoRecord]:
    result: List[EquipoRecord] = []
    for equipo in equipos:
        tipo = (equipo.tipo or "").strip().lower()
        if filters.tipo and tipo != filters.tipo:
            continue
        purchased = parse_date(equipo.fecha_compra)
        if filters.anio is not None and (purchased is None or purchased.year != filters.anio):
            continue

        ubicacion = equipo.ubicacion.nombre.strip() if equipo.ubicacion and equipo.ubicacion.nombre else ""
        en_boxes = "box" in ubicacion.lower()
        if en_boxes and not filters.mostrar_boxes:
            continue
        if not en_boxes and not filters.mostrar_no_boxes:
            continue

        asignado = equipo.usuario_id is not None
        if asignado and not filters.mostrar_asignados:
            continue
        if not asignado and not filters.mostrar_sin_asignar:
            continue

        if filters.sistema_operativo and (equipo.sistema_operativo or "").strip() != filters.sistema_operativo:
            continue
        if filters.ubicacion and ubicacion != filters.ubicacion:
            continue
        if filters.antiguedad_minima is not None:
            if purchased is None or years_since(purchased, today) < filters.antiguedad_minima:
                continue
        if filters.tipo_seleccionado and tipo != filters.tipo_seleccionado:
            continue
        if not _tristate_matches(filters.admite_update, equipo.admite_update):
            continue
        if not _tristate_matches(filters.al_garbigune, equipo.al_garbigune):
            continue
        if filters.q and not matches_search(equipo, filters.q):
            continue
        result.append(equipo)
    return result


def equipo_filter_options(equipos: Iterable[EquipoRecord]) -> Dict[str, List[str]]:
    sistemas: set[str] = set()
    ubicaciones: set[str] = set()
    tipos: set[str] = set()
    for equipo in equipos:
        if equipo.sistema_operativo and equipo.sistema_operativo.strip():
            sistemas.add(equipo.sistema_operativo.strip())
        if equipo.ubicacion and equipo.ubicacion.nombre and equipo.ubicacion.nombre.strip():
            ubicaciones.add(equipo.ubicacion.nombre.strip())
        if equipo.tipo and equipo.tipo.strip():
            tipos.add(equipo.tipo.strip().lower())
    return {
        "sistemas_operativos": sorted(sistemas, key=collation_key),
        "ubicaciones": sorted(ubicaciones, key=collation_key),
        "tipos": sorted(tipos, key=lambda tipo: collation_key(TIPO_LABELS.get(tipo, tipo))),
    }


# ---------- IP report ----------

IP_SORT_COLUMNS = (
    "ip",
    "equipo_nombre",
    "tipo",
    "usuario",
    "ubicacion",
    "toma_red",
    "switch_nombre",
    "puerto_label",
)


@dataclass
class PuertoResumen:
    switch_nombre: str
    puerto_label: str

    @property
    def texto(self) -> str:
        return " · ".join(part for part in (self.switch_nombre, self.puerto_label) if part)


@dataclass
class IpRow:
    ip: str
    equipo_id: str
    equipo_nombre: str
    tipo: str
    usuario: str
    ubicacion: str
    toma_red: str
    puertos: List[PuertoResumen] = field(default_factory=list)

    @property
    def switch_nombre(self) -> str:
        return self.puertos[0].switch_nombre if self.puertos else "Sin switch asociado"

    @property
    def puerto_label(self) -> str:
        return self.puertos[0].puerto_label if self.puertos else "—"


def _ip_octets(ip: str) -> List[int]:
    octets = []
    for segment in ip.split("."):
        match = re.match(r"\s*[+-]?\d+", segment)
        number = int(match.group()) if match else 0
        octets.append(number if 0 <= number <= 255 else 0)
    return (octets + [0, 0, 0, 0])[:4]


def compare_ips(a: str, b: str) -> int:
    left, right = _ip_octets(a), _ip_octets(b)
    return (left > right) - (left < right)


def build_ip_rows(equipos: Iterable[EquipoRecord]) -> List[IpRow]:
    rows: List[IpRow] = []
    for equipo in equipos:
        ip = (equipo.ip or "").strip()
        if not ip:
            continue
        puertos = []
        for puerto in equipo.puertos_conectados:
            switch_nombre = (puerto.switch.nombre or "").strip() if puerto.switch else ""
            parts = []
            if puerto.numero is not None:
                parts.append(f"Puerto {puerto.numero}")
            if puerto.vlan is not None:
                parts.append(f"VLAN {puerto.vlan}")
            puertos.append(
                PuertoResumen(
                    switch_nombre=switch_nombre or "Switch sin nombre",
                    puerto_label=" · ".join(parts),
                )
            )
        tipo = (equipo.tipo or "").lower()
        rows.append(
            IpRow(
                ip=ip,
                equipo_id=equipo.id,
                equipo_nombre=(equipo.nombre or "").strip() or "Equipo sin nombre",
                tipo=TIPO_LABELS.get(tipo, equipo.tipo or "Sin tipo"),
                usuario=equipo.usuario_nombre or "Sin usuario asignado",
                ubicacion=(equipo.ubicacion.nombre or "").strip()
                if equipo.ubicacion and equipo.ubicacion.nombre
                else "Sin ubicación",
                toma_red=(equipo.toma_red or "").strip() or "Sin dato",
                puertos=puertos,
            )
        )
    return sort_ip_rows(rows)


def sort_ip_rows(rows: List[IpRow], column: str = "ip", direction: str = "asc") -> List[IpRow]:
    if column not in IP_SORT_COLUMNS:
        column = "ip"
    reverse = direction == "desc"
    if column == "ip":
        return sorted(rows, key=lambda row: _ip_octets(row.ip), reverse=reverse)
    return sorted(rows, key=lambda row: collation_key(getattr(row, column)), reverse=reverse)


# ---------- switch connections ----------


def format_port_speed(value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value != value or value <= 0:
        return "Sin dato"
    if value >= 1000:
        return f"{format_number_es(value / 1000, 1).removesuffix(',0')} Gbps"
    return f"{format_number_es(value, 0)} Mbps"


def port_endpoint_name(puerto: SwitchPortRecord) -> str:
    if puerto.equipo and puerto.equipo.nombre and puerto.equipo.nombre.strip():
        return puerto.equipo.nombre.strip()
    if puerto.switch_conectado and puerto.switch_conectado.nombre and puerto.switch_conectado.nombre.strip():
        return f"Switch: {puerto.switch_conectado.nombre.strip()}"
    if puerto.nombre and puerto.nombre.strip():
        return puerto.nombre.strip()
    return "Puerto disponible"


def switch_connection_rows(switch: SwitchRecord) -> List[Dict[str, Any]]:
    """Ports ordered by number (unnumbered last) then by endpoint name."""

    ports = sorted(
        switch.puertos,
        key=lambda p: (
            p.numero if p.numero is not None else float("inf"),
            collation_key(port_endpoint_name(p)),
        ),
    )
    rows = []
    for puerto in ports:
        toma = puerto.equipo.toma_red.strip() if puerto.equipo and puerto.equipo.toma_red else ""
        observaciones = (puerto.observaciones or "").strip()
        rows.append(
            {
                "numero": puerto.numero,
                "equipo": port_endpoint_name(puerto),
                "toma_red": toma or "Sin dato",
                "vlan": puerto.vlan,
                "velocidad": format_port_speed(puerto.velocidad_mbps),
                "poe": bool(puerto.poe),
                "observaciones": observaciones or "Sin observaciones",
            }
        )
    return rows


def select_switches(switches: Iterable[SwitchRecord], selected_ids: Iterable[Any]) -> List[SwitchRecord]:
    wanted = {str(value) for value in selected_ids}
    return [item for item in switches if str(item.id) in wanted]


# ---------- listings ----------


def _timestamp(value: Any) -> float:
    parsed = parse_date(value)
    return parsed.toordinal() if parsed else float("-inf")


def sort_switches(switches: Iterable[SwitchRecord]) -> List[SwitchRecord]:
    """Newest purchase first, then by name."""

    by_name = sorted(switches, key=lambda item: collation_key(item.nombre))
    return sorted(by_name, key=lambda item: _timestamp(item.fecha_compra), reverse=True)


def filter_switches_by_year(switches: List[SwitchRecord], year: Optional[int]) -> List[SwitchRecord]:
    if year is None:
        return switches
    result = []
    for item in switches:
        purchased = parse_date(item.fecha_compra)
        if purchased is not None and purchased.year == year:
            result.append(item)
    return result


def trailing_number(nombre: Optional[str]) -> Optional[int]:
    if not nombre:
        return None
    match = _TRAILING_NUMBER.search(nombre.strip())
    return int(match.group(1)) if match else None


def sort_patchpanels(patchpanels: Iterable[PatchPanelRecord]) -> List[PatchPanelRecord]:
    """Panels named ``... N`` first by N, then newest purchase, then name."""

    def key(item: PatchPanelRecord) -> tuple:
        number = trailing_number(item.nombre)
        return (
            number is None,
            number if number is not None else 0,
            -_timestamp(item.fecha_compra),
            collation_key(item.nombre),
        )

    return sorted(patchpanels, key=key)
