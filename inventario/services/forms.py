"""Turn submitted HTML forms into store payloads.

Every parser takes the raw form mapping (Starlette's ``FormData`` or a plain
dict in tests) and either returns validated pydantic payloads or raises
``FormError`` with the Spanish message the page shows above the form.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..core.errors import FormError
from ..schemas.equipo import TIPOS_ACTUACION, ActuacionInput, EquipoPayload
from ..schemas.pantalla import PantallaPayload
from ..schemas.patchpanel import PatchPanelPayload, PatchPanelPortUpsert
from ..schemas.switch import SwitchPayload, SwitchPortUpsert

Form = Mapping[str, Any]

_POE_ON = {"on", "true", "1"}


def get_str_or_none(form: Form, name: str) -> Optional[str]:
    value = form.get(name)
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def parse_number(form: Form, name: str, label: str) -> Optional[float]:
    """Decimal field; a comma is accepted as the decimal separator."""

    raw = get_str_or_none(form, name)
    if raw is None:
        return None
    try:
        value = float(raw.replace(",", ".", 1))
    except ValueError:
        raise FormError(f'Introduce un valor numerico valido en "{label}".') from None
    # float() also takes "inf", "nan" and "1_000"; none of them is a form number.
    if "_" in raw or not math.isfinite(value):
        raise FormError(f'Introduce un valor numerico valido en "{label}".')
    return value


def parse_int(form: Form, name: str, label: str) -> Optional[int]:
    value = parse_number(form, name, label)
    if value is None:
        return None
    return math.trunc(value)


def parse_tristate(form: Form, name: str) -> Optional[bool]:
    raw = form.get(name)
    if not isinstance(raw, str):
        return None
    normalized = raw.strip().lower()
    if normalized == "true":
        return True
    if normalized == "false":
        return False
    return None


def _parse_plain_int(raw: Any) -> Optional[int]:
    """Leading-digits integer parse; ``None`` for blank, ``ValueError`` for junk."""

    if not isinstance(raw, str) or not raw.strip():
        return None
    text = raw.strip()
    digits = ""
    for index, char in enumerate(text):
        if char.isdigit() or (index == 0 and char in "+-"):
            digits += char
        else:
            break
    if digits in ("", "+", "-"):
        raise ValueError(text)
    return int(digits)


# ---------- equipos ----------


def parse_equipo_form(form: Form) -> tuple[EquipoPayload, list[ActuacionInput]]:
    precio_compra = parse_number(form, "precio_compra", "Precio compra")
    so_precio = parse_number(form, "so_precio", "Precio SO")
    ram = parse_number(form, "ram", "RAM")
    ssd = parse_number(form, "ssd", "SSD")
    hdd = parse_number(form, "hdd", "HDD")
    fabricante_id = parse_int(form, "fabricante_id", "Fabricante")
    ubicacion_id = parse_int(form, "ubicacion_id", "Ubicacion")
    usuario_id = parse_int(form, "usuario_id", "Usuario asignado")

    payload = EquipoPayload(
        nombre=get_str_or_none(form, "nombre"),
        modelo=get_str_or_none(form, "modelo"),
        tipo=get_str_or_none(form, "tipo"),
        fecha_compra=get_str_or_none(form, "fecha_compra"),
        # A checkbox: anything but an explicit "true" means no warranty.
        en_garantia=form.get("en_garantia") == "true",
        precio_compra=precio_compra,
        fabricante_id=fabricante_id,
        ubicacion_id=ubicacion_id,
        usuario_id=usuario_id,
        sistema_operativo=get_str_or_none(form, "sistema_operativo"),
        so_precio=so_precio,
        so_serial=get_str_or_none(form, "so_serial"),
        numero_serie=get_str_or_none(form, "numero_serie"),
        part_number=get_str_or_none(form, "part_number"),
        ip=get_str_or_none(form, "ip"),
        tarjeta_red=get_str_or_none(form, "tarjeta_red"),
        toma_red=get_str_or_none(form, "toma_red"),
        admite_update=parse_tristate(form, "admite_update"),
        al_garbigune=parse_tristate(form, "al_garbigune"),
        procesador=get_str_or_none(form, "procesador"),
        ram=ram,
        ssd=ssd,
        hdd=hdd,
        tarjeta_grafica=get_str_or_none(form, "tarjeta_grafica"),
        observaciones=get_str_or_none(form, "observaciones"),
        url=get_str_or_none(form, "url"),
        fecha_bios=get_str_or_none(form, "fecha_bios"),
    )
    return payload, parse_actuaciones(form)


def parse_actuaciones(form: Form) -> list[ActuacionInput]:
    """Rows ``actuaciones_<i>_<campo>`` for ``i`` below ``actuaciones_count``."""

    try:
        count = _parse_plain_int(form.get("actuaciones_count")) or 0
    except ValueError:
        count = -1
    if count < 0:
        raise FormError("El numero de actuaciones indicado es invalido.")

    items: list[ActuacionInput] = []
    for index in range(count):
        human = index + 1
        prefix = f"actuaciones_{index}_"
        tipo = get_str_or_none(form, prefix + "tipo")
        descripcion = get_str_or_none(form, prefix + "descripcion")
        fecha = get_str_or_none(form, prefix + "fecha")
        hecha_por = get_str_or_none(form, prefix + "hecha_por")
        coste = parse_number(form, prefix + "coste", f"Coste actuacion {human}")

        if not (tipo or descripcion or coste is not None or fecha or hecha_por):
            continue
        if not tipo:
            raise FormError(f"La actuacion {human} debe incluir un tipo.")
        if tipo not in TIPOS_ACTUACION:
            raise FormError(f"Selecciona un tipo valido para la actuacion {human}.")

        try:
            actuacion_id = _parse_plain_int(form.get(prefix + "id"))
        except ValueError:
            actuacion_id = None
        items.append(
            ActuacionInput(
                id=actuacion_id,
                tipo=tipo,
                descripcion=descripcion,
                coste=coste,
                fecha=fecha,
                hecha_por=hecha_por,
            )
        )
    return items


# ---------- pantallas ----------


def parse_pantalla_form(form: Form) -> PantallaPayload:
    fabricante_id = parse_int(form, "fabricante_id", "Fabricante")
    pulgadas = parse_number(form, "pulgadas", "Pulgadas")
    precio = parse_number(form, "precio", "Precio")
    return PantallaPayload(
        modelo=get_str_or_none(form, "modelo"),
        fabricante_id=fabricante_id,
        precio=precio,
        fecha_compra=get_str_or_none(form, "fecha_compra"),
        en_garantia=parse_tristate(form, "en_garantia"),
        pulgadas=pulgadas,
        equipo_id=get_str_or_none(form, "equipo_id"),
        observaciones=get_str_or_none(form, "observaciones"),
    )


# ---------- switches ----------


def parse_switch_form(form: Form) -> SwitchPayload:
    fabricante_id = parse_int(form, "fabricante_id", "Fabricante")
    ubicacion_id = parse_int(form, "ubicacion_id", "Ubicacion")
    ancho_banda = parse_number(form, "ancho_banda_gbps", "Ancho de banda")
    puertos_totales = parse_int(form, "puertos_totales", "Puertos totales")
    precio = parse_number(form, "precio", "Precio")
    return SwitchPayload(
        nombre=get_str_or_none(form, "nombre"),
        modelo=get_str_or_none(form, "modelo"),
        fabricante_id=fabricante_id,
        ubicacion_id=ubicacion_id,
        ip=get_str_or_none(form, "ip"),
        ancho_banda_gbps=ancho_banda,
        puertos_totales=puertos_totales,
        precio=precio,
        fecha_compra=get_str_or_none(form, "fecha_compra"),
        en_garantia=parse_tristate(form, "en_garantia") or False,
        observaciones=get_str_or_none(form, "observaciones"),
    )


@dataclass
class PortChanges:
    """What a ports form asks the store to do."""

    upserts: list = field(default_factory=list)
    delete_ids: list[int] = field(default_factory=list)


def _ports_total(form: Form) -> int:
    try:
        total = _parse_plain_int(form.get("puertos_totales"))
    except ValueError:
        total = None
    if total is None or total <= 0:
        raise FormError("El número total de puertos indicado no es válido.")
    return total


def _port_id(form: Form, base: str) -> Optional[int]:
    try:
        return _parse_plain_int(form.get(f"{base}_id"))
    except ValueError:
        return None


def parse_switch_ports_form(form: Form, switch_id: int, puertos_totales: Optional[int] = None) -> PortChanges:
    """Read ``puerto_<n>_*`` fields for ports 1..N.

    ``puertos_totales`` falls back to the hidden field of the same name.
    """

    total = puertos_totales if puertos_totales and puertos_totales > 0 else _ports_total(form)
    changes = PortChanges()

    for numero in range(1, total + 1):
        base = f"puerto_{numero}"
        port_id = _port_id(form, base)
        nombre = get_str_or_none(form, f"{base}_nombre")
        observaciones = get_str_or_none(form, f"{base}_observaciones")

        equipo_id: Optional[str] = None
        switch_conectado_id: Optional[int] = None
        seleccion = get_str_or_none(form, f"{base}_equipo_id")
        if seleccion:
            if seleccion.startswith("equipo:"):
                equipo_id = seleccion[len("equipo:"):] or None
            elif seleccion.startswith("switch:"):
                try:
                    switch_conectado_id = _parse_plain_int(seleccion[len("switch:"):])
                except ValueError:
                    switch_conectado_id = None
                if switch_conectado_id is None:
                    raise FormError(f"El switch seleccionado para el puerto {numero} no es válido.")
            else:
                equipo_id = seleccion

        try:
            vlan = _parse_plain_int(form.get(f"{base}_vlan"))
        except ValueError:
            vlan = -1
        if vlan is not None and vlan < 0:
            raise FormError(f"La VLAN indicada para el puerto {numero} no es válida.")

        try:
            velocidad = _parse_plain_int(form.get(f"{base}_velocidad"))
        except ValueError:
            velocidad = -1
        if velocidad is not None and velocidad < 0:
            raise FormError(f"La velocidad indicada para el puerto {numero} no es válida.")

        poe_raw = form.get(f"{base}_poe")
        poe = isinstance(poe_raw, str) and poe_raw in _POE_ON

        has_content = bool(
            nombre
            or equipo_id
            or switch_conectado_id is not None
            or vlan is not None
            or velocidad is not None
            or poe
            or observaciones
        )
        if not has_content:
            if port_id is not None:
                changes.delete_ids.append(port_id)
            continue

        changes.upserts.append(
            SwitchPortUpsert(
                id=port_id,
                switch_id=switch_id,
                numero=numero,
                nombre=nombre,
                equipo_id=equipo_id,
                switch_conectado_id=switch_conectado_id,
                vlan=vlan,
                velocidad_mbps=velocidad,
                poe=poe,
                observaciones=observaciones,
            )
        )
    return changes


# ---------- patch panels ----------


def parse_patchpanel_form(form: Form) -> PatchPanelPayload:
    ubicacion_id = parse_int(form, "ubicacion_id", "Ubicacion")
    puertos_totales = parse_int(form, "puertos_totales", "Puertos totales")
    if puertos_totales is not None and puertos_totales < 0:
        raise FormError('Introduce un valor numerico valido en "Puertos totales".')
    return PatchPanelPayload(
        nombre=get_str_or_none(form, "nombre"),
        ubicacion_id=ubicacion_id,
        puertos_totales=puertos_totales,
        fecha_compra=get_str_or_none(form, "fecha_compra"),
        observaciones=get_str_or_none(form, "observaciones"),
    )


def parse_patchpanel_ports_form(
    form: Form,
    patchpanel_id: int,
    puertos_totales: Optional[int],
    port_owner: Mapping[int, int],
) -> PortChanges:
    """Read ``puerto_<n>_*`` fields of a patch panel.

    ``port_owner`` maps every known switch port id to its switch id.
    """

    total = puertos_totales if puertos_totales and puertos_totales > 0 else _ports_total(form)
    changes = PortChanges()

    for numero in range(1, total + 1):
        base = f"puerto_{numero}"
        port_id = _port_id(form, base)

        try:
            switch_id = _parse_plain_int(form.get(f"{base}_switch_id"))
        except ValueError:
            raise FormError(f"El switch seleccionado para el puerto {numero} no es válido.") from None
        try:
            puerto_switch_id = _parse_plain_int(form.get(f"{base}_puerto_switch_id"))
        except ValueError:
            raise FormError(
                f"El puerto del switch seleccionado para el puerto {numero} no es válido."
            ) from None

        if switch_id is not None and puerto_switch_id is None:
            raise FormError(f"Selecciona un puerto del switch para el puerto {numero}.")
        if switch_id is None and puerto_switch_id is not None:
            raise FormError(f"Selecciona un switch para el puerto {numero}.")
        if switch_id is not None and puerto_switch_id is not None:
            owner = port_owner.get(puerto_switch_id)
            if owner is None:
                raise FormError(f"El puerto seleccionado para el puerto {numero} no existe.")
            if owner != switch_id:
                raise FormError(
                    f"El puerto seleccionado para el puerto {numero} no pertenece al switch elegido."
                )

        etiqueta = get_str_or_none(form, f"{base}_etiqueta")
        observaciones = get_str_or_none(form, f"{base}_observaciones")

        if puerto_switch_id is None and not etiqueta and not observaciones:
            if port_id is not None:
                changes.delete_ids.append(port_id)
            continue

        changes.upserts.append(
            PatchPanelPortUpsert(
                id=port_id,
                patchpanel_id=patchpanel_id,
                numero=numero,
                puerto_switch_id=puerto_switch_id,
                etiqueta=etiqueta,
                observaciones=observaciones,
            )
        )
    return changes
