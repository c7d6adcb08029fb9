from __future__ import annotations

import json
import logging
import re
from datetime import date
from typing import Any, Dict, List, Optional

import httpx

from ..core.config import AppSettings
from ..schemas.assistant import AssistantAnswer, Highlight
from ..schemas.equipo import EquipoRecord
from .reporting import parse_date, strip_accents, years_since

logger = logging.getLogger(__name__)

SCHEMA_CONTEXT = """
Base de datos: inventario de equipos.
Tabla public.equipos (alias e):
- id uuid PRIMARY KEY
- fabricante_id bigint REFERENCES fabricantes(id)
- ubicacion_id bigint REFERENCES ubicaciones(id)
- nombre text
- modelo text
- numero_serie text
- part_number text
- sistema_operativo text
- so_serial text
- admite_update boolean
- al_garbigune boolean
- procesador text
- ram numeric
- ssd numeric
- hdd numeric
- tarjeta_grafica text
- fecha_compra date
- precio_compra numeric
- fecha_bios date
- tipo public.tipo_equipo_enum (portatil, sobremesa, servidor, tablet, almacenamiento)
- usuario_id bigint REFERENCES usuarios(id)
- observaciones text
- url text
- so_precio numeric
- en_garantia boolean
"""

SYSTEM_PROMPT = (
    "Eres un asistente especializado en evaluar el inventario descrito. "
    "Debes analizar la peticion del usuario y los registros facilitados, devolver un conjunto de filtros y, "
    "sobre todo, razonar que equipos destacan segun la pregunta. "
    "Los datos incluyen campos utiles como 'sistema_operativo_normalizado', 'asignado', 'admite_update', "
    "'fecha_compra', 'precio_compra', 'ram', 'ssd', 'hdd', 'procesador', 'tarjeta_grafica', "
    "'antiguedad_anos' y 'en_garantia'. "
    "Considera coincidencias parciales sin distincion de mayusculas/minusculas en campos de texto. "
    "Trata un equipo como 'asignado' cuando 'asignado' es true o usuario_id no es null. "
    'Devuelve EXCLUSIVAMENTE JSON sin bloques de codigo ni texto extra, con la forma '
    '{"filters": { ... }, "highlights": [ ... ], "summary": "..."}. '
    "En 'filters' utiliza solo claves conocidas (sistema_operativo_contains, admite_update, asignado, "
    "al_garbigune, ubicacion_contains, tipo_in, antiguedad_min, antiguedad_max, ram_min, ram_max, "
    "precio_max, etc.). "
    '"highlights" debe ser un array con objetos {"id": string, "motivo": string}. El motivo debe explicar '
    "brevemente POR QUE el equipo encaja con la peticion, citando datos concretos. "
    "Si no hay equipos destacados, devuelve \"highlights\": [] y explica el motivo en 'summary'. "
    "No inventes informacion ni propongas acciones fuera del ambito del inventario. "
    "Mantente conciso y preciso."
)

TEMPERATURE = 0.2

_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)```", re.IGNORECASE)
_FENCED_ANY = re.compile(r"```([\s\S]*?)```")
_OUTER_OBJECT = re.compile(r"\{[\s\S]*\}")


class AssistantNotConfigured(Exception):
    """Raised when no API key is available for the language model."""


class AssistantError(Exception):
    """The language model call failed or returned something unusable."""


def build_assistant_context(equipos: List[EquipoRecord], today: date) -> List[Dict[str, Any]]:
    """Compact per-equipo records sent along with the question."""

    records = []
    for equipo in equipos:
        purchased = parse_date(equipo.fecha_compra)
        so = (equipo.sistema_operativo or "").strip()
        records.append(
            {
                "id": equipo.id,
                "nombre": equipo.nombre,
                "modelo": equipo.modelo,
                "tipo": equipo.tipo,
                "sistema_operativo": equipo.sistema_operativo,
                "sistema_operativo_normalizado": strip_accents(so.lower()) or None,
                "asignado": equipo.usuario_id is not None,
                "usuario_id": equipo.usuario_id,
                "ubicacion": equipo.ubicacion.nombre if equipo.ubicacion else None,
                "admite_update": equipo.admite_update,
                "al_garbigune": equipo.al_garbigune,
                "en_garantia": equipo.en_garantia,
                "fecha_compra": equipo.fecha_compra,
                "antiguedad_anos": years_since(purchased, today) if purchased else None,
                "precio_compra": equipo.precio_compra,
                "procesador": equipo.procesador,
                "ram": equipo.ram,
                "ssd": equipo.ssd,
                "hdd": equipo.hdd,
                "tarjeta_grafica": equipo.tarjeta_grafica,
            }
        )
    return records


def build_messages(prompt: str, equipos: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    user_message = (
        f"Pregunta del usuario:\n{prompt}\n\n"
        f"Datos de contexto (total {len(equipos)} registros, resumidos):\n"
        f"{json.dumps(equipos, ensure_ascii=False, indent=2, default=str)}\n"
    )
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "system", "content": f"Contexto estructural de la base de datos:\n{SCHEMA_CONTEXT}"},
        {"role": "user", "content": user_message},
    ]


def _load_json(answer: str) -> Any:
    try:
        return json.loads(answer)
    except json.JSONDecodeError:
        pass
    for pattern, group in ((_FENCED_JSON, 1), (_FENCED_ANY, 1), (_OUTER_OBJECT, 0)):
        match = pattern.search(answer)
        if match:
            try:
                return json.loads(match.group(group))
            except json.JSONDecodeError as exc:
                raise AssistantError("La IA no devolvio JSON valido.") from exc
    raise AssistantError("La IA no devolvio JSON valido.")


def parse_answer(answer: str) -> AssistantAnswer:
    parsed = _load_json(answer)
    if not isinstance(parsed, dict):
        parsed = {}

    filters = parsed.get("filters")
    summary = parsed.get("summary")
    highlights_raw = parsed.get("highlights")

    highlights: List[Highlight] = []
    if isinstance(highlights_raw, list):
        for item in highlights_raw:
            if not isinstance(item, dict) or not isinstance(item.get("id"), str):
                continue
            motivo = item.get("motivo")
            highlights.append(
                Highlight(
                    id=item["id"],
                    motivo=(motivo.strip() or None) if isinstance(motivo, str) else None,
                )
            )

    return AssistantAnswer(
        filters=filters if isinstance(filters, dict) else {},
        highlights=highlights,
        summary=summary.strip() if isinstance(summary, str) and summary.strip() else None,
    )


async def ask_assistant(
    prompt: str,
    equipos: List[Dict[str, Any]],
    settings: AppSettings,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> AssistantAnswer:
    if not settings.OPENAI_API_KEY:
        raise AssistantNotConfigured("OPENAI_API_KEY no esta configurada en el entorno.")

    body = {
        "model": settings.OPENAI_MODEL,
        "temperature": TEMPERATURE,
        "messages": build_messages(prompt, equipos),
    }
    headers = {"Authorization": f"Bearer {settings.OPENAI_API_KEY}"}

    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=settings.OPENAI_TIMEOUT)
    try:
        response = await http.post(settings.OPENAI_CHAT_URL, json=body, headers=headers)
    except httpx.HTTPError as exc:
        logger.error("Assistant request failed: %s", exc)
        raise AssistantError("Error inesperado al consultar la IA.") from exc
    finally:
        if owns_client:
            await http.aclose()

    if response.status_code >= 400:
        logger.warning("Assistant API answered %s", response.status_code)
        raise AssistantError(response.text or "Error desconocido en la API de OpenAI.")

    try:
        data = response.json()
    except ValueError as exc:
        raise AssistantError("La respuesta de la IA no contenia contenido utilizable.") from exc

    choices = data.get("choices") if isinstance(data, dict) else None
    content = None
    if isinstance(choices, list) and choices:
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            content = message["content"].strip()
    if not content:
        raise AssistantError("La respuesta de la IA no contenia contenido utilizable.")

    return parse_answer(content)
