"""Thin REST client for the hosted data and storage service.

Tables are reached through PostgREST-style endpoints (``/rest/v1/<table>``)
and files through the object storage API (``/storage/v1/object/<bucket>``).
Every call is a single request/response; non-2xx answers become
``StoreError`` with the upstream status and body so callers can show them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence
from urllib.parse import quote

import httpx

from ..core.config import AppSettings
from ..core.errors import StoreError, StoreNotConfigured

logger = logging.getLogger(__name__)

Filters = Mapping[str, str]


def eq(value: Any) -> str:
    return f"eq.{value}"


def in_(values: Iterable[Any]) -> str:
    return f"in.({','.join(str(value) for value in values)})"


def is_null() -> str:
    return "is.null"


@dataclass(frozen=True)
class StoredObject:
    content: bytes
    content_type: str
    content_length: str | None = None


class RestStore:
    """Wraps an ``httpx.Client`` with the headers and URL layout of the store."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        client: httpx.Client | None = None,
        timeout: float = 10.0,
    ) -> None:
        if not base_url or not api_key:
            raise StoreNotConfigured(
                "URL o clave anonima del almacen no configuradas. "
                "Anade SUPABASE_URL y SUPABASE_ANON_KEY al fichero .env.local."
            )
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout))

    @classmethod
    def from_settings(cls, settings: AppSettings, *, client: httpx.Client | None = None) -> "RestStore":
        return cls(
            settings.SUPABASE_URL,
            settings.SUPABASE_ANON_KEY,
            client=client,
            timeout=settings.HTTP_TIMEOUT,
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "RestStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ---------- plumbing ----------

    def _headers(self, extra: Mapping[str, str] | None = None) -> dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
        }
        if extra:
            headers.update(extra)
        return headers

    def _table_url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    def _object_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/{bucket}/{quote(path, safe='/')}"

    def _check(self, response: httpx.Response, action: str, target: str) -> None:
        if response.is_success:
            return
        details = response.text
        if response.status_code >= 500:
            logger.error("Store error %s while trying to %s %s", response.status_code, action, target)
        else:
            logger.warning("Store rejected %s %s with %s", action, target, response.status_code)
        raise StoreError(
            f"Error al {action} {target}: {response.status_code} {details}".rstrip(),
            status_code=response.status_code,
            details=details,
        )

    def _send(self, method: str, url: str, action: str, target: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.RequestError as exc:
            logger.error("Store unreachable while trying to %s %s: %s", action, target, exc)
            raise StoreError(f"Error al {action} {target}: {exc}", details=str(exc)) from exc
        self._check(response, action, target)
        return response

    # ---------- tables ----------

    def select(
        self,
        table: str,
        columns: str = "*",
        *,
        filters: Filters | None = None,
        order: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        params: dict[str, str] = {"select": columns}
        if filters:
            params.update(filters)
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = str(limit)
        response = self._send("GET", self._table_url(table), "recuperar", table, params=params, headers=self._headers())
        return response.json()

    def select_one(self, table: str, columns: str = "*", *, filters: Filters) -> dict[str, Any] | None:
        rows = self.select(table, columns, filters=filters, limit=1)
        return rows[0] if rows else None

    def insert(
        self,
        table: str,
        rows: Mapping[str, Any] | Sequence[Mapping[str, Any]],
        *,
        returning: bool = True,
    ) -> list[dict[str, Any]]:
        prefer = "return=representation" if returning else "return=minimal"
        response = self._send(
            "POST",
            self._table_url(table),
            "crear",
            table,
            json=rows,
            headers=self._headers({"Content-Type": "application/json", "Prefer": prefer}),
        )
        return response.json() if returning and response.content else []

    def update(self, table: str, filters: Filters, payload: Mapping[str, Any]) -> None:
        if not payload:
            return
        self._send(
            "PATCH",
            self._table_url(table),
            "actualizar",
            table,
            params=dict(filters),
            json=dict(payload),
            headers=self._headers({"Content-Type": "application/json", "Prefer": "return=minimal"}),
        )

    def upsert(
        self,
        table: str,
        rows: Sequence[Mapping[str, Any]],
        *,
        on_conflict: str = "id",
    ) -> list[dict[str, Any]]:
        """Insert or merge ``rows``.

        Bulk requests must share one set of keys, so rows are grouped by their
        key set (typically "has an id" vs. "new row") and sent per group.
        """

        saved: list[dict[str, Any]] = []
        for batch in _batches_by_keys(rows):
            response = self._send(
                "POST",
                self._table_url(table),
                "guardar",
                table,
                params={"on_conflict": on_conflict},
                json=batch,
                headers=self._headers(
                    {
                        "Content-Type": "application/json",
                        "Prefer": "resolution=merge-duplicates,return=representation",
                    }
                ),
            )
            if response.content:
                saved.extend(response.json())
        return saved

    def delete(self, table: str, filters: Filters) -> None:
        if not filters:
            raise ValueError("delete requires at least one filter")
        self._send(
            "DELETE", self._table_url(table), "eliminar", table, params=dict(filters), headers=self._headers()
        )

    # ---------- object storage ----------

    def upload_object(
        self,
        bucket: str,
        path: str,
        content: bytes,
        content_type: str,
        *,
        upsert: bool = False,
    ) -> str:
        self._send(
            "POST",
            self._object_url(bucket, path),
            "subir",
            f"{bucket}/{path}",
            content=content,
            headers=self._headers(
                {
                    "Content-Type": content_type,
                    "x-upsert": "true" if upsert else "false",
                    "Cache-Control": "3600",
                }
            ),
        )
        return path

    def download_object(self, bucket: str, path: str) -> StoredObject:
        response = self._send(
            "GET", self._object_url(bucket, path), "descargar", f"{bucket}/{path}", headers=self._headers()
        )
        return StoredObject(
            content=response.content,
            content_type=response.headers.get("content-type") or "application/octet-stream",
            content_length=response.headers.get("content-length"),
        )

    def list_objects(self, bucket: str, prefix: str, *, limit: int = 100) -> list[dict[str, Any]]:
        response = self._send(
            "POST",
            f"{self.base_url}/storage/v1/object/list/{bucket}",
            "listar",
            f"{bucket}/{prefix}",
            json={"prefix": prefix, "limit": limit, "sortBy": {"column": "name", "order": "asc"}},
            headers=self._headers({"Content-Type": "application/json"}),
        )
        return response.json() if response.content else []

    def remove_objects(self, bucket: str, paths: Sequence[str]) -> None:
        if not paths:
            return
        self._send(
            "DELETE",
            f"{self.base_url}/storage/v1/object/{bucket}",
            "eliminar",
            bucket,
            json={"prefixes": list(paths)},
            headers=self._headers({"Content-Type": "application/json"}),
        )


def _batches_by_keys(rows: Sequence[Mapping[str, Any]]) -> list[list[dict[str, Any]]]:
    groups: dict[tuple[str, ...], list[dict[str, Any]]] = {}
    for row in rows:
        key = tuple(sorted(row.keys()))
        groups.setdefault(key, []).append(dict(row))
    return list(groups.values())
