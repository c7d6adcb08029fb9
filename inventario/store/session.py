"""Per-request store wiring."""

from __future__ import annotations

from typing import Iterator, Optional

from ..core.config import get_settings
from .client import RestStore


def get_store() -> Iterator[RestStore]:
    """FastAPI dependency that yields a store and guarantees the client is closed."""

    store = RestStore.from_settings(get_settings())
    try:
        yield store
    finally:
        store.close()


def get_store_or_none() -> Iterator[Optional[RestStore]]:
    """Like ``get_store`` but yields ``None`` instead of failing when unconfigured."""

    settings = get_settings()
    if not settings.store_configured:
        yield None
        return
    store = RestStore.from_settings(settings)
    try:
        yield store
    finally:
        store.close()
