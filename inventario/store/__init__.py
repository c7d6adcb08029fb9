from __future__ import annotations

from .client import RestStore, StoredObject, eq, in_, is_null
from .session import get_store, get_store_or_none

__all__ = ["RestStore", "StoredObject", "eq", "get_store", "get_store_or_none", "in_", "is_null"]
