"""
documap DB Backends Package — pluggable document-store adapters.

Provides a common adapter interface and implementations for:
- MongoDB (via pymongo)
- Memory (in-process store for tests and prototyping)
"""

from .base import (
    DocumentAdapter,
    AdapterCapabilities,
    normalize_sort,
    normalize_index_keys,
    normalize_projection,
)
from .memory import MemoryAdapter
from .mongo import PyMongoAdapter

__all__ = [
    "DocumentAdapter",
    "AdapterCapabilities",
    "normalize_sort",
    "normalize_index_keys",
    "normalize_projection",
    "MemoryAdapter",
    "PyMongoAdapter",
]
