"""
documap DB Backend — Base Adapter Interface.

All document-store backends must implement this interface. The
``DocumentDatabase`` engine delegates to the appropriate adapter based on
the connection URL.

Selectors and options are passed through untouched by the mapping core;
adapters are the only place they are interpreted. Recognised options:

- ``sort``   — list of ``[field, direction]`` pairs or a ``{field: direction}``
  mapping; direction is ``1``/``-1`` or ``"asc"``/``"desc"``
- ``limit``  — maximum number of documents
- ``skip``   — number of documents to skip
- ``fields`` — projection, a list of field names or a ``{field: 0|1}`` mapping
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger("documap.db.backends")

__all__ = [
    "DocumentAdapter",
    "AdapterCapabilities",
    "normalize_sort",
    "normalize_index_keys",
    "normalize_projection",
]


_DIRECTIONS = {
    1: 1,
    -1: -1,
    "asc": 1,
    "ascending": 1,
    "desc": -1,
    "descending": -1,
}


@dataclass
class AdapterCapabilities:
    """Describes what a specific backend supports."""

    persistent: bool = True
    supports_unique_indexes: bool = True
    name: str = "base"


def _direction(value: Any) -> int:
    key = value.lower() if isinstance(value, str) else value
    try:
        return _DIRECTIONS[key]
    except (KeyError, TypeError):
        raise ValueError(f"Unknown sort direction: {value!r}") from None


def normalize_sort(sort: Any) -> List[Tuple[str, int]]:
    """
    Convert a sort option to a list of ``(field, 1|-1)`` pairs.

    Accepts ``"field"``, ``[("field", "desc"), ...]``, ``[["field", -1]]``
    and ``{"field": "asc"}``.
    """
    if not sort:
        return []
    if isinstance(sort, str):
        return [(sort, 1)]
    if isinstance(sort, Mapping):
        return [(str(k), _direction(v)) for k, v in sort.items()]
    pairs: List[Tuple[str, int]] = []
    for item in sort:
        if isinstance(item, str):
            pairs.append((item, 1))
        else:
            name, direction = item
            pairs.append((str(name), _direction(direction)))
    return pairs


def normalize_index_keys(keys: Sequence[Any]) -> List[Tuple[str, int]]:
    """Index key lists share the sort-pair notation."""
    return normalize_sort(list(keys))


def normalize_projection(fields: Any) -> Optional[Dict[str, int]]:
    """Convert a ``fields`` option into a ``{field: 0|1}`` projection."""
    if fields is None:
        return None
    if isinstance(fields, Mapping):
        return {str(k): 1 if v else 0 for k, v in fields.items()}
    if isinstance(fields, str):
        fields = [fields]
    return {str(name): 1 for name in fields}


class DocumentAdapter(ABC):
    """
    Abstract document-store adapter interface.

    All operations are synchronous, blocking calls. Errors raised by the
    underlying driver propagate unchanged.
    """

    capabilities: AdapterCapabilities = AdapterCapabilities()

    @abstractmethod
    def connect(self, url: str, **options: Any) -> None:
        """Open a connection to the store."""
        ...

    @abstractmethod
    def disconnect(self) -> None:
        """Close the connection."""
        ...

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        ...

    @abstractmethod
    def find(
        self,
        database: str,
        collection: str,
        selector: Mapping[str, Any],
        options: Mapping[str, Any],
    ) -> Iterator[Dict[str, Any]]:
        """Return an iterator over raw documents matching ``selector``."""
        ...

    @abstractmethod
    def count(self, database: str, collection: str, selector: Mapping[str, Any]) -> int:
        """Count documents matching ``selector``."""
        ...

    @abstractmethod
    def insert_one(self, database: str, collection: str, document: Dict[str, Any]) -> Any:
        """Insert a document; return its storage-assigned identity."""
        ...

    @abstractmethod
    def replace_one(
        self,
        database: str,
        collection: str,
        doc_id: Any,
        document: Dict[str, Any],
        upsert: bool = True,
    ) -> None:
        """Replace the document with identity ``doc_id``."""
        ...

    @abstractmethod
    def delete_many(self, database: str, collection: str, selector: Mapping[str, Any]) -> int:
        """Delete matching documents; return the number removed."""
        ...

    @abstractmethod
    def create_index(
        self,
        database: str,
        collection: str,
        keys: Sequence[Tuple[str, int]],
        unique: bool = False,
        name: Optional[str] = None,
    ) -> str:
        """Create an index; return its name."""
        ...
