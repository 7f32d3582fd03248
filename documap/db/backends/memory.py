"""
documap DB Backend — in-process memory adapter.

Keeps documents in plain dicts, one store per ``memory://`` connection.
Useful for tests and prototyping; it understands the subset of the MongoDB
selector language that mapped-class finders typically use:

- equality (including membership in array fields and dotted paths)
- ``$eq``, ``$ne``, ``$in``, ``$nin``, ``$gt``, ``$gte``, ``$lt``, ``$lte``,
  ``$exists``
- top-level ``$and`` / ``$or``

Identities are ``bson.ObjectId`` values, unique-index violations raise
``pymongo.errors.DuplicateKeyError`` like the real driver does.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from ...faults.domains import DatabaseConnectionFault
from .base import (
    AdapterCapabilities,
    DocumentAdapter,
    normalize_projection,
    normalize_sort,
)

logger = logging.getLogger("documap.db.backends.memory")

__all__ = ["MemoryAdapter"]

_MISSING = object()


def _lookup(document: Any, path: str) -> Any:
    current = document
    for part in path.split("."):
        if isinstance(current, Mapping):
            current = current.get(part, _MISSING)
        elif isinstance(current, list) and part.isdigit():
            index = int(part)
            current = current[index] if index < len(current) else _MISSING
        else:
            return _MISSING
        if current is _MISSING:
            return _MISSING
    return current


def _compare(op: str, actual: Any, expected: Any) -> bool:
    try:
        if op == "$gt":
            return actual > expected
        if op == "$gte":
            return actual >= expected
        if op == "$lt":
            return actual < expected
        if op == "$lte":
            return actual <= expected
    except TypeError:
        return False
    raise ValueError(f"Unsupported operator: {op}")


def _equals(actual: Any, expected: Any) -> bool:
    if actual is _MISSING:
        return expected is None
    if actual == expected:
        return True
    return isinstance(actual, list) and not isinstance(expected, list) and expected in actual


def _match_operator(op: str, actual: Any, expected: Any) -> bool:
    if op == "$eq":
        return _equals(actual, expected)
    if op == "$ne":
        return not _equals(actual, expected)
    if op == "$in":
        return any(_equals(actual, candidate) for candidate in expected)
    if op == "$nin":
        return not any(_equals(actual, candidate) for candidate in expected)
    if op == "$exists":
        return (actual is not _MISSING) == bool(expected)
    if actual is _MISSING:
        return False
    if isinstance(actual, list):
        return any(_compare(op, item, expected) for item in actual)
    return _compare(op, actual, expected)


def _is_operator_doc(value: Any) -> bool:
    return (
        isinstance(value, Mapping)
        and bool(value)
        and all(str(k).startswith("$") for k in value)
        and not {"$ref", "$id"} <= set(value)
    )


def matches(document: Mapping[str, Any], selector: Mapping[str, Any]) -> bool:
    """Evaluate ``selector`` against a single document."""
    for key, condition in selector.items():
        if key == "$and":
            if not all(matches(document, sub) for sub in condition):
                return False
        elif key == "$or":
            if not any(matches(document, sub) for sub in condition):
                return False
        elif _is_operator_doc(condition):
            actual = _lookup(document, key)
            for op, expected in condition.items():
                if not _match_operator(op, actual, expected):
                    return False
        elif not _equals(_lookup(document, key), condition):
            return False
    return True


def _sort_documents(documents: List[Dict[str, Any]], sort: List[Tuple[str, int]]) -> List[Dict[str, Any]]:
    for name, direction in reversed(sort):
        def key(doc: Dict[str, Any], name: str = name) -> Tuple[bool, Any]:
            value = _lookup(doc, name)
            if value is _MISSING or value is None:
                return (False, 0)
            return (True, value)
        documents.sort(key=key, reverse=direction < 0)
    return documents


def _project(document: Dict[str, Any], projection: Optional[Dict[str, int]]) -> Dict[str, Any]:
    if not projection:
        return document
    if any(projection.values()):
        keep = {k for k, v in projection.items() if v}
        keep.add("_id")
        if projection.get("_id") == 0:
            keep.discard("_id")
        return {k: v for k, v in document.items() if k in keep}
    drop = set(projection)
    return {k: v for k, v in document.items() if k not in drop}


class MemoryAdapter(DocumentAdapter):
    """
    Document store held in process memory.

    Documents are deep-copied on the way in and on the way out, so callers
    never share state with the store.
    """

    capabilities = AdapterCapabilities(
        persistent=False,
        supports_unique_indexes=True,
        name="memory",
    )

    def __init__(self):
        self._connected = False
        self._url = "memory://"
        self._data: Dict[Tuple[str, str], Dict[Any, Dict[str, Any]]] = {}
        self._indexes: Dict[Tuple[str, str], Dict[str, Tuple[List[Tuple[str, int]], bool]]] = {}

    def connect(self, url: str, **options: Any) -> None:
        self._connected = True
        self._url = url

    def disconnect(self) -> None:
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    def _store(self, database: str, collection: str) -> Dict[Any, Dict[str, Any]]:
        if not self._connected:
            raise DatabaseConnectionFault(url=self._url, reason="adapter is not connected")
        return self._data.setdefault((database, collection), {})

    def _check_unique(self, database: str, collection: str, document: Dict[str, Any]) -> None:
        store = self._store(database, collection)
        for name, (keys, unique) in self._indexes.get((database, collection), {}).items():
            if not unique:
                continue
            values = tuple(_lookup(document, k) for k, _ in keys)
            for other_id, other in store.items():
                if other_id == document["_id"]:
                    continue
                if tuple(_lookup(other, k) for k, _ in keys) == values:
                    raise DuplicateKeyError(
                        f"E11000 duplicate key error collection: {database}.{collection} "
                        f"index: {name} dup key: {dict(zip([k for k, _ in keys], values))!r}"
                    )

    def find(
        self,
        database: str,
        collection: str,
        selector: Mapping[str, Any],
        options: Mapping[str, Any],
    ) -> Iterator[Dict[str, Any]]:
        store = self._store(database, collection)
        found = [doc for doc in store.values() if matches(doc, selector)]
        found = _sort_documents(found, normalize_sort(options.get("sort")))
        skip = int(options.get("skip") or 0)
        limit = int(options.get("limit") or 0)
        found = found[skip:skip + limit] if limit else found[skip:]
        projection = normalize_projection(options.get("fields"))
        # Snapshot before yielding so concurrent writes don't affect this pass
        snapshot = [copy.deepcopy(_project(doc, projection)) for doc in found]
        return iter(snapshot)

    def count(self, database: str, collection: str, selector: Mapping[str, Any]) -> int:
        store = self._store(database, collection)
        return sum(1 for doc in store.values() if matches(doc, selector))

    def insert_one(self, database: str, collection: str, document: Dict[str, Any]) -> Any:
        store = self._store(database, collection)
        stored = copy.deepcopy(document)
        if stored.get("_id") is None:
            stored["_id"] = ObjectId()
        if stored["_id"] in store:
            raise DuplicateKeyError(
                f"E11000 duplicate key error collection: {database}.{collection} "
                f"index: _id_ dup key: {stored['_id']!r}"
            )
        self._check_unique(database, collection, stored)
        store[stored["_id"]] = stored
        return stored["_id"]

    def replace_one(
        self,
        database: str,
        collection: str,
        doc_id: Any,
        document: Dict[str, Any],
        upsert: bool = True,
    ) -> None:
        store = self._store(database, collection)
        if doc_id not in store and not upsert:
            return
        stored = copy.deepcopy(document)
        stored["_id"] = doc_id
        self._check_unique(database, collection, stored)
        store[doc_id] = stored

    def delete_many(self, database: str, collection: str, selector: Mapping[str, Any]) -> int:
        store = self._store(database, collection)
        doomed = [doc_id for doc_id, doc in store.items() if matches(doc, selector)]
        for doc_id in doomed:
            del store[doc_id]
        return len(doomed)

    def create_index(
        self,
        database: str,
        collection: str,
        keys: Sequence[Tuple[str, int]],
        unique: bool = False,
        name: Optional[str] = None,
    ) -> str:
        self._store(database, collection)
        keys = list(keys)
        index_name = name or "_".join(f"{k}_{d}" for k, d in keys)
        self._indexes.setdefault((database, collection), {})[index_name] = (keys, unique)
        logger.debug(f"Index {index_name} ensured on {database}.{collection}")
        return index_name
