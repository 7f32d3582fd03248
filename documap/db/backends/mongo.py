"""
documap DB Backend — MongoDB adapter via pymongo.

Wraps ``pymongo.MongoClient`` and implements the ``DocumentAdapter``
interface. ``bson.DBRef`` values returned by the server are turned back
into the plain ``{"$ref": ..., "$id": ...}`` mapping the mapping core uses
as its reference wire shape.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, Mapping, Optional, Sequence, Tuple

from bson import DBRef
from pymongo import MongoClient

from ...faults.domains import DatabaseConnectionFault
from .base import (
    AdapterCapabilities,
    DocumentAdapter,
    normalize_projection,
    normalize_sort,
)

logger = logging.getLogger("documap.db.backends.mongo")

__all__ = ["PyMongoAdapter"]


def _from_bson(value: Any) -> Any:
    if isinstance(value, DBRef):
        return {"$ref": value.collection, "$id": value.id}
    if isinstance(value, dict):
        return {k: _from_bson(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_bson(v) for v in value]
    return value


class PyMongoAdapter(DocumentAdapter):
    """
    MongoDB adapter using pymongo.

    ``connect`` options are forwarded to ``MongoClient`` verbatim, so
    timeouts, pool sizes and read preferences are whatever the driver
    is configured with.
    """

    capabilities = AdapterCapabilities(
        persistent=True,
        supports_unique_indexes=True,
        name="mongodb",
    )

    def __init__(self):
        self._client: Optional[MongoClient] = None
        self._url: Optional[str] = None

    def connect(self, url: str, **options: Any) -> None:
        if self._client is not None:
            return
        self._client = MongoClient(url, **options)
        self._url = url

    def disconnect(self) -> None:
        if self._client is None:
            return
        self._client.close()
        self._client = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    def _collection(self, database: str, collection: str):
        if self._client is None:
            raise DatabaseConnectionFault(url=self._url or "mongodb://", reason="adapter is not connected")
        return self._client[database][collection]

    def find(
        self,
        database: str,
        collection: str,
        selector: Mapping[str, Any],
        options: Mapping[str, Any],
    ) -> Iterator[Dict[str, Any]]:
        kwargs: Dict[str, Any] = {}
        projection = normalize_projection(options.get("fields"))
        if projection is not None:
            kwargs["projection"] = projection
        sort = normalize_sort(options.get("sort"))
        if sort:
            kwargs["sort"] = sort
        if options.get("skip"):
            kwargs["skip"] = int(options["skip"])
        if options.get("limit"):
            kwargs["limit"] = int(options["limit"])

        cursor = self._collection(database, collection).find(dict(selector), **kwargs)
        for document in cursor:
            yield _from_bson(document)

    def count(self, database: str, collection: str, selector: Mapping[str, Any]) -> int:
        return self._collection(database, collection).count_documents(dict(selector))

    def insert_one(self, database: str, collection: str, document: Dict[str, Any]) -> Any:
        result = self._collection(database, collection).insert_one(document)
        return result.inserted_id

    def replace_one(
        self,
        database: str,
        collection: str,
        doc_id: Any,
        document: Dict[str, Any],
        upsert: bool = True,
    ) -> None:
        self._collection(database, collection).replace_one(
            {"_id": doc_id}, document, upsert=upsert
        )

    def delete_many(self, database: str, collection: str, selector: Mapping[str, Any]) -> int:
        result = self._collection(database, collection).delete_many(dict(selector))
        return result.deleted_count

    def create_index(
        self,
        database: str,
        collection: str,
        keys: Sequence[Tuple[str, int]],
        unique: bool = False,
        name: Optional[str] = None,
    ) -> str:
        kwargs: Dict[str, Any] = {"unique": unique}
        if name:
            kwargs["name"] = name
        index_name = self._collection(database, collection).create_index(list(keys), **kwargs)
        logger.debug(f"Index {index_name} ensured on {database}.{collection}")
        return index_name
