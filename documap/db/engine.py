"""
documap Database Engine — synchronous, multi-backend connection manager.

Provides:
- DocumentDatabase: connection manager delegating to backend adapters
- MongoDB (pymongo) and in-process memory backends
- Module-level alias registry (configure/get/set_database) for
  multi-database setups

Driver errors are not wrapped: whatever pymongo raises reaches the caller
as-is, and no operation is retried.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import urlsplit

from ..faults.domains import DatabaseConnectionFault
from .backends.base import AdapterCapabilities, DocumentAdapter

if TYPE_CHECKING:
    from ..config import ConfigLoader

logger = logging.getLogger("documap.db")

DEFAULT_DATABASE_NAME = "documap"


def _create_adapter(driver: str) -> DocumentAdapter:
    """Factory — instantiate the correct backend adapter."""
    if driver == "mongodb":
        from .backends.mongo import PyMongoAdapter
        return PyMongoAdapter()
    elif driver == "memory":
        from .backends.memory import MemoryAdapter
        return MemoryAdapter()
    else:
        raise DatabaseConnectionFault(
            url=f"<{driver}>",
            reason=f"No adapter registered for driver: {driver}",
        )


class DocumentDatabase:
    """
    Document database handle for documap.

    One instance wraps one connection (one adapter). Every data operation
    names the target database explicitly; when omitted, the handle's own
    default database is used.

    Usage:
        db = DocumentDatabase("mongodb://localhost:27017/shop")
        db.connect()
        docs = list(db.find("orders", {"status": "open"}, {"limit": 10}))
        db.disconnect()

        # In-process:
        db = DocumentDatabase("memory://")
    """

    __slots__ = (
        "_url",
        "_driver",
        "_adapter",
        "_connected",
        "_options",
        "_database",
    )

    def __init__(self, url: str = "memory://", database: Optional[str] = None, **options: Any):
        """
        Initialize database handle.

        Args:
            url: Connection URL. Supported schemes:
                 - mongodb://host:port/dbname, mongodb+srv://...
                 - memory:// or memory://dbname
            database: Default database name. Falls back to the URL path,
                then to ``"documap"``.
            **options: Driver-specific options passed to the backend adapter.
        """
        self._url = url
        self._driver = self._detect_driver(url)
        self._adapter: DocumentAdapter = _create_adapter(self._driver)
        self._connected = False
        self._options = options
        self._database = database or self._database_from_url(url) or DEFAULT_DATABASE_NAME

    @staticmethod
    def _detect_driver(url: str) -> str:
        """Detect driver from URL scheme."""
        if url.startswith("mongodb"):
            return "mongodb"
        elif url.startswith("memory"):
            return "memory"
        else:
            raise DatabaseConnectionFault(
                url=url,
                reason=f"Unsupported database URL scheme: {url}",
            )

    @staticmethod
    def _database_from_url(url: str) -> Optional[str]:
        parts = urlsplit(url)
        if parts.scheme == "memory":
            return parts.netloc or parts.path.strip("/") or None
        path = parts.path.strip("/")
        return path or None

    # ── Connection management ────────────────────────────────────────

    def connect(self) -> None:
        """Open the connection. Calling it on an open handle is a no-op."""
        if self._connected:
            return
        self._adapter.connect(self._url, **self._options)
        self._connected = True
        logger.info(f"Database connected ({self._driver}, database={self._database})")

    def disconnect(self) -> None:
        """Close the connection."""
        if not self._connected:
            return
        self._adapter.disconnect()
        self._connected = False
        logger.info("Database disconnected")

    def ensure_connected(self) -> None:
        """Ensure a live connection exists, reconnecting if needed."""
        if not self._connected:
            self.connect()
        elif not self._adapter.is_connected:
            self._connected = False
            self.connect()

    # ── Data operations ──────────────────────────────────────────────

    def find(
        self,
        collection: str,
        selector: Optional[Mapping[str, Any]] = None,
        options: Optional[Mapping[str, Any]] = None,
        *,
        database: Optional[str] = None,
    ) -> Iterator[Dict[str, Any]]:
        """Return an iterator over raw documents."""
        self.ensure_connected()
        return self._adapter.find(database or self._database, collection, selector or {}, options or {})

    def count(
        self,
        collection: str,
        selector: Optional[Mapping[str, Any]] = None,
        *,
        database: Optional[str] = None,
    ) -> int:
        self.ensure_connected()
        return self._adapter.count(database or self._database, collection, selector or {})

    def insert_one(
        self,
        collection: str,
        document: Dict[str, Any],
        *,
        database: Optional[str] = None,
    ) -> Any:
        self.ensure_connected()
        return self._adapter.insert_one(database or self._database, collection, document)

    def replace_one(
        self,
        collection: str,
        doc_id: Any,
        document: Dict[str, Any],
        *,
        upsert: bool = True,
        database: Optional[str] = None,
    ) -> None:
        self.ensure_connected()
        self._adapter.replace_one(database or self._database, collection, doc_id, document, upsert=upsert)

    def delete_many(
        self,
        collection: str,
        selector: Mapping[str, Any],
        *,
        database: Optional[str] = None,
    ) -> int:
        self.ensure_connected()
        return self._adapter.delete_many(database or self._database, collection, selector)

    def create_index(
        self,
        collection: str,
        keys: Sequence[Tuple[str, int]],
        *,
        unique: bool = False,
        name: Optional[str] = None,
        database: Optional[str] = None,
    ) -> str:
        self.ensure_connected()
        return self._adapter.create_index(
            database or self._database, collection, keys, unique=unique, name=name
        )

    # ── Properties ───────────────────────────────────────────────────

    @property
    def is_connected(self) -> bool:
        return self._connected and self._adapter.is_connected

    @property
    def url(self) -> str:
        return self._url

    @property
    def driver(self) -> str:
        return self._driver

    @property
    def database_name(self) -> str:
        return self._database

    @property
    def capabilities(self) -> AdapterCapabilities:
        """Return backend capabilities."""
        return self._adapter.capabilities

    @property
    def adapter(self) -> DocumentAdapter:
        """Direct access to the underlying adapter (advanced use)."""
        return self._adapter

    def __repr__(self) -> str:
        return f"<DocumentDatabase {self._driver} database={self._database!r}>"


# ── Module-level alias registry ─────────────────────────────────────────────

_database_registry: Dict[str, DocumentDatabase] = {}


def get_database(alias: Optional[str] = None) -> DocumentDatabase:
    """
    Get a database instance by alias, or the default.

    Raises:
        DatabaseConnectionFault: If no database is configured under the alias.
    """
    alias = alias or "default"
    db = _database_registry.get(alias)
    if db is None:
        if alias == "default":
            reason = (
                "No database configured. Call configure_database() first "
                "or set databases.default.url in documap config."
            )
        else:
            reason = (
                f"No database configured with alias '{alias}'. "
                f"Available: {list(_database_registry.keys())}"
            )
        raise DatabaseConnectionFault(url=f"<alias:{alias}>", reason=reason)
    return db


def configure_database(
    url: str = "memory://",
    *,
    alias: str = "default",
    database: Optional[str] = None,
    **options: Any,
) -> DocumentDatabase:
    """
    Configure, register and return a database instance.

    The connection is opened lazily on first use.
    """
    db = DocumentDatabase(url, database=database, **options)
    _database_registry[alias] = db
    return db


def set_database(db: DocumentDatabase, *, alias: str = "default") -> None:
    """Register an externally-created database under ``alias``."""
    _database_registry[alias] = db


def get_all_databases() -> Dict[str, DocumentDatabase]:
    """Return all configured database instances."""
    return dict(_database_registry)


def reset_databases() -> None:
    """Disconnect and forget every registered database (for testing)."""
    for db in _database_registry.values():
        db.disconnect()
    _database_registry.clear()


def configure_from_config(loader: ConfigLoader) -> List[DocumentDatabase]:
    """
    Register one database per alias found under ``databases`` in ``loader``.

    Example config (YAML):

        databases:
          default:
            url: mongodb://localhost:27017
            database: shop
          reporting:
            url: mongodb://reports.internal:27017
            database: analytics
            options:
              serverSelectionTimeoutMS: 2000
    """
    configured: List[DocumentDatabase] = []
    for alias in loader.database_aliases():
        settings = loader.database_settings(alias)
        configured.append(
            configure_database(
                settings.url,
                alias=alias,
                database=settings.database,
                **settings.options,
            )
        )
    return configured
