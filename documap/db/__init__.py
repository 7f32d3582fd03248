"""
documap Database — synchronous document-store layer.

Provides:
- DocumentDatabase: Connection handle delegating to a backend adapter
- MongoDB (pymongo) and memory adapters
- Module-level accessors for multi-database setups
- Structured faults (DatabaseConnectionFault)
"""

from .engine import (
    DocumentDatabase,
    get_database,
    get_all_databases,
    configure_database,
    configure_from_config,
    set_database,
    reset_databases,
)

from .backends import (
    DocumentAdapter,
    AdapterCapabilities,
    MemoryAdapter,
    PyMongoAdapter,
)

from ..faults.domains import DatabaseConnectionFault, DatabaseError

__all__ = [
    "DocumentDatabase",
    "DatabaseError",
    "DatabaseConnectionFault",
    "get_database",
    "get_all_databases",
    "configure_database",
    "configure_from_config",
    "set_database",
    "reset_databases",
    # Backends
    "DocumentAdapter",
    "AdapterCapabilities",
    "MemoryAdapter",
    "PyMongoAdapter",
]
