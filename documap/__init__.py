"""
documap - Object/document mapping for MongoDB-style stores

Complete integration of:
- Models: Metaclass-driven mapped classes with polymorphic inheritance
- Casting: Declared-type conversion between memory and storage
- Criteria: Immutable, lazily executed queries with composable finders
- References: Cross-collection links resolved in batches
- DB: Synchronous connection handles over pymongo or in-process memory
- Faults: Structured error handling with fault domains
"""

__version__ = "0.1.0"

# ============================================================================
# Configuration
# ============================================================================

from .config import ConfigLoader, DatabaseSettings

# ============================================================================
# Database
# ============================================================================

from .db import (
    DocumentDatabase,
    configure_database,
    configure_from_config,
    get_database,
    reset_databases,
    set_database,
)

# ============================================================================
# Models
# ============================================================================

from .models import (
    CollectionBinding,
    Criteria,
    Embeddable,
    Field,
    Index,
    Model,
    ModelRegistry,
    Reference,
    UNSET,
    finder,
    from_storage,
    resolve,
    to_storage,
)

# ============================================================================
# Faults
# ============================================================================

from .faults import (
    Fault,
    FaultDomain,
    Severity,
    ConfigFault,
    ModelFault,
    ModelRegistrationFault,
    TypeCastFault,
    ResolutionFault,
    IdentityFault,
    QueryFault,
    DatabaseConnectionFault,
)

__all__ = [
    "__version__",
    # Configuration
    "ConfigLoader",
    "DatabaseSettings",
    # Database
    "DocumentDatabase",
    "configure_database",
    "configure_from_config",
    "get_database",
    "reset_databases",
    "set_database",
    # Models
    "Model",
    "Field",
    "Index",
    "Embeddable",
    "UNSET",
    "CollectionBinding",
    "ModelRegistry",
    "Criteria",
    "finder",
    "Reference",
    "resolve",
    "to_storage",
    "from_storage",
    # Faults
    "Fault",
    "FaultDomain",
    "Severity",
    "ConfigFault",
    "ModelFault",
    "ModelRegistrationFault",
    "TypeCastFault",
    "ResolutionFault",
    "IdentityFault",
    "QueryFault",
    "DatabaseConnectionFault",
]
