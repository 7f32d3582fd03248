"""
documap faults - structured fault taxonomy.

Exceptions in documap are typed fault signals carrying a stable code,
a domain and metadata describing the offending value.

Core exports:
- Fault: Base fault class
- FaultDomain: Domain enumeration
- DEFAULT_SEVERITY: Severity per domain when a fault names none
- Severity: Severity levels
- Domain faults: ConfigFault, ModelFault, TypeCastFault, ResolutionFault, ...
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
    DEFAULT_SEVERITY,
)

from .domains import (
    ConfigFault,
    ConfigMissingFault,
    ConfigInvalidFault,
    ModelFault,
    ModelRegistrationFault,
    TypeCastFault,
    ResolutionFault,
    IdentityFault,
    QueryFault,
    DatabaseConnectionFault,
    ConfigError,
    TypeCastError,
    ResolutionError,
    DatabaseError,
)

__all__ = [
    # Core types
    "Fault",
    "FaultDomain",
    "Severity",
    "DEFAULT_SEVERITY",

    # Domain faults
    "ConfigFault",
    "ConfigMissingFault",
    "ConfigInvalidFault",
    "ModelFault",
    "ModelRegistrationFault",
    "TypeCastFault",
    "ResolutionFault",
    "IdentityFault",
    "QueryFault",
    "DatabaseConnectionFault",

    # Aliases
    "ConfigError",
    "TypeCastError",
    "ResolutionError",
    "DatabaseError",
]
