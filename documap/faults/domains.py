"""
documap faults - Domain-specific fault types.

Provides concrete fault classes for each domain:
- CONFIG faults
- MODEL faults (registration, casting, resolution, identity)
- QUERY faults
- IO faults
"""

from typing import Any, Optional
from .core import Fault, FaultDomain, Severity


# ============================================================================
# CONFIG Faults
# ============================================================================

class ConfigFault(Fault):
    """Base class for configuration faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.FATAL,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.CONFIG,
            severity=severity,
            retryable=False,
            public=False,
            metadata=metadata,
        )


class ConfigMissingFault(ConfigFault):
    """Required configuration is missing."""

    def __init__(self, key: str, **kwargs):
        super().__init__(
            code="CONFIG_MISSING",
            message=f"Required configuration key '{key}' is missing",
            metadata={"key": key, **kwargs.get("metadata", {})},
        )


class ConfigInvalidFault(ConfigFault):
    """Configuration value is invalid."""

    def __init__(self, key: str, reason: str, **kwargs):
        super().__init__(
            code="CONFIG_INVALID",
            message=f"Configuration key '{key}' is invalid: {reason}",
            metadata={"key": key, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# MODEL Faults
# ============================================================================

class ModelFault(Fault):
    """Base class for mapping faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.ERROR,
        retryable: bool = False,
        public: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.MODEL,
            severity=severity,
            retryable=retryable,
            public=public,
            metadata=metadata,
        )


class ModelRegistrationFault(ModelFault):
    """A mapped class or one of its fields was declared incorrectly."""

    def __init__(self, model_name: str, reason: str, **kwargs):
        super().__init__(
            code="MODEL_REGISTRATION_FAILED",
            message=f"Failed to register model '{model_name}': {reason}",
            severity=Severity.FATAL,
            metadata={"model": model_name, "reason": reason, **kwargs.get("metadata", {})},
        )


class TypeCastFault(ModelFault):
    """A raw storage value cannot be interpreted under the field's declared type."""

    def __init__(self, field: Optional[str], raw: Any, declared_type: Any, reason: str = "", **kwargs):
        self.field = field
        self.raw = raw
        self.declared_type = declared_type
        type_name = getattr(declared_type, "__name__", repr(declared_type))
        detail = f": {reason}" if reason else ""
        super().__init__(
            code="TYPE_CAST_FAILED",
            message=(
                f"Cannot cast {raw!r} for field '{field or '?'}' "
                f"as {type_name}{detail}"
            ),
            metadata={
                "field": field,
                "raw": repr(raw),
                "declared_type": type_name,
                **kwargs.get("metadata", {}),
            },
        )


class ResolutionFault(ModelFault):
    """A stored discriminator or reference namespace names no usable class."""

    def __init__(self, target: str, reason: str, **kwargs):
        self.target = target
        super().__init__(
            code="RESOLUTION_FAILED",
            message=f"Cannot resolve '{target}': {reason}",
            metadata={"target": target, "reason": reason, **kwargs.get("metadata", {})},
        )


class IdentityFault(ModelFault):
    """An assigned document identity was reassigned."""

    def __init__(self, model_name: str, current: Any, attempted: Any, **kwargs):
        super().__init__(
            code="IDENTITY_IMMUTABLE",
            message=(
                f"'{model_name}' identity is already {current!r}; "
                f"cannot change it to {attempted!r}"
            ),
            metadata={"model": model_name, **kwargs.get("metadata", {})},
        )


# ============================================================================
# QUERY Faults
# ============================================================================

class QueryFault(Fault):
    """A criteria was built with arguments it cannot carry."""

    def __init__(self, model: str, operation: str, reason: str, **kwargs):
        super().__init__(
            code="QUERY_INVALID",
            message=f"Criteria on '{model}' ({operation}) is invalid: {reason}",
            domain=FaultDomain.QUERY,
            metadata={"model": model, "operation": operation, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# IO Faults
# ============================================================================

class DatabaseConnectionFault(Fault):
    """A database could not be selected, configured or reached."""

    def __init__(self, url: str, reason: str, **kwargs):
        super().__init__(
            code="DB_CONNECTION_FAILED",
            message=f"Database connection failed ({url}): {reason}",
            domain=FaultDomain.IO,
            severity=Severity.FATAL,
            metadata={"url": url, "reason": reason, **kwargs.get("metadata", {})},
        )


# ── Aliases used throughout the public API ───────────────────────────────────
ConfigError = ConfigFault
TypeCastError = TypeCastFault
ResolutionError = ResolutionFault
DatabaseError = DatabaseConnectionFault
