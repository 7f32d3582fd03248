"""
documap faults - Core types.

A fault is an exception that also works as a record: a stable code, the
domain it belongs to, a severity and metadata describing the offending
value. Callers log ``fault.to_dict()`` or branch on ``fault.code``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class Severity(str, Enum):
    """How serious a fault is; maps onto the logging level used to report it."""

    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"


class FaultDomain(str, Enum):
    """Area of documap a fault comes from."""

    CONFIG = "config"    # settings files, environment, aliases
    MODEL = "model"      # declaration, casting, class and reference resolution
    QUERY = "query"      # criteria construction and misuse of the document API
    IO = "io"            # selecting or reaching a database
    SYSTEM = "system"


# Severity used when a fault does not name one
DEFAULT_SEVERITY: Dict[FaultDomain, Severity] = {
    FaultDomain.CONFIG: Severity.FATAL,
    FaultDomain.MODEL: Severity.ERROR,
    FaultDomain.QUERY: Severity.ERROR,
    FaultDomain.IO: Severity.ERROR,
    FaultDomain.SYSTEM: Severity.FATAL,
}


class Fault(Exception):
    """
    Base class of every documap exception.

    Attributes:
        code: Machine-readable identifier, e.g. ``TYPE_CAST_FAILED``
        message: Human-readable summary
        domain: FaultDomain the fault belongs to
        severity: Defaults per domain (see ``DEFAULT_SEVERITY``)
        retryable: Always False for faults raised by documap itself
        public: Whether the message is safe to show an end user
        metadata: Offending values and other context

    Subclasses fix ``code`` and ``domain``; ad hoc faults pass all three:

        raise Fault(code="SHAPE_MISSING", message="Shape 42 not found", domain=FaultDomain.MODEL)
    """

    def __init__(
        self,
        code: Optional[str] = None,
        message: Optional[str] = None,
        *,
        domain: Optional[FaultDomain] = None,
        severity: Optional[Severity] = None,
        retryable: bool = False,
        public: bool = False,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        if code is None or message is None or domain is None:
            raise TypeError(f"{type(self).__name__} needs a code, a message and a domain")

        super().__init__(message)
        self.code = code
        self.message = message
        self.domain = FaultDomain(domain)
        self.severity = severity or DEFAULT_SEVERITY[self.domain]
        self.retryable = retryable
        self.public = public
        self.metadata = metadata or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, domain={self.domain.value!r})"

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data form for structured logging."""
        return {
            "code": self.code,
            "message": self.message,
            "domain": self.domain.value,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "public": self.public,
            "metadata": dict(self.metadata),
        }
