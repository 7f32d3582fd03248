"""
Tests for the fault taxonomy (documap.faults).
"""

import pytest

from documap.faults import (
    ConfigError,
    ConfigFault,
    ConfigInvalidFault,
    ConfigMissingFault,
    DatabaseConnectionFault,
    DatabaseError,
    DEFAULT_SEVERITY,
    Fault,
    FaultDomain,
    IdentityFault,
    ModelFault,
    ModelRegistrationFault,
    QueryFault,
    ResolutionError,
    ResolutionFault,
    Severity,
    TypeCastError,
    TypeCastFault,
)


# ============================================================================
# Core
# ============================================================================

class TestFaultCore:

    def test_fault_requires_code_message_domain(self):
        with pytest.raises(TypeError):
            Fault(code="X")

    def test_str_and_to_dict(self):
        fault = Fault(code="SHAPE_MISSING", message="Shape 42 not found", domain=FaultDomain.MODEL)
        assert str(fault) == "[SHAPE_MISSING] Shape 42 not found"
        data = fault.to_dict()
        assert data["code"] == "SHAPE_MISSING"
        assert data["domain"] == "model"
        assert data["severity"] == "error"
        assert data["retryable"] is False
        assert data["public"] is False

    def test_default_severity_per_domain(self):
        fault = Fault(code="BAD", message="bad", domain=FaultDomain.CONFIG)
        assert fault.severity == DEFAULT_SEVERITY[FaultDomain.CONFIG]
        assert fault.severity == Severity.FATAL

    def test_explicit_severity_wins(self):
        fault = Fault(code="BAD", message="bad", domain=FaultDomain.CONFIG, severity=Severity.WARN)
        assert fault.severity == Severity.WARN

    def test_domain_accepts_value_string(self):
        fault = Fault(code="Q", message="q", domain="query")
        assert fault.domain is FaultDomain.QUERY

    def test_unknown_domain_rejected(self):
        with pytest.raises(ValueError):
            Fault(code="B", message="b", domain="billing")

    def test_every_domain_has_default_severity(self):
        assert set(DEFAULT_SEVERITY) == set(FaultDomain)

    def test_repr(self):
        fault = QueryFault("Shape", "limit", "must be positive")
        assert repr(fault) == "QueryFault(code='QUERY_INVALID', domain='query')"


# ============================================================================
# Domain faults
# ============================================================================

class TestDomainFaults:

    def test_type_cast_fault(self):
        fault = TypeCastFault("radius", "wide", float, "could not convert")
        assert isinstance(fault, ModelFault)
        assert fault.code == "TYPE_CAST_FAILED"
        assert fault.field == "radius"
        assert fault.raw == "wide"
        assert fault.declared_type is float
        assert fault.metadata["declared_type"] == "float"
        assert "radius" in fault.message

    def test_resolution_fault(self):
        fault = ResolutionFault("Hexagon", "unknown discriminator")
        assert fault.target == "Hexagon"
        assert fault.domain == FaultDomain.MODEL

    def test_registration_fault_is_fatal(self):
        fault = ModelRegistrationFault("Shape", "bad field")
        assert fault.severity == Severity.FATAL
        assert fault.metadata["model"] == "Shape"

    def test_identity_fault(self):
        fault = IdentityFault("Shape", 1, 2)
        assert fault.code == "IDENTITY_IMMUTABLE"

    def test_query_fault(self):
        fault = QueryFault("Shape", "limit", "must be positive")
        assert fault.domain == FaultDomain.QUERY
        assert fault.metadata["operation"] == "limit"

    def test_database_connection_fault(self):
        fault = DatabaseConnectionFault("ftp://x", "unsupported")
        assert fault.domain == FaultDomain.IO
        assert fault.severity == Severity.FATAL

    def test_config_faults(self):
        assert isinstance(ConfigMissingFault("databases.default"), ConfigFault)
        fault = ConfigInvalidFault("databases.default.url", "must be a string")
        assert fault.code == "CONFIG_INVALID"
        assert fault.domain == FaultDomain.CONFIG

    def test_metadata_extension(self):
        fault = ResolutionFault("x", "y", metadata={"collection": "shapes"})
        assert fault.metadata["collection"] == "shapes"

    def test_aliases(self):
        assert TypeCastError is TypeCastFault
        assert ResolutionError is ResolutionFault
        assert ConfigError is ConfigFault
        assert DatabaseError is DatabaseConnectionFault

    def test_faults_are_exceptions(self):
        with pytest.raises(Fault):
            raise TypeCastFault(None, 1, str)
