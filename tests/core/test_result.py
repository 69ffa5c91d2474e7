"""
Tests for the Result[P] envelope.

Validates:
    - Generic payloads, including tuples of payloads (stratified fits)
    - Frozen immutability
    - Default factories (warnings, provenance)
    - has_warning()
"""

from dataclasses import FrozenInstanceError, dataclass

import pytest

from pysurvstats.core.result import Result, _default_provenance


@dataclass(frozen=True)
class FakeParams:
    """Minimal payload for testing."""
    value: float


def _result(**kwargs):
    base = dict(params=FakeParams(value=1.0), info={}, timing=None, backend_name="cpu_km")
    base.update(kwargs)
    return Result(**base)


# ═══════════════════════════════════════════════════════════════════════
# Construction and defaults
# ═══════════════════════════════════════════════════════════════════════


class TestResultConstruction:

    def test_basic_creation(self):
        result = _result(
            params=FakeParams(value=42.0),
            info={"method": "Kaplan-Meier"},
            timing={"total_seconds": 0.01},
        )
        assert result.params.value == 42.0
        assert result.info["method"] == "Kaplan-Meier"
        assert result.timing["total_seconds"] == 0.01
        assert result.backend_name == "cpu_km"

    def test_tuple_payload(self):
        """Stratified estimators carry one payload per stratum."""
        result = _result(params=(FakeParams(1.0), FakeParams(2.0)))
        assert [p.value for p in result.params] == [1.0, 2.0]

    def test_warnings_default_empty(self):
        result = _result()
        assert result.warnings == ()
        assert isinstance(result.warnings, tuple)

    def test_provenance_auto_generated(self):
        result = _result()
        assert "pysurvstats_version" in result.provenance
        assert "numpy_version" in result.provenance
        assert "scipy_version" in result.provenance

    def test_provenance_explicit_override(self):
        result = _result(provenance={"custom": "metadata"})
        assert result.provenance == {"custom": "metadata"}


class TestImmutability:
    """Result is frozen: no attribute mutation allowed."""

    def test_cannot_set_params(self):
        result = _result()
        with pytest.raises(FrozenInstanceError):
            result.params = FakeParams(value=2.0)

    def test_cannot_set_warnings(self):
        result = _result()
        with pytest.raises(FrozenInstanceError):
            result.warnings = ("new warning",)


class TestHasWarning:

    def test_no_warnings_returns_false(self):
        assert _result().has_warning("anything") is False

    def test_substring_match(self):
        result = _result(warnings=("possible separation (monotone likelihood) for ['x0']",))
        assert result.has_warning("separation") is True
        assert result.has_warning("x0") is True
        assert result.has_warning("singular") is False


class TestDefaultProvenance:

    def test_versions_are_strings(self):
        prov = _default_provenance()
        assert all(isinstance(v, str) for v in prov.values())

    def test_matches_package_version(self):
        import pysurvstats
        assert _default_provenance()["pysurvstats_version"] == pysurvstats.__version__

    def test_independent_copies(self):
        prov1 = _default_provenance()
        prov2 = _default_provenance()
        assert prov1 is not prov2
        assert prov1 == prov2
