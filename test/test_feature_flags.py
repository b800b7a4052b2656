"""
Feature Flags + Toleranzen - Tests für die zentrale Konfiguration
"""

import math

import pytest
from config.feature_flags import (
    is_enabled,
    get_flag,
    set_flag,
    get_all_flags,
    FEATURE_FLAGS
)
from config.tolerances import Tolerances, coincidence_tolerance, axis_angle_threshold, validate_tolerances

pytestmark = pytest.mark.fast


class TestFeatureFlagsBasic:
    """Tests für grundlegende Feature Flag Funktionalität."""

    def test_is_enabled_existing_flag_true(self):
        assert is_enabled("auto_constraints") is True

    def test_is_enabled_existing_flag_false(self):
        assert is_enabled("solver_debug") is False

    def test_is_enabled_nonexistent_flag(self):
        """Test: Nicht existierendes Flag gibt False zurück."""
        assert is_enabled("nonexistent_flag_xyz123") is False

    def test_get_flag_returns_raw_value(self):
        assert get_flag("solver_backend") == "gauss_newton"
        assert get_flag("nonexistent_flag_xyz123", "fallback") == "fallback"

    def test_get_all_flags_returns_copy(self):
        """Test: get_all_flags gibt eine Kopie zurück."""
        flags1 = get_all_flags()
        flags1["new_flag"] = True

        assert "new_flag" not in FEATURE_FLAGS

    def test_set_flag_runtime(self):
        set_flag("runtime_test_flag", True)
        assert is_enabled("runtime_test_flag") is True

        set_flag("runtime_test_flag", False)
        assert is_enabled("runtime_test_flag") is False
        FEATURE_FLAGS.pop("runtime_test_flag", None)


class TestTolerances:
    """Die Konstanten des Sketch-Kerns"""

    def test_auto_constraint_values(self):
        assert coincidence_tolerance() == 5.0
        assert axis_angle_threshold() == pytest.approx(math.pi / 36)
        assert Tolerances.SKETCH_AUTO_MIN_LENGTH == 10.0

    def test_solver_values(self):
        assert Tolerances.SOLVER_MAX_ITERATIONS == 50
        assert Tolerances.SOLVER_CONVERGENCE == 1e-4
        assert Tolerances.SOLVER_DAMPING == 0.01
        assert Tolerances.SOLVER_ANGLE_STIFFNESS == 100.0
        assert Tolerances.SOLVER_MIN_RADIUS == 0.1

    def test_validate_tolerances_clean(self):
        assert validate_tolerances() == []


def test_package_version_matches_config():
    import sketcher
    from config.version import VERSION, VERSION_STRING

    assert sketcher.__version__ == VERSION
    assert VERSION_STRING.startswith(VERSION)
