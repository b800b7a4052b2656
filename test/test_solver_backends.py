"""
Backend-Auswahl + SciPy Backend

Prüft, dass die Backend-Auswahl (Options > Feature-Flag > Default) im
Ergebnis sichtbar ist und das SciPy Backend dieselben Residuen löst.
"""

import math

import pytest

from config.feature_flags import set_flag
from sketcher.constraints import make_distance, make_fixed, make_radius, make_tangent
from sketcher.primitives import SolverCircle, SolverPoint
from sketcher.solver import GaussNewtonBackend
from sketcher.solver_interface import (
    ConstraintSolver,
    ISolverBackend,
    SolveStatus,
    SolverBackendRegistry,
    SolverBackendType,
    SolverOptions,
    SolverProblem,
    SolverResult,
)
from sketcher.solver_scipy import SciPyTRFBackend

pytestmark = [pytest.mark.solver, pytest.mark.fast]


def _distance_problem():
    points = [SolverPoint("a", 0.0, 0.0), SolverPoint("b", 3.0, 4.0)]
    return points, [make_fixed("a"), make_distance("a", "b", 10.0)]


class _RecordingBackend(ISolverBackend):
    """Gibt die Eingabe unverändert zurück und merkt sich das Problem"""

    def __init__(self):
        self.problems = []

    @property
    def name(self) -> str:
        return "recording"

    def solve(self, problem: SolverProblem) -> SolverResult:
        self.problems.append(problem)
        return SolverResult(
            points=problem.points,
            circles=problem.circles,
            success=True,
            status=SolveStatus.CONVERGED,
            message="recorded",
        )


class TestRegistry:
    def test_builtin_backends_registered(self):
        available = SolverBackendRegistry.list_available()
        assert SolverBackendType.GAUSS_NEWTON.value in available
        assert SolverBackendType.SCIPY_TRF.value in available

    def test_get_accepts_enum_and_string(self):
        assert SolverBackendRegistry.get(SolverBackendType.SCIPY_TRF) is SolverBackendRegistry.get("scipy_trf")
        assert SolverBackendRegistry.get("does_not_exist") is None

    def test_default_is_gauss_newton(self):
        assert isinstance(SolverBackendRegistry.get_default(), GaussNewtonBackend)


class TestSelection:
    def test_default_backend_from_flag(self):
        points, constraints = _distance_problem()

        result = ConstraintSolver().solve(points, constraints, [], [])

        assert result.backend_used == "gauss_newton"
        assert result.requested_backend == "gauss_newton"
        assert result.selection_detail == ""

    def test_flag_selects_scipy(self):
        set_flag("solver_backend", "scipy_trf")
        points, constraints = _distance_problem()

        result = ConstraintSolver().solve(points, constraints, [], [])

        assert result.backend_used == "scipy_trf"
        assert result.success is True

    def test_options_override_flag(self):
        set_flag("solver_backend", "scipy_trf")
        points, constraints = _distance_problem()

        result = ConstraintSolver().solve(points, constraints, [], [], SolverOptions(backend="gauss_newton"))

        assert result.backend_used == "gauss_newton"

    def test_unknown_backend_falls_back_explicitly(self):
        points, constraints = _distance_problem()

        result = ConstraintSolver().solve(points, constraints, [], [], SolverOptions(backend="quantum"))

        assert result.backend_used == "gauss_newton"
        assert result.requested_backend == "quantum"
        assert "not registered" in result.selection_detail
        assert result.selection_detail in result.message
        assert result.success is True

    def test_injected_backend_wins(self):
        backend = _RecordingBackend()
        points, constraints = _distance_problem()

        result = ConstraintSolver(backend=backend).solve(points, constraints, [], [])

        assert result.backend_used == "recording"
        assert result.selection_detail == "backend injected explicitly"
        assert len(backend.problems) == 1
        assert backend.problems[0].constraints == constraints

    def test_disabled_constraints_not_passed_to_backend(self):
        backend = _RecordingBackend()
        points, constraints = _distance_problem()
        constraints[1].enabled = False

        ConstraintSolver(backend=backend).solve(points, constraints, [], [])

        assert [c.id for c in backend.problems[0].constraints] == [constraints[0].id]

    def test_constructor_options_used_as_default(self):
        points, constraints = _distance_problem()
        solver = ConstraintSolver(options=SolverOptions(max_iterations=1, damping=100.0))

        result = solver.solve(points, constraints, [], [])

        assert result.iterations <= 1
        assert result.success is False
        assert result.status == SolveStatus.MAX_ITERATIONS

    def test_result_unpacks_to_points_and_circles(self):
        points, constraints = _distance_problem()

        new_points, new_circles = ConstraintSolver().solve(points, constraints, [], [])

        assert len(new_points) == 2
        assert new_circles == []

    def test_timing_recorded(self):
        points, constraints = _distance_problem()
        result = ConstraintSolver().solve(points, constraints, [], [])
        assert result.solve_time_ms >= 0.0


class TestSciPyBackend:
    def _solve(self, points, constraints, circles=()):
        problem = SolverProblem(points=list(points), lines=[], circles=list(circles), constraints=list(constraints))
        return SciPyTRFBackend().solve(problem)

    def test_distance(self):
        points, constraints = _distance_problem()

        result = self._solve(points, constraints)

        a, b = result.points
        assert result.status == SolveStatus.CONVERGED
        assert (a.x, a.y) == (0.0, 0.0)
        assert math.hypot(b.x - a.x, b.y - a.y) == pytest.approx(10.0, abs=1e-3)

    def test_already_satisfied_returns_input(self):
        points = [SolverPoint("a", 0.0, 0.0), SolverPoint("b", 6.0, 8.0)]

        result = self._solve(points, [make_distance("a", "b", 10.0)])

        assert result.status == SolveStatus.CONVERGED
        assert result.iterations == 0
        assert (result.points[1].x, result.points[1].y) == (6.0, 8.0)

    def test_radius_lower_bound(self):
        points = [SolverPoint("c_center", 0.0, 0.0)]
        circles = [SolverCircle("c_circle", "c_center", 10.0)]

        result = self._solve(points, [make_radius("c_circle", -5.0)], circles)

        assert result.circles[0].radius >= 0.1
        assert result.success is False

    def test_tangent_circles(self):
        points = [SolverPoint("a_center", 0.0, 0.0, fixed=True), SolverPoint("b_center", 11.0, 0.0)]
        circles = [SolverCircle("a_circle", "a_center", 6.0), SolverCircle("b_circle", "b_center", 4.0)]

        result = self._solve(points, [make_tangent("a_circle", "b_circle")], circles)

        a, b = result.points
        ca, cb = result.circles
        assert result.success is True
        assert math.hypot(b.x - a.x, b.y - a.y) == pytest.approx(ca.radius + cb.radius, abs=1e-3)

    def test_name_reflects_method(self):
        assert SciPyTRFBackend().name == "scipy_trf"
        assert SciPyTRFBackend(method="dogbox").name == "scipy_dogbox"
