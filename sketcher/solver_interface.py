"""
Solver abstraction layer.

Provides a unified interface for selectable solver backends while keeping
backend selection and fallback behavior explicit in the returned result.
Every solve call receives its parameters through SolverOptions; backends
hold no per-solve state.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
import time
from typing import Dict, List, Optional, Sequence, Tuple, Union

from loguru import logger

from config.feature_flags import get_flag
from config.tolerances import Tolerances

from .constraints import Constraint
from .primitives import SolverCircle, SolverLine, SolverPoint


class SolverBackendType(Enum):
    """Available solver backends."""

    GAUSS_NEWTON = "gauss_newton"
    SCIPY_TRF = "scipy_trf"


class SolveStatus(Enum):
    """Outcome of a solve call."""

    CONVERGED = "converged"
    MAX_ITERATIONS = "max_iterations"
    DIVERGED = "diverged"
    NO_CONSTRAINTS = "no_constraints"


@dataclass
class SolverOptions:
    """Configuration for solver backends."""

    max_iterations: int = Tolerances.SOLVER_MAX_ITERATIONS
    tolerance: float = Tolerances.SOLVER_CONVERGENCE
    damping: float = Tolerances.SOLVER_DAMPING
    angle_stiffness: float = Tolerances.SOLVER_ANGLE_STIFFNESS
    finite_difference_step: float = Tolerances.SOLVER_FD_STEP
    min_radius: float = Tolerances.SOLVER_MIN_RADIUS
    backend: Optional[str] = None  # None = feature flag "solver_backend"


@dataclass
class SolverProblem:
    """Primitive and constraint bundle passed to backends."""

    points: List[SolverPoint]
    lines: List[SolverLine]
    circles: List[SolverCircle]
    constraints: List[Constraint]
    options: SolverOptions = field(default_factory=SolverOptions)


@dataclass
class SolverResult:
    """Unified solver result."""

    points: List[SolverPoint]
    circles: List[SolverCircle]
    success: bool
    status: SolveStatus
    iterations: int = 0
    final_error: float = 0.0
    message: str = ""
    backend_used: str = ""
    solve_time_ms: float = 0.0
    n_variables: int = 0
    n_residuals: int = 0
    requested_backend: str = ""
    selection_detail: str = ""

    def __iter__(self):
        # Erlaubt: points, circles = solver.solve(...)
        return iter((self.points, self.circles))


class ISolverBackend(ABC):
    """Common backend contract."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Name used for diagnostics."""
        ...

    @abstractmethod
    def solve(self, problem: SolverProblem) -> SolverResult:
        """Solve the given problem."""
        ...


class SolverBackendRegistry:
    """Registry of available solver backends."""

    _backends: Dict[str, ISolverBackend] = {}
    _initialized = False

    @classmethod
    def _ensure_registered(cls):
        if not cls._initialized:
            cls._initialized = True
            _register_backends()

    @classmethod
    def register(cls, backend_type: SolverBackendType, backend: ISolverBackend):
        cls._backends[backend_type.value] = backend

    @classmethod
    def get(cls, backend_type: Union[str, SolverBackendType]) -> Optional[ISolverBackend]:
        cls._ensure_registered()
        if isinstance(backend_type, SolverBackendType):
            backend_type = backend_type.value
        return cls._backends.get(backend_type)

    @classmethod
    def get_default(cls) -> ISolverBackend:
        cls._ensure_registered()
        from .solver import GaussNewtonBackend

        return cls._backends.get(SolverBackendType.GAUSS_NEWTON.value) or GaussNewtonBackend()

    @classmethod
    def list_available(cls) -> List[str]:
        cls._ensure_registered()
        return list(cls._backends.keys())


class ConstraintSolver:
    """Selects the configured solver backend and makes fallbacks explicit."""

    def __init__(self, backend: Optional[ISolverBackend] = None, options: Optional[SolverOptions] = None):
        self._backend = backend
        self._options = options

    def _requested_backend_name(self, options: SolverOptions) -> Tuple[str, str]:
        if options.backend:
            return str(options.backend).strip(), ""

        backend_name = str(get_flag("solver_backend", SolverBackendType.GAUSS_NEWTON.value) or "").strip()
        if not backend_name:
            return SolverBackendType.GAUSS_NEWTON.value, "empty solver_backend flag"
        return backend_name, ""

    def _select_backend(self, options: SolverOptions) -> Tuple[ISolverBackend, str, str]:
        if self._backend is not None:
            return self._backend, self._backend.name, "backend injected explicitly"

        backend_name, config_note = self._requested_backend_name(options)
        backend = SolverBackendRegistry.get(backend_name)
        if backend is not None:
            return backend, backend_name, config_note

        default_backend = SolverBackendRegistry.get_default()
        detail = f"requested backend '{backend_name}' is not registered, fell back to '{default_backend.name}'"
        logger.warning(f"[Solver] Backend '{backend_name}' is not registered, falling back to {default_backend.name}")
        return default_backend, backend_name, detail

    def solve(
        self,
        points: Sequence[SolverPoint],
        constraints: Sequence[Constraint],
        lines: Sequence[SolverLine],
        circles: Sequence[SolverCircle],
        options: Optional[SolverOptions] = None,
    ) -> SolverResult:
        """
        Löst das Constraint-System.

        Args:
            points: Solver-Punkte (Extraktions-Reihenfolge)
            constraints: Alle Constraints des Sketches (deaktivierte werden ignoriert)
            lines: Solver-Linien
            circles: Solver-Kreise
            options: Parameter für diesen Aufruf (Default: SolverOptions())

        Returns:
            SolverResult mit neuen Punkten/Kreisen und Details
        """
        options = options or self._options or SolverOptions()
        active = [c for c in constraints if c.enabled]

        if not active:
            return SolverResult(
                points=list(points),
                circles=list(circles),
                success=True,
                status=SolveStatus.NO_CONSTRAINTS,
                message="Keine Constraints",
                n_variables=2 * len(points) + len(circles),
            )

        problem = SolverProblem(
            points=list(points),
            lines=list(lines),
            circles=list(circles),
            constraints=active,
            options=options,
        )

        backend, requested_backend, selection_detail = self._select_backend(options)

        start_time = time.perf_counter()
        result = backend.solve(problem)
        result.solve_time_ms = (time.perf_counter() - start_time) * 1000
        result.backend_used = backend.name
        result.requested_backend = requested_backend
        result.selection_detail = selection_detail

        if selection_detail:
            base_message = str(result.message or "").strip()
            if selection_detail not in base_message:
                result.message = f"{base_message} | {selection_detail}" if base_message else selection_detail

        return result


def _register_backends():
    """Register all available solver backends."""
    from .solver import GaussNewtonBackend
    from .solver_scipy import SciPyTRFBackend

    SolverBackendRegistry.register(SolverBackendType.GAUSS_NEWTON, GaussNewtonBackend())
    SolverBackendRegistry.register(SolverBackendType.SCIPY_TRF, SciPyTRFBackend())
