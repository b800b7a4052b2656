"""
SciPy Backend

Alternative zum Gauss-Newton Standard-Backend: scipy.optimize.least_squares
(Trust Region Reflective) auf denselben Residuen, Radien als untere Schranke.
"""

import numpy as np
from loguru import logger
from scipy.optimize import least_squares

from .residuals import ConstraintSystem, rms
from .solver_interface import ISolverBackend, SolveStatus, SolverProblem, SolverResult


class SciPyTRFBackend(ISolverBackend):
    """SciPy Trust Region Reflective Backend"""

    def __init__(self, method: str = 'trf'):
        self.method = method

    @property
    def name(self) -> str:
        return f"scipy_{self.method}"

    def solve(self, problem: SolverProblem) -> SolverResult:
        """Implementierung des SciPy Solvers"""
        options = problem.options
        system = ConstraintSystem(problem.points, problem.lines, problem.circles, problem.constraints, options)

        x0 = system.initial_state()
        free = system.free_indices
        # least_squares braucht feste Residuen-Länge: Modi am Startzustand einfrieren
        modes = system.select_modes(x0)
        r0 = system.residuals(x0, modes)

        def result_for(x, status, iterations, message):
            r = system.residuals(x, modes)
            points, circles = system.solution(x)
            return SolverResult(
                points=points,
                circles=circles,
                success=status == SolveStatus.CONVERGED,
                status=status,
                iterations=iterations,
                final_error=rms(r),
                message=message,
                n_variables=system.n_variables,
                n_residuals=int(r.size),
            )

        if free.size == 0 or r0.size == 0 or rms(r0) < options.tolerance:
            status = SolveStatus.CONVERGED if rms(r0) < options.tolerance else SolveStatus.MAX_ITERATIONS
            return result_for(x0, status, 0, "Keine freien Variablen oder bereits erfüllt")

        def error_function(z):
            x = x0.copy()
            x[free] = z
            return system.residuals(x, modes)

        # Radien (hinter den Punkt-Koordinaten) nach unten begrenzen
        lower = np.full(system.n_variables, -np.inf)
        lower[system.radius_slice] = options.min_radius

        # Relativ-Toleranzen von least_squares deutlich schärfer als das RMS-Kriterium
        lsq_tol = options.tolerance * 1e-4

        try:
            result = least_squares(
                error_function,
                x0[free],
                bounds=(lower[free], np.full(free.size, np.inf)),
                method=self.method,
                ftol=lsq_tol,
                xtol=lsq_tol,
                gtol=lsq_tol,
                max_nfev=options.max_iterations,
            )
        except (ValueError, np.linalg.LinAlgError) as e:
            logger.warning(f"[Solver] {self.name} fehlgeschlagen: {e}")
            return result_for(x0, SolveStatus.DIVERGED, 0, f"Solver-Fehler: {e}")

        if not np.all(np.isfinite(result.x)):
            logger.warning(f"[Solver] {self.name} lieferte ungültige Werte (NaN/Inf)")
            return result_for(x0, SolveStatus.DIVERGED, int(result.nfev), "Solver lieferte ungültige Werte (NaN/Inf)")

        x = x0.copy()
        x[free] = result.x
        system.clamp_radii(x)

        final_error = rms(system.residuals(x, modes))
        if final_error < options.tolerance:
            status = SolveStatus.CONVERGED
            message = f"Konvergiert (RMS: {final_error:.2e})"
        else:
            status = SolveStatus.MAX_ITERATIONS
            message = f"Solver nicht konvergiert (Status: {result.status}, RMS: {final_error:.2e})"

        return result_for(x, status, int(result.nfev), message)
