"""
Sketcher - Constraint Solver
Gedämpfter Gauss-Newton (Levenberg-Marquardt Stil) mit Finite-Differenzen-Jacobi-Matrix.

Pro Iteration:
    1. R(X) berechnen
    2. Abbruch wenn sqrt(mean(R²)) < tolerance
    3. J per Vorwärts-Differenzen (Spalten fixierter Variablen bleiben 0)
    4. (JᵀJ + λI)·ΔX = −JᵀR, fixierte Zeilen/Spalten = Identität, rechte Seite 0
    5. Nicht-endliches ΔX bricht ab (letzter gültiger Zustand bleibt)
    6. X += ΔX, Radien auf min_radius begrenzen
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np
import scipy.linalg
from loguru import logger

from config.feature_flags import is_enabled

from .constraints import Constraint
from .primitives import SolverCircle, SolverLine, SolverPoint
from .residuals import ConstraintSystem, rms
from .solver_interface import (
    ConstraintSolver, ISolverBackend, SolveStatus, SolverOptions, SolverProblem, SolverResult,
)


def finite_difference_jacobian(system: ConstraintSystem, x: np.ndarray, r0: np.ndarray,
                               modes, step: float) -> np.ndarray:
    """Vorwärts-Differenzen; nur freie Spalten werden ausgewertet."""
    jac = np.zeros((r0.size, x.size), dtype=np.float64)
    for j in system.free_indices:
        xp = x.copy()
        xp[j] += step
        jac[:, j] = (system.residuals(xp, modes) - r0) / step
    return jac


def solve_normal_equations(jac: np.ndarray, r: np.ndarray, damping: float,
                           fixed: np.ndarray) -> np.ndarray:
    """
    Löst (JᵀJ + λI)·ΔX = −JᵀR.

    Cholesky (positiv definit durch λ > 0), bei Fehlschlag Least-Squares.
    ΔX fixierter Variablen ist exakt 0.
    """
    n = jac.shape[1]
    a = jac.T @ jac + damping * np.eye(n)
    b = -(jac.T @ r)

    a[fixed, :] = 0.0
    a[:, fixed] = 0.0
    a[fixed, fixed] = 1.0
    b[fixed] = 0.0

    if not (np.all(np.isfinite(a)) and np.all(np.isfinite(b))):
        return np.full(n, np.nan)

    try:
        dx = scipy.linalg.cho_solve(scipy.linalg.cho_factor(a), b)
    except np.linalg.LinAlgError:
        logger.debug("[Solver] Cholesky fehlgeschlagen, nutze Least-Squares")
        dx = scipy.linalg.lstsq(a, b)[0]

    dx[fixed] = 0.0
    return dx


class GaussNewtonBackend(ISolverBackend):
    """Standard-Backend: gedämpfter Gauss-Newton mit festen Parametern aus SolverOptions"""

    @property
    def name(self) -> str:
        return "gauss_newton"

    def solve(self, problem: SolverProblem) -> SolverResult:
        opts = problem.options
        system = ConstraintSystem(problem.points, problem.lines, problem.circles, problem.constraints, opts)
        debug = is_enabled("solver_debug")

        x = system.initial_state()
        status = SolveStatus.MAX_ITERATIONS
        iterations = 0

        for iteration in range(opts.max_iterations):
            modes = system.select_modes(x)
            r = system.residuals(x, modes)
            error = rms(r)
            if debug:
                logger.debug(f"[Solver] Iteration {iteration}: RMS={error:.3e} ({r.size} Residuen)")

            if error < opts.tolerance:
                status = SolveStatus.CONVERGED
                break

            jac = finite_difference_jacobian(system, x, r, modes, opts.finite_difference_step)
            dx = solve_normal_equations(jac, r, opts.damping, system.fixed)

            if not np.all(np.isfinite(dx)):
                logger.warning(f"[Solver] Divergenz in Iteration {iteration}, Abbruch mit letztem gültigen Zustand")
                status = SolveStatus.DIVERGED
                break

            x = x + dx
            system.clamp_radii(x)
            iterations = iteration + 1

        r_final = system.residuals(x)
        final_error = rms(r_final)
        if status == SolveStatus.MAX_ITERATIONS and final_error < opts.tolerance:
            status = SolveStatus.CONVERGED

        points, circles = system.solution(x)
        success = status == SolveStatus.CONVERGED

        if success:
            message = f"Konvergiert nach {iterations} Iterationen (RMS: {final_error:.2e})"
        elif status == SolveStatus.DIVERGED:
            message = f"Divergiert nach {iterations} Iterationen (RMS: {final_error:.2e})"
        else:
            message = f"Nicht konvergiert nach {iterations} Iterationen (RMS: {final_error:.2e})"

        if not success:
            logger.debug(f"[Solver] {message}")

        return SolverResult(
            points=points,
            circles=circles,
            success=success,
            status=status,
            iterations=iterations,
            final_error=final_error,
            message=message,
            n_variables=system.n_variables,
            n_residuals=int(r_final.size),
        )


def solve_constraints(points: Sequence[SolverPoint], constraints: Sequence[Constraint],
                      lines: Sequence[SolverLine], circles: Sequence[SolverCircle],
                      options: Optional[SolverOptions] = None) -> Tuple[List[SolverPoint], List[SolverCircle]]:
    """
    Löst das Constraint-System und gibt nur die neuen Primitive zurück.

    Returns:
        (points, circles) - bei fehlenden aktiven Constraints die Eingaben unverändert
    """
    result = ConstraintSolver().solve(points, constraints, lines, circles, options)
    return result.points, result.circles
