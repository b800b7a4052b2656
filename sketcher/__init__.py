"""
Sketcher Module
2D-Constraint-Kern: Elemente -> Solver-Primitive -> Solve -> Elemente
"""

from config.version import VERSION as __version__

from .errors import SketchSolverError, PrimitiveReferenceError, UnknownElementError

from .geometry import (
    Point2D, ElementType, SketchElement,
    LineElement, HLineElement, VLineElement, RectangleElement,
    CircleElement, ArcElement, SplineElement,
    element_from_dict,
)

from .primitives import (
    PointRole, SolverPoint, SolverLine, SolverCircle, SolverPrimitives,
    ImplicitConstraints,
    extract_solver_primitives, find_coincident_points, extract_implicit_constraints,
    point_id, line_id, circle_id,
)

from .constraints import (
    Constraint, ConstraintType,
    make_fixed, make_coincident, make_point_on_line, make_horizontal, make_vertical,
    make_parallel, make_perpendicular, make_equal_length, make_concentric,
    make_tangent, make_tangent_line_circle, make_point_on_circle, make_midpoint,
    make_length, make_distance, make_distance_point_line, make_distance_line_circle,
    make_distance_circles, make_angle, make_line_angle, make_radius,
)

from .auto_constraints import AutoConstraintResult, detect_auto_constraints

from .solver_interface import (
    ConstraintSolver, SolverOptions, SolverResult, SolveStatus,
    SolverBackendType, SolverBackendRegistry,
)

from .solver import GaussNewtonBackend, solve_constraints

from .applier import apply_solved_positions

from .sketch import Sketch, SketchState
