"""
Sketcher - Kompiliertes Constraint-System

Übersetzt Solver-Primitive + Constraints einmal pro Solve in:
- Zustandsvektor X: (x_i, y_i) pro Punkt in Extraktions-Reihenfolge, danach ein Radius pro Kreis
- Fixiert-Maske über X (FIXED-Constraints, fixierte Kreismittelpunkte, SolverPoint.fixed)
- Residuen-Terme mit aufgelösten Integer-Handles statt String-IDs

Modus-Auswahl (Kreis/Kreis bei DISTANCE und TANGENT) passiert einmal pro
Iteration am Basis-Zustand und bleibt für die Jacobi-Matrix eingefroren,
damit der Residuen-Vektor innerhalb einer Iteration konstante Länge hat.
"""

from dataclasses import dataclass, replace
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple
import math

import numpy as np
from loguru import logger

from config.tolerances import Tolerances

from .constraints import Constraint, ConstraintType
from .errors import PrimitiveReferenceError
from .primitives import SolverCircle, SolverLine, SolverPoint


class LineHandle(NamedTuple):
    """Linie als Paar von Punkt-Handles"""
    p1: int
    p2: int


class CircleHandle(NamedTuple):
    """Kreis: Punkt-Handle des Mittelpunkts + Index des Radius in X"""
    center: int
    radius: int


class _Shape(NamedTuple):
    points: int
    lines: int
    circles: int


@dataclass
class ResidualTerm:
    """Ein kompilierter Constraint: Handler + aufgelöste Handles"""
    constraint: Constraint
    handler: Callable
    points: Tuple[int, ...]
    lines: Tuple[LineHandle, ...]
    circles: Tuple[CircleHandle, ...]
    value: float
    mode_selector: Optional[Callable] = None


# =============================================================================
# Zugriff auf X
# =============================================================================

def _xy(x, p: int) -> Tuple[float, float]:
    return x[2 * p], x[2 * p + 1]


def _segment(x, line: LineHandle) -> Tuple[float, float, float, float]:
    x1, y1 = _xy(x, line.p1)
    x2, y2 = _xy(x, line.p2)
    return x1, y1, x2, y2


def _direction(x, line: LineHandle) -> Tuple[float, float]:
    x1, y1, x2, y2 = _segment(x, line)
    return x2 - x1, y2 - y1


def _length(x, line: LineHandle) -> float:
    dx, dy = _direction(x, line)
    return math.sqrt(dx * dx + dy * dy)


def _line_equation(x, line: LineHandle) -> Tuple[float, float, float]:
    """Gerade durch p1, p2 als A*x + B*y + C = 0"""
    x1, y1, x2, y2 = _segment(x, line)
    return y1 - y2, x2 - x1, x1 * y2 - x2 * y1


def _perp_distance(x, line: LineHandle, px: float, py: float, eps_sq: float) -> Optional[float]:
    """Betrag des Lot-Abstands; None bei degenerierter Linie"""
    x1, y1, x2, y2 = _segment(x, line)
    dx, dy = x2 - x1, y2 - y1
    l_sq = dx * dx + dy * dy
    if l_sq <= eps_sq:
        return None
    return abs(dy * px - dx * py + x2 * y1 - y2 * x1) / math.sqrt(l_sq)


def _circle_center_distance(x, c1: CircleHandle, c2: CircleHandle) -> Tuple[float, float, float]:
    x1, y1 = _xy(x, c1.center)
    x2, y2 = _xy(x, c2.center)
    dx, dy = x2 - x1, y2 - y1
    return dx, dy, math.sqrt(dx * dx + dy * dy)


def _angle_scale(opts) -> float:
    return opts.angle_stiffness / Tolerances.SOLVER_DEGREES_PER_RADIAN


# =============================================================================
# Residuen pro Constraint-Typ und Referenz-Muster
# Signatur: handler(x, term, opts, mode) -> List[float]
# =============================================================================

def _horizontal_points(x, t, opts, mode):
    return [x[2 * t.points[1] + 1] - x[2 * t.points[0] + 1]]


def _horizontal_line(x, t, opts, mode):
    x1, y1, x2, y2 = _segment(x, t.lines[0])
    return [y2 - y1]


def _vertical_points(x, t, opts, mode):
    return [x[2 * t.points[1]] - x[2 * t.points[0]]]


def _vertical_line(x, t, opts, mode):
    x1, y1, x2, y2 = _segment(x, t.lines[0])
    return [x2 - x1]


def _coincident_points(x, t, opts, mode):
    x1, y1 = _xy(x, t.points[0])
    x2, y2 = _xy(x, t.points[1])
    return [x2 - x1, y2 - y1]


def _coincident_point_line(x, t, opts, mode):
    px, py = _xy(x, t.points[0])
    a, b, c = _line_equation(x, t.lines[0])
    return [a * px + b * py + c]


def _coincident_circle_line(x, t, opts, mode):
    cx, cy = _xy(x, t.circles[0].center)
    a, b, c = _line_equation(x, t.lines[0])
    return [a * cx + b * cy + c]


def _coincident_point_circle(x, t, opts, mode):
    px, py = _xy(x, t.points[0])
    cx, cy = _xy(x, t.circles[0].center)
    return [px - cx, py - cy]


def _centers_coincide(x, t, opts, mode):
    dx, dy, _ = _circle_center_distance(x, t.circles[0], t.circles[1])
    return [dx, dy]


def _distance_line(x, t, opts, mode):
    return [_length(x, t.lines[0]) - t.value]


def _distance_line_circle(x, t, opts, mode):
    circle = t.circles[0]
    cx, cy = _xy(x, circle.center)
    dist = _perp_distance(x, t.lines[0], cx, cy, Tolerances.EPSILON_LENGTH_SQ)
    if dist is None:
        return [0.0]
    return [(dist - x[circle.radius]) - t.value]


def _distance_point_line(x, t, opts, mode):
    px, py = _xy(x, t.points[0])
    dist = _perp_distance(x, t.lines[0], px, py, Tolerances.EPSILON_LENGTH_SQ)
    if dist is None:
        return [0.0]
    return [dist - t.value]


def _distance_circles_mode(x, t) -> str:
    c1, c2 = t.circles[0], t.circles[1]
    _, _, dist = _circle_center_distance(x, c1, c2)
    r1, r2 = x[c1.radius], x[c2.radius]
    r_diff = abs(r1 - r2)
    err_external = abs((dist - (r1 + r2)) - t.value)
    err_internal = abs((r_diff - dist) - t.value)
    return "internal" if err_internal < err_external else "external"


def _distance_circles(x, t, opts, mode):
    c1, c2 = t.circles[0], t.circles[1]
    dx, dy, dist = _circle_center_distance(x, c1, c2)
    r1, r2 = x[c1.radius], x[c2.radius]
    if mode == "internal":
        # Verschachtelt: konzentrisch + Radien-Differenz
        return [dx, dy, abs(r1 - r2) - t.value]
    return [dist - (r1 + r2) - t.value]


def _distance_points(x, t, opts, mode):
    x1, y1 = _xy(x, t.points[0])
    x2, y2 = _xy(x, t.points[1])
    return [math.sqrt((x2 - x1) ** 2 + (y2 - y1) ** 2) - t.value]


def _radius(x, t, opts, mode):
    return [x[t.circles[0].radius] - t.value]


def _angle_lines(x, t, opts, mode):
    v1x, v1y = _direction(x, t.lines[0])
    v2x, v2y = _direction(x, t.lines[1])
    mag1 = math.sqrt(v1x * v1x + v1y * v1y)
    mag2 = math.sqrt(v2x * v2x + v2y * v2y)
    if mag1 <= Tolerances.EPSILON_MAGNITUDE or mag2 <= Tolerances.EPSILON_MAGNITUDE:
        return [0.0]
    cos_theta = max(-1.0, min(1.0, (v1x * v2x + v1y * v2y) / (mag1 * mag2)))
    current = math.degrees(math.acos(cos_theta))
    return [(current - t.value) * _angle_scale(opts)]


def _angle_line(x, t, opts, mode):
    dx, dy = _direction(x, t.lines[0])
    current = math.degrees(math.atan2(dy, dx))
    return [(current - t.value) * _angle_scale(opts)]


def _direction_pair(x, t) -> Optional[Tuple[float, float, float, float, float]]:
    v1x, v1y = _direction(x, t.lines[0])
    v2x, v2y = _direction(x, t.lines[1])
    mag1 = math.sqrt(v1x * v1x + v1y * v1y)
    mag2 = math.sqrt(v2x * v2x + v2y * v2y)
    if mag1 <= Tolerances.EPSILON_DIRECTION or mag2 <= Tolerances.EPSILON_DIRECTION:
        return None
    return v1x, v1y, v2x, v2y, mag1 * mag2


def _parallel(x, t, opts, mode):
    pair = _direction_pair(x, t)
    if pair is None:
        return [0.0]
    v1x, v1y, v2x, v2y, norm = pair
    return [(v1x * v2y - v1y * v2x) / norm * opts.angle_stiffness]


def _perpendicular(x, t, opts, mode):
    pair = _direction_pair(x, t)
    if pair is None:
        return [0.0]
    v1x, v1y, v2x, v2y, norm = pair
    return [(v1x * v2x + v1y * v2y) / norm * opts.angle_stiffness]


def _equal_length(x, t, opts, mode):
    return [_length(x, t.lines[0]) - _length(x, t.lines[1])]


def _tangent_line_circle(x, t, opts, mode):
    circle = t.circles[0]
    cx, cy = _xy(x, circle.center)
    dist = _perp_distance(x, t.lines[0], cx, cy, Tolerances.EPSILON_TANGENT_SQ)
    if dist is None:
        return [0.0]
    return [dist - x[circle.radius]]


def _tangent_circles_mode(x, t) -> str:
    c1, c2 = t.circles[0], t.circles[1]
    _, _, dist = _circle_center_distance(x, c1, c2)
    r1, r2 = x[c1.radius], x[c2.radius]
    r_sum = r1 + r2
    r_diff = abs(r1 - r2)
    if abs(dist - r_sum) < abs(dist - r_diff):
        return "external"
    if r_diff < Tolerances.SOLVER_CONCENTRIC_RADIUS_DIFF:
        return "concentric"
    return "internal"


def _tangent_circles(x, t, opts, mode):
    c1, c2 = t.circles[0], t.circles[1]
    dx, dy, dist = _circle_center_distance(x, c1, c2)
    r1, r2 = x[c1.radius], x[c2.radius]
    if mode == "external":
        return [dist - (r1 + r2)]
    if mode == "concentric":
        return [dx, dy]
    return [dist - abs(r1 - r2)]


def _tangent_point_circle(x, t, opts, mode):
    px, py = _xy(x, t.points[0])
    circle = t.circles[0]
    cx, cy = _xy(x, circle.center)
    return [math.sqrt((px - cx) ** 2 + (py - cy) ** 2) - x[circle.radius]]


def _midpoint(x, t, opts, mode):
    px, py = _xy(x, t.points[0])
    x1, y1, x2, y2 = _segment(x, t.lines[0])
    return [px - (x1 + x2) / 2, py - (y1 + y2) / 2]


# Pro Typ: (Muster, Handler, Modus-Auswahl) in Prüf-Reihenfolge, erster Treffer gewinnt
_RULES: Dict[ConstraintType, List[Tuple[Callable[[_Shape], bool], Callable, Optional[Callable]]]] = {
    ConstraintType.HORIZONTAL: [
        (lambda s: s.points == 2, _horizontal_points, None),
        (lambda s: s.lines == 1, _horizontal_line, None),
    ],
    ConstraintType.VERTICAL: [
        (lambda s: s.points == 2, _vertical_points, None),
        (lambda s: s.lines == 1, _vertical_line, None),
    ],
    ConstraintType.COINCIDENT: [
        (lambda s: s.points == 2, _coincident_points, None),
        (lambda s: s.points == 1 and s.lines == 1, _coincident_point_line, None),
        (lambda s: s.circles == 1 and s.lines == 1, _coincident_circle_line, None),
        (lambda s: s.points == 1 and s.circles == 1, _coincident_point_circle, None),
        (lambda s: s.circles == 2, _centers_coincide, None),
    ],
    ConstraintType.DISTANCE: [
        (lambda s: s.lines == 1 and s.points == 0 and s.circles == 0, _distance_line, None),
        (lambda s: s.lines == 1 and s.circles == 1, _distance_line_circle, None),
        (lambda s: s.circles == 2, _distance_circles, _distance_circles_mode),
        (lambda s: s.points >= 2, _distance_points, None),
        (lambda s: s.points == 1 and s.lines == 1, _distance_point_line, None),
    ],
    ConstraintType.RADIUS: [
        (lambda s: s.circles >= 1, _radius, None),
    ],
    ConstraintType.ANGLE: [
        (lambda s: s.lines == 2, _angle_lines, None),
        (lambda s: s.lines == 1, _angle_line, None),
    ],
    ConstraintType.PARALLEL: [
        (lambda s: s.lines == 2, _parallel, None),
    ],
    ConstraintType.PERPENDICULAR: [
        (lambda s: s.lines == 2, _perpendicular, None),
    ],
    ConstraintType.EQUAL_LENGTH: [
        (lambda s: s.lines == 2, _equal_length, None),
    ],
    ConstraintType.TANGENT: [
        (lambda s: s.lines == 1 and s.circles == 1, _tangent_line_circle, None),
        (lambda s: s.circles == 2, _tangent_circles, _tangent_circles_mode),
        (lambda s: s.points == 1 and s.circles == 1, _tangent_point_circle, None),
    ],
    ConstraintType.MIDPOINT: [
        (lambda s: s.points == 1 and s.lines == 1, _midpoint, None),
    ],
    ConstraintType.CONCENTRIC: [
        (lambda s: s.circles == 2, _centers_coincide, None),
    ],
}


# =============================================================================
# System
# =============================================================================

class ConstraintSystem:
    """
    Ein Solve-Aufruf als numerisches Problem.

    Auflösung der IDs passiert hier genau einmal; unbekannte IDs werfen
    PrimitiveReferenceError. Nicht unterstützte Referenz-Muster erzeugen
    kein Residuum.
    """

    def __init__(self, points: Sequence[SolverPoint], lines: Sequence[SolverLine],
                 circles: Sequence[SolverCircle], constraints: Sequence[Constraint], options):
        self.points = list(points)
        self.circles = list(circles)
        self.options = options

        self._point_index: Dict[str, int] = {}
        for i, p in enumerate(self.points):
            self._point_index.setdefault(p.id, i)
        self._lines: Dict[str, SolverLine] = {}
        for line in lines:
            self._lines.setdefault(line.id, line)
        self._circle_index: Dict[str, int] = {}
        for i, c in enumerate(self.circles):
            self._circle_index.setdefault(c.id, i)

        self.n_points = len(self.points)
        self.n_variables = 2 * self.n_points + len(self.circles)

        self.fixed = np.zeros(self.n_variables, dtype=bool)
        for i, p in enumerate(self.points):
            if p.fixed:
                self._fix_point(i)

        self.terms: List[ResidualTerm] = []
        for constraint in constraints:
            if not constraint.enabled:
                continue
            self._compile(constraint)

    # --- Auflösung ---

    def _resolve_point(self, pid: str, owner: str) -> int:
        try:
            return self._point_index[pid]
        except KeyError:
            raise PrimitiveReferenceError("Point", pid, owner) from None

    def _resolve_line(self, lid: str, owner: str) -> LineHandle:
        line = self._lines.get(lid)
        if line is None:
            raise PrimitiveReferenceError("Line", lid, owner)
        return LineHandle(self._resolve_point(line.p1, owner), self._resolve_point(line.p2, owner))

    def _resolve_circle(self, cid: str, owner: str) -> CircleHandle:
        idx = self._circle_index.get(cid)
        if idx is None:
            raise PrimitiveReferenceError("Circle", cid, owner)
        center = self._resolve_point(self.circles[idx].center, owner)
        return CircleHandle(center, 2 * self.n_points + idx)

    def _fix_point(self, p: int):
        self.fixed[2 * p] = True
        self.fixed[2 * p + 1] = True

    def _compile(self, constraint: Constraint):
        owner = f"{constraint.type.name} {constraint.id}"
        points = tuple(self._resolve_point(pid, owner) for pid in constraint.points)
        lines = tuple(self._resolve_line(lid, owner) for lid in constraint.lines)
        circles = tuple(self._resolve_circle(cid, owner) for cid in constraint.circles)

        if constraint.type == ConstraintType.FIXED:
            # Strukturell: keine Residuen, nur Maske
            for p in points:
                self._fix_point(p)
            for c in circles:
                self._fix_point(c.center)
            return

        shape = _Shape(len(points), len(lines), len(circles))
        for matches, handler, selector in _RULES.get(constraint.type, []):
            if matches(shape):
                self.terms.append(ResidualTerm(
                    constraint=constraint,
                    handler=handler,
                    points=points,
                    lines=lines,
                    circles=circles,
                    value=constraint.target,
                    mode_selector=selector,
                ))
                return

        logger.debug(f"[Solver] Kein Residuum für {constraint!r} (Muster {tuple(shape)} nicht unterstützt)")

    # --- Numerik ---

    @property
    def free_indices(self) -> np.ndarray:
        return np.flatnonzero(~self.fixed)

    @property
    def radius_slice(self) -> slice:
        return slice(2 * self.n_points, self.n_variables)

    def initial_state(self) -> np.ndarray:
        x = np.empty(self.n_variables, dtype=np.float64)
        for i, p in enumerate(self.points):
            x[2 * i] = p.x
            x[2 * i + 1] = p.y
        for i, c in enumerate(self.circles):
            x[2 * self.n_points + i] = c.radius
        self.clamp_radii(x)
        return x

    def clamp_radii(self, x: np.ndarray):
        """Radien in-place auf min_radius begrenzen"""
        radii = x[self.radius_slice]
        np.maximum(radii, self.options.min_radius, out=radii)

    def select_modes(self, x) -> List[Optional[str]]:
        return [t.mode_selector(x, t) if t.mode_selector else None for t in self.terms]

    def residuals(self, x, modes: Optional[List[Optional[str]]] = None) -> np.ndarray:
        if modes is None:
            modes = self.select_modes(x)
        values: List[float] = []
        for term, mode in zip(self.terms, modes):
            values.extend(term.handler(x, term, self.options, mode))
        return np.asarray(values, dtype=np.float64)

    def solution(self, x: np.ndarray) -> Tuple[List[SolverPoint], List[SolverCircle]]:
        """
        Schreibt X zurück in neue Primitive.
        Fixierte Punkte behalten exakt ihre Eingabe, NaN fällt auf den Eingabewert zurück.
        """
        points = []
        for i, p in enumerate(self.points):
            if self.fixed[2 * i] and self.fixed[2 * i + 1]:
                points.append(replace(p, fixed=True))
                continue
            nx, ny = float(x[2 * i]), float(x[2 * i + 1])
            points.append(replace(
                p,
                x=nx if math.isfinite(nx) else p.x,
                y=ny if math.isfinite(ny) else p.y,
            ))

        circles = []
        for i, c in enumerate(self.circles):
            r = float(x[2 * self.n_points + i])
            if not math.isfinite(r):
                r = c.radius
            circles.append(replace(c, radius=max(r, self.options.min_radius)))
        return points, circles


def rms(r: np.ndarray) -> float:
    """sqrt(mean(R²)); 0 für leere Residuen"""
    if r.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(r * r)))
