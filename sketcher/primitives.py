"""
Sketcher - Solver-Primitive
Zerlegt Sketch-Elemente in einen flachen Graphen aus Punkten, Linien und Kreisen.

ID-Schema (stabil, rollenbasiert):
    Punkt:  "{element_id}_{rolle}" bzw. "{element_id}_{rolle}{index}" für Ecken/Kontrollpunkte
    Linie:  "{element_id}_line" bzw. "{element_id}_edge{k}" für Rechteck-Kanten
    Kreis:  "{element_id}_circle"

Die Primitive leben nur für einen Solve-Aufruf und werden jedes Mal neu erzeugt.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Tuple
from enum import Enum

from loguru import logger

from config.feature_flags import is_enabled
from config.tolerances import Tolerances

from .errors import PrimitiveReferenceError
from .geometry import (
    ElementType, SketchElement,
    LineElement, HLineElement, VLineElement, RectangleElement,
    CircleElement, ArcElement, SplineElement,
)


class PointRole(Enum):
    """Rolle eines Solver-Punkts innerhalb seines Elements"""
    START = "start"
    END = "end"
    CENTER = "center"
    CORNER = "corner"
    CONTROL = "control"


def point_id(element_id: str, role: PointRole, index: Optional[int] = None) -> str:
    suffix = "" if index is None else str(index)
    return f"{element_id}_{role.value}{suffix}"


def line_id(element_id: str, edge: Optional[int] = None) -> str:
    if edge is None:
        return f"{element_id}_line"
    return f"{element_id}_edge{edge}"


def circle_id(element_id: str) -> str:
    return f"{element_id}_circle"


@dataclass
class SolverPoint:
    """Punkt im Solver-Graphen (x, y sind freie Variablen solange nicht fixiert)"""
    id: str
    x: float
    y: float
    fixed: bool = False
    element_id: str = ""
    role: PointRole = PointRole.START
    index: Optional[int] = None


@dataclass
class SolverLine:
    """Gerade Kante zwischen zwei Punkt-IDs"""
    id: str
    p1: str
    p2: str


@dataclass
class SolverCircle:
    """Kreis: Mittelpunkt-ID + Radius (freie Variable, min. SOLVER_MIN_RADIUS)"""
    id: str
    center: str
    radius: float


@dataclass
class SolverPrimitives:
    """Ergebnis der Extraktion. Entpackbar als (points, lines, circles)."""
    points: List[SolverPoint] = field(default_factory=list)
    lines: List[SolverLine] = field(default_factory=list)
    circles: List[SolverCircle] = field(default_factory=list)

    def __iter__(self) -> Iterator[list]:
        return iter((self.points, self.lines, self.circles))

    def point(self, pid: str) -> SolverPoint:
        for p in self.points:
            if p.id == pid:
                return p
        raise PrimitiveReferenceError("Point", pid)

    def line(self, lid: str) -> SolverLine:
        for line in self.lines:
            if line.id == lid:
                return line
        raise PrimitiveReferenceError("Line", lid)

    def circle(self, cid: str) -> SolverCircle:
        for c in self.circles:
            if c.id == cid:
                return c
        raise PrimitiveReferenceError("Circle", cid)

    def points_of(self, element_id: str) -> List[SolverPoint]:
        return [p for p in self.points if p.element_id == element_id]


class _PrimitiveCollector:
    """Sammelt Primitive; Punkte werden über ihre zusammengesetzte ID dedupliziert."""

    def __init__(self):
        self.point_map: Dict[str, SolverPoint] = {}
        self.lines: List[SolverLine] = []
        self.circles: List[SolverCircle] = []

    def add_point(self, element_id: str, role: PointRole, x: float, y: float,
                  index: Optional[int] = None, fixed: bool = False) -> str:
        pid = point_id(element_id, role, index)
        # Erste Registrierung gewinnt
        if pid not in self.point_map:
            self.point_map[pid] = SolverPoint(
                id=pid, x=x, y=y, fixed=fixed,
                element_id=element_id, role=role, index=index,
            )
        return pid

    def add_line(self, lid: str, p1: str, p2: str):
        self.lines.append(SolverLine(lid, p1, p2))

    def add_circle(self, element_id: str, center: str, radius: float):
        self.circles.append(SolverCircle(circle_id(element_id), center, radius))

    def result(self) -> SolverPrimitives:
        return SolverPrimitives(list(self.point_map.values()), self.lines, self.circles)


# === Zerlegungsregeln pro Element-Typ ===

def _extract_line(col: _PrimitiveCollector, line: LineElement):
    p1 = col.add_point(line.id, PointRole.START, line.start.x, line.start.y)
    p2 = col.add_point(line.id, PointRole.END, line.end.x, line.end.y)
    col.add_line(line_id(line.id), p1, p2)


def _extract_axis_line(col: _PrimitiveCollector, element):
    # hline/vline: Endpunkt wird aus start + length entlang der Achse abgeleitet
    end = element.end
    p1 = col.add_point(element.id, PointRole.START, element.start.x, element.start.y)
    p2 = col.add_point(element.id, PointRole.END, end.x, end.y)
    col.add_line(line_id(element.id), p1, p2)


def _extract_rectangle(col: _PrimitiveCollector, rect: RectangleElement):
    corner_ids = [
        col.add_point(rect.id, PointRole.CORNER, c.x, c.y, index=i)
        for i, c in enumerate(rect.corners)
    ]
    for k in range(4):
        col.add_line(line_id(rect.id, edge=k), corner_ids[k], corner_ids[(k + 1) % 4])


def _extract_circle(col: _PrimitiveCollector, circle: CircleElement):
    center = col.add_point(circle.id, PointRole.CENTER, circle.center.x, circle.center.y)
    col.add_circle(circle.id, center, circle.radius)


def _extract_arc(col: _PrimitiveCollector, arc: ArcElement):
    center = col.add_point(arc.id, PointRole.CENTER, arc.center.x, arc.center.y)
    start, end = arc.start_point, arc.end_point
    col.add_point(arc.id, PointRole.START, start.x, start.y)
    col.add_point(arc.id, PointRole.END, end.x, end.y)
    # Start/Ende liegen NICHT per Constraint auf dem Kreis
    col.add_circle(arc.id, center, arc.radius)


def _extract_spline(col: _PrimitiveCollector, spline: SplineElement):
    for i, p in enumerate(spline.points):
        col.add_point(spline.id, PointRole.CONTROL, p.x, p.y, index=i)


_EXTRACTORS: Dict[ElementType, Callable] = {
    ElementType.LINE: _extract_line,
    ElementType.HLINE: _extract_axis_line,
    ElementType.VLINE: _extract_axis_line,
    ElementType.RECTANGLE: _extract_rectangle,
    ElementType.CIRCLE: _extract_circle,
    ElementType.ARC: _extract_arc,
    ElementType.SPLINE: _extract_spline,
}


def extract_solver_primitives(elements: List[SketchElement]) -> SolverPrimitives:
    """
    Zerlegt Sketch-Elemente in Solver-Primitive.

    Args:
        elements: Elemente des Sketches (Reihenfolge bestimmt die Variablen-Reihenfolge)

    Returns:
        SolverPrimitives mit points, lines, circles
    """
    col = _PrimitiveCollector()
    for element in elements:
        extractor = _EXTRACTORS.get(getattr(element, "kind", None))
        if extractor is None:
            logger.warning(f"[Extract] Unbekannter Element-Typ übersprungen: {element!r}")
            continue
        extractor(col, element)

    result = col.result()
    if is_enabled("sketch_debug"):
        logger.debug(
            f"[Extract] {len(elements)} Elemente -> {len(result.points)} Punkte, "
            f"{len(result.lines)} Linien, {len(result.circles)} Kreise"
        )
    return result


# === Hilfsfunktionen ===

def find_coincident_points(points: List[SolverPoint],
                           tolerance: float = Tolerances.COMPARE_POINT) -> List[Tuple[str, str]]:
    """Gibt alle ID-Paare zurück, deren euklidischer Abstand unter der Toleranz liegt."""
    pairs = []
    tol_sq = tolerance * tolerance
    for i, p1 in enumerate(points):
        for p2 in points[i + 1:]:
            dx = p1.x - p2.x
            dy = p1.y - p2.y
            if dx * dx + dy * dy < tol_sq:
                pairs.append((p1.id, p2.id))
    return pairs


@dataclass
class ImplicitConstraints:
    """Constraints, die sich aus der Element-Geometrie selbst ergeben"""
    horizontal_lines: List[str] = field(default_factory=list)
    vertical_lines: List[str] = field(default_factory=list)
    rectangle_corners: Dict[str, List[str]] = field(default_factory=dict)
    # edge0/edge2 horizontal, edge1/edge3 vertikal
    rectangle_edges: Dict[str, List[str]] = field(default_factory=dict)


def extract_implicit_constraints(elements: List[SketchElement]) -> ImplicitConstraints:
    """
    Sammelt implizite Constraints: hline/vline sind achsgebunden, exakt
    achsparallele Linien ebenso, Rechtecke haben vier zusammengehörige Ecken
    und achsparallele Kanten.
    """
    result = ImplicitConstraints()
    tol = Tolerances.SKETCH_IMPLICIT_AXIS

    for element in elements:
        kind = getattr(element, "kind", None)
        if kind == ElementType.HLINE:
            result.horizontal_lines.append(line_id(element.id))
        elif kind == ElementType.VLINE:
            result.vertical_lines.append(line_id(element.id))
        elif kind == ElementType.LINE:
            dx = abs(element.end.x - element.start.x)
            dy = abs(element.end.y - element.start.y)
            if dy < tol:
                result.horizontal_lines.append(line_id(element.id))
            elif dx < tol:
                result.vertical_lines.append(line_id(element.id))
        elif kind == ElementType.RECTANGLE:
            result.rectangle_corners[element.id] = [
                point_id(element.id, PointRole.CORNER, i) for i in range(4)
            ]
            result.rectangle_edges[element.id] = [line_id(element.id, edge=k) for k in range(4)]

    return result
