"""
Sketcher - Rückschreiben gelöster Positionen
Baut aus gelösten Solver-Primitiven neue Element-Instanzen.
Die Eingabe-Elemente werden nicht verändert.
"""

from dataclasses import replace
from typing import Callable, Dict, List, Optional, Sequence
import math

from loguru import logger

from config.feature_flags import is_enabled

from .errors import PrimitiveReferenceError
from .geometry import (
    ElementType, Point2D, SketchElement,
    LineElement, HLineElement, VLineElement, RectangleElement,
    CircleElement, ArcElement, SplineElement,
)
from .primitives import PointRole, SolverCircle, SolverPoint, circle_id, point_id


def _finite_or(value: float, fallback: float) -> float:
    return value if math.isfinite(value) else fallback


class _SolvedLookup:
    """ID-Lookup über gelöste Punkte/Kreise"""

    def __init__(self, points: Sequence[SolverPoint], circles: Sequence[SolverCircle]):
        self.points: Dict[str, SolverPoint] = {p.id: p for p in points}
        self.circles: Dict[str, SolverCircle] = {c.id: c for c in circles}

    def point(self, element_id: str, role: PointRole, fallback: Point2D) -> Point2D:
        """Gelöster Punkt; fehlt er, ist das ein Referenzfehler. NaN -> fallback pro Achse."""
        pid = point_id(element_id, role)
        sp = self.points.get(pid)
        if sp is None:
            raise PrimitiveReferenceError("Point", pid, element_id)
        return Point2D(_finite_or(sp.x, fallback.x), _finite_or(sp.y, fallback.y))

    def optional_point(self, element_id: str, role: PointRole, index: Optional[int] = None) -> Optional[SolverPoint]:
        return self.points.get(point_id(element_id, role, index))

    def circle(self, element_id: str) -> SolverCircle:
        cid = circle_id(element_id)
        sc = self.circles.get(cid)
        if sc is None:
            raise PrimitiveReferenceError("Circle", cid, element_id)
        return sc


def _apply_line(line: LineElement, solved: _SolvedLookup) -> LineElement:
    return replace(
        line,
        start=solved.point(line.id, PointRole.START, line.start),
        end=solved.point(line.id, PointRole.END, line.end),
    )


def _apply_hline(hline: HLineElement, solved: _SolvedLookup) -> HLineElement:
    start = solved.point(hline.id, PointRole.START, hline.start)
    end = solved.point(hline.id, PointRole.END, hline.end)
    # Versatz senkrecht zur Achse wird verworfen
    return replace(hline, start=start, length=_finite_or(end.x - start.x, hline.length))


def _apply_vline(vline: VLineElement, solved: _SolvedLookup) -> VLineElement:
    start = solved.point(vline.id, PointRole.START, vline.start)
    end = solved.point(vline.id, PointRole.END, vline.end)
    return replace(vline, start=start, length=_finite_or(end.y - start.y, vline.length))


def _apply_rectangle(rect: RectangleElement, solved: _SolvedLookup) -> RectangleElement:
    corners = [solved.optional_point(rect.id, PointRole.CORNER, i) for i in range(4)]
    corners = [c for c in corners if c is not None and math.isfinite(c.x) and math.isfinite(c.y)]
    if len(corners) < 2:
        return rect

    # Bounding Box aller gelösten Ecken
    xs = [c.x for c in corners]
    ys = [c.y for c in corners]
    return replace(rect, start=Point2D(min(xs), min(ys)), end=Point2D(max(xs), max(ys)))


def _apply_circle(circle: CircleElement, solved: _SolvedLookup) -> CircleElement:
    sc = solved.circle(circle.id)
    center = solved.points.get(sc.center)
    if center is None:
        return circle
    return replace(
        circle,
        center=Point2D(_finite_or(center.x, circle.center.x), _finite_or(center.y, circle.center.y)),
        radius=_finite_or(sc.radius, circle.radius),
    )


def _apply_arc(arc: ArcElement, solved: _SolvedLookup) -> ArcElement:
    sc = solved.circle(arc.id)
    start = solved.point(arc.id, PointRole.START, arc.start_point)
    end = solved.point(arc.id, PointRole.END, arc.end_point)
    center_sp = solved.points.get(sc.center)
    if center_sp is None:
        return arc

    center = Point2D(_finite_or(center_sp.x, arc.center.x), _finite_or(center_sp.y, arc.center.y))
    # Kann die Laufrichtung umkehren, wenn ein Endpunkt über den Mittelpunkt gezogen wurde
    start_angle = math.atan2(start.y - center.y, start.x - center.x)
    end_angle = math.atan2(end.y - center.y, end.x - center.x)
    return replace(
        arc,
        center=center,
        radius=_finite_or(sc.radius, arc.radius),
        start_angle=_finite_or(start_angle, arc.start_angle),
        end_angle=_finite_or(end_angle, arc.end_angle),
    )


def _apply_spline(spline: SplineElement, solved: _SolvedLookup) -> SplineElement:
    new_points = []
    for i, original in enumerate(spline.points):
        sp = solved.optional_point(spline.id, PointRole.CONTROL, i)
        if sp is None:
            new_points.append(Point2D(original.x, original.y))
        else:
            new_points.append(Point2D(_finite_or(sp.x, original.x), _finite_or(sp.y, original.y)))
    return replace(spline, points=new_points)


_APPLIERS: Dict[ElementType, Callable] = {
    ElementType.LINE: _apply_line,
    ElementType.HLINE: _apply_hline,
    ElementType.VLINE: _apply_vline,
    ElementType.RECTANGLE: _apply_rectangle,
    ElementType.CIRCLE: _apply_circle,
    ElementType.ARC: _apply_arc,
    ElementType.SPLINE: _apply_spline,
}


def apply_solved_positions(elements: Sequence[SketchElement],
                           solved_points: Sequence[SolverPoint],
                           solved_circles: Sequence[SolverCircle]) -> List[SketchElement]:
    """
    Überträgt gelöste Positionen auf neue Element-Instanzen.

    Args:
        elements: Elemente vor dem Solve
        solved_points: Punkte aus dem Solver
        solved_circles: Kreise aus dem Solver

    Returns:
        Neue Elemente in derselben Reihenfolge

    Raises:
        PrimitiveReferenceError: wenn ein benötigter Punkt/Kreis fehlt
    """
    solved = _SolvedLookup(solved_points, solved_circles)
    result = []
    for element in elements:
        applier = _APPLIERS.get(getattr(element, "kind", None))
        if applier is None:
            logger.warning(f"[Apply] Unbekannter Element-Typ unverändert übernommen: {element!r}")
            result.append(element)
            continue
        result.append(applier(element, solved))

    if is_enabled("sketch_debug"):
        logger.debug(f"[Apply] {len(result)} Elemente aktualisiert")
    return result
