"""
Sketcher - Auto-Constraints
Erkennt beim Erstellen eines Elements naheliegende Constraints:

- Koinzidenz: benannte Punkte des neuen Elements liegen (Chebyshev, <= 5 Einheiten)
  auf Punkten bestehender Elemente
- Horizontal/Vertikal: freie Linien innerhalb von 5° zur Achse (hline/vline sind
  bereits achsgebunden)

Jeder Constraint bekommt eine Beschreibung für das UI-Log.
"""

from dataclasses import dataclass, field
from typing import List, NamedTuple, Sequence
import math

from loguru import logger

from config.feature_flags import is_enabled
from config.tolerances import Tolerances, axis_angle_threshold, coincidence_tolerance

from .constraints import Constraint, ConstraintType, make_coincident, make_horizontal, make_vertical
from .geometry import ElementType, Point2D, SketchElement
from .primitives import PointRole, SolverPoint, extract_solver_primitives, line_id, point_id


@dataclass
class AutoConstraintResult:
    """Erkannte Constraints + Beschreibungen (nicht 1:1, reine Beschreibungen sind möglich)"""
    constraints: List[Constraint] = field(default_factory=list)
    descriptions: List[str] = field(default_factory=list)

    def __bool__(self):
        return bool(self.constraints or self.descriptions)


class _NamedPosition(NamedTuple):
    point_id: str
    position: Point2D
    label: str
    emit: bool  # False = nur beschreiben, keinen Constraint erzeugen


def _named_positions(element: SketchElement) -> List[_NamedPosition]:
    kind = element.kind
    eid = element.id

    if kind == ElementType.LINE:
        return [
            _NamedPosition(point_id(eid, PointRole.START), element.start, "start", True),
            _NamedPosition(point_id(eid, PointRole.END), element.end, "end", True),
        ]
    if kind in (ElementType.HLINE, ElementType.VLINE):
        prefix = kind.value
        return [
            _NamedPosition(point_id(eid, PointRole.START), element.start, f"{prefix} start", True),
            _NamedPosition(point_id(eid, PointRole.END), element.end, f"{prefix} end", True),
        ]
    if kind == ElementType.ARC:
        return [
            _NamedPosition(point_id(eid, PointRole.START), element.start_point, "arc start", True),
            _NamedPosition(point_id(eid, PointRole.END), element.end_point, "arc end", True),
            _NamedPosition(point_id(eid, PointRole.CENTER), element.center, "arc center", True),
        ]
    if kind == ElementType.CIRCLE:
        return [_NamedPosition(point_id(eid, PointRole.CENTER), element.center, "circle center", True)]

    indexed = is_enabled("auto_constraints_indexed_points")
    if kind == ElementType.RECTANGLE:
        return [
            _NamedPosition(point_id(eid, PointRole.CORNER, i), corner, "rectangle corner", indexed)
            for i, corner in enumerate(element.corners)
        ]
    if kind == ElementType.SPLINE and len(element.points) >= 2:
        last = len(element.points) - 1
        return [
            _NamedPosition(point_id(eid, PointRole.CONTROL, 0), element.points[0], "spline start", indexed),
            _NamedPosition(point_id(eid, PointRole.CONTROL, last), element.points[last], "spline end", indexed),
        ]
    return []


def _is_coincident(p: Point2D, sp: SolverPoint, tolerance: float) -> bool:
    return abs(p.x - sp.x) <= tolerance and abs(p.y - sp.y) <= tolerance


def _has_point_pair(p1: str, p2: str, constraints: Sequence[Constraint]) -> bool:
    pair = sorted((p1, p2))
    return any(
        c.type == ConstraintType.COINCIDENT and len(c.points) == 2 and sorted(c.points) == pair
        for c in constraints
    )


def _has_axis_constraint(lid: str, constraints: Sequence[Constraint]) -> bool:
    return any(
        c.type in (ConstraintType.HORIZONTAL, ConstraintType.VERTICAL) and c.lines == [lid]
        for c in constraints
    )


def is_nearly_horizontal(start: Point2D, end: Point2D) -> bool:
    """Mindestlänge 10, Winkel innerhalb der Schwelle zu 0° oder 180°"""
    dx, dy = end.x - start.x, end.y - start.y
    if math.hypot(dx, dy) < Tolerances.SKETCH_AUTO_MIN_LENGTH:
        return False
    angle = abs(math.atan2(dy, dx))
    threshold = axis_angle_threshold()
    return angle < threshold or abs(angle - math.pi) < threshold


def is_nearly_vertical(start: Point2D, end: Point2D) -> bool:
    """Mindestlänge 10, Winkel innerhalb der Schwelle zu ±90°"""
    dx, dy = end.x - start.x, end.y - start.y
    if math.hypot(dx, dy) < Tolerances.SKETCH_AUTO_MIN_LENGTH:
        return False
    angle = abs(math.atan2(dy, dx))
    return abs(angle - math.pi / 2) < axis_angle_threshold()


def detect_auto_constraints(new_element: SketchElement,
                            existing_elements: Sequence[SketchElement],
                            existing_constraints: Sequence[Constraint]) -> AutoConstraintResult:
    """
    Analysiert ein neu erstelltes Element gegen den bestehenden Sketch.

    Args:
        new_element: Das gerade fertig gezeichnete Element
        existing_elements: Elemente des Sketches (das neue Element darf enthalten sein)
        existing_constraints: Bereits vorhandene Constraints

    Returns:
        AutoConstraintResult mit Constraints und Beschreibungen
    """
    result = AutoConstraintResult()
    if not is_enabled("auto_constraints"):
        return result

    tolerance = coincidence_tolerance()
    existing_points = [
        p for p in extract_solver_primitives(list(existing_elements)).points
        if p.element_id != new_element.id
    ]

    for named in _named_positions(new_element):
        for existing in existing_points:
            if not _is_coincident(named.position, existing, tolerance):
                continue
            known = list(existing_constraints) + result.constraints
            if _has_point_pair(named.point_id, existing.id, known):
                continue
            if named.emit:
                result.constraints.append(make_coincident(named.point_id, existing.id))
            role = existing.role.value if existing.index is None else f"{existing.role.value}{existing.index}"
            result.descriptions.append(f"Coincident: {named.label} to {role}")

    if new_element.kind == ElementType.LINE:
        lid = line_id(new_element.id)
        if not _has_axis_constraint(lid, existing_constraints):
            if is_nearly_horizontal(new_element.start, new_element.end):
                result.constraints.append(make_horizontal(lid))
                result.descriptions.append("Horizontal")
            elif is_nearly_vertical(new_element.start, new_element.end):
                result.constraints.append(make_vertical(lid))
                result.descriptions.append("Vertical")

    if result:
        logger.debug(f"[AutoConstraint] {new_element!r}: {', '.join(result.descriptions)}")
    return result
