"""
Tests für das Rückschreiben gelöster Positionen (sketcher/applier.py)
"""

import math

import pytest

from sketcher.applier import apply_solved_positions
from sketcher.errors import PrimitiveReferenceError
from sketcher.geometry import (
    ArcElement, CircleElement, HLineElement, LineElement, Point2D,
    RectangleElement, SplineElement, VLineElement,
)
from sketcher.primitives import SolverCircle, SolverPoint, extract_solver_primitives

pytestmark = pytest.mark.fast


def _moved(prims, **coords):
    """Kopie der extrahierten Punkte, einzelne IDs auf neue Koordinaten gesetzt"""
    points = []
    for p in prims.points:
        if p.id in coords:
            x, y = coords[p.id]
            points.append(SolverPoint(p.id, x, y, element_id=p.element_id, role=p.role, index=p.index))
        else:
            points.append(p)
    return points


def test_unchanged_primitives_reproduce_elements():
    elements = [
        LineElement(Point2D(0, 0), Point2D(10, 5), id="L"),
        HLineElement(Point2D(1, 1), 4, id="H"),
        VLineElement(Point2D(2, 2), -3, id="V"),
        CircleElement(Point2D(5, 5), 2, id="C"),
        SplineElement([Point2D(0, 0), Point2D(1, 1)], id="S"),
    ]
    prims = extract_solver_primitives(elements)

    applied = apply_solved_positions(elements, prims.points, prims.circles)

    assert applied == elements


def test_input_elements_are_not_mutated():
    line = LineElement(Point2D(0, 0), Point2D(10, 0), id="L")
    prims = extract_solver_primitives([line])

    applied = apply_solved_positions([line], _moved(prims, L_end=(20.0, 3.0)), prims.circles)

    assert line.end.as_tuple() == (10.0, 0.0)
    assert applied[0].end.as_tuple() == (20.0, 3.0)
    assert applied[0] is not line


def test_hline_drops_perpendicular_offset():
    hline = HLineElement(Point2D(0, 0), 10, id="H")
    prims = extract_solver_primitives([hline])

    applied, = apply_solved_positions([hline], _moved(prims, H_start=(1.0, 2.0), H_end=(15.0, 7.0)), [])

    assert applied.start.as_tuple() == (1.0, 2.0)
    assert applied.length == pytest.approx(14.0)
    assert applied.end.y == 2.0


def test_vline_length_from_y_delta():
    vline = VLineElement(Point2D(0, 0), 10, id="V")
    prims = extract_solver_primitives([vline])

    applied, = apply_solved_positions([vline], _moved(prims, V_end=(3.0, -4.0)), [])

    assert applied.length == pytest.approx(-4.0)
    assert applied.start.as_tuple() == (0.0, 0.0)


def test_rectangle_uses_bounding_box_of_corners():
    rect = RectangleElement(Point2D(0, 0), Point2D(40, 30), id="R")
    prims = extract_solver_primitives([rect])

    # Nur Ecke 2 bewegt: Bounding Box wächst
    applied, = apply_solved_positions([rect], _moved(prims, R_corner2=(50.0, 35.0)), [])

    assert applied.start.as_tuple() == (0.0, 0.0)
    assert applied.end.as_tuple() == (50.0, 35.0)


def test_rectangle_normalizes_start_and_end():
    rect = RectangleElement(Point2D(40, 30), Point2D(0, 0), id="R")
    prims = extract_solver_primitives([rect])

    applied, = apply_solved_positions([rect], prims.points, [])

    assert applied.start.as_tuple() == (0.0, 0.0)
    assert applied.end.as_tuple() == (40.0, 30.0)


def test_rectangle_with_missing_corners_unchanged():
    rect = RectangleElement(Point2D(0, 0), Point2D(40, 30), id="R")
    only_one = [SolverPoint("R_corner0", 5.0, 5.0)]

    applied, = apply_solved_positions([rect], only_one, [])

    assert applied == rect


def test_rectangle_ignores_nan_corners():
    rect = RectangleElement(Point2D(0, 0), Point2D(40, 30), id="R")
    prims = extract_solver_primitives([rect])

    applied, = apply_solved_positions([rect], _moved(prims, R_corner2=(float("nan"), 99.0)), [])

    assert applied.end.as_tuple() == (40.0, 30.0)


def test_circle_center_and_radius():
    circle = CircleElement(Point2D(0, 0), 5, id="C")
    prims = extract_solver_primitives([circle])
    circles = [SolverCircle("C_circle", "C_center", 7.5)]

    applied, = apply_solved_positions([circle], _moved(prims, C_center=(1.0, 2.0)), circles)

    assert applied.center.as_tuple() == (1.0, 2.0)
    assert applied.radius == 7.5


def test_circle_without_center_point_unchanged():
    circle = CircleElement(Point2D(0, 0), 5, id="C")
    circles = [SolverCircle("C_circle", "C_center", 7.5)]

    applied, = apply_solved_positions([circle], [], circles)

    assert applied == circle


def test_missing_circle_raises():
    circle = CircleElement(Point2D(0, 0), 5, id="C")
    with pytest.raises(PrimitiveReferenceError):
        apply_solved_positions([circle], [SolverPoint("C_center", 0.0, 0.0)], [])


def test_arc_angles_from_solved_endpoints():
    arc = ArcElement(Point2D(0, 0), 10, 0.0, math.pi / 2, id="A")
    prims = extract_solver_primitives([arc])
    points = _moved(prims, A_center=(1.0, 1.0), A_start=(1.0, 11.0), A_end=(-9.0, 1.0))
    circles = [SolverCircle("A_circle", "A_center", 10.0)]

    applied, = apply_solved_positions([arc], points, circles)

    assert applied.center.as_tuple() == (1.0, 1.0)
    assert applied.start_angle == pytest.approx(math.pi / 2)
    assert applied.end_angle == pytest.approx(math.pi)


def test_spline_updates_per_index():
    spline = SplineElement([Point2D(0, 0), Point2D(1, 1), Point2D(2, 0)], id="S")
    points = [SolverPoint("S_control1", 5.0, 6.0), SolverPoint("S_control2", float("nan"), 3.0)]

    applied, = apply_solved_positions([spline], points, [])

    assert [p.as_tuple() for p in applied.points] == [(0.0, 0.0), (5.0, 6.0), (2.0, 3.0)]


def test_nan_coordinate_falls_back_per_axis():
    line = LineElement(Point2D(0, 0), Point2D(10, 0), id="L")
    prims = extract_solver_primitives([line])

    applied, = apply_solved_positions([line], _moved(prims, L_end=(float("nan"), 4.0)), [])

    assert applied.end.as_tuple() == (10.0, 4.0)


def test_missing_line_point_raises():
    line = LineElement(Point2D(0, 0), Point2D(10, 0), id="L")

    with pytest.raises(PrimitiveReferenceError) as exc:
        apply_solved_positions([line], [SolverPoint("L_start", 0.0, 0.0)], [])

    assert "L_end" in str(exc.value)


def test_order_is_preserved():
    elements = [
        CircleElement(Point2D(0, 0), 1, id="C"),
        LineElement(Point2D(0, 0), Point2D(1, 0), id="L"),
    ]
    prims = extract_solver_primitives(elements)

    applied = apply_solved_positions(elements, prims.points, prims.circles)

    assert [e.id for e in applied] == ["C", "L"]
