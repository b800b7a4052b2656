"""
Tests für die Zerlegung von Elementen in Solver-Primitive
"""

import math

import pytest

from sketcher.errors import PrimitiveReferenceError
from sketcher.geometry import (
    ArcElement, CircleElement, HLineElement, LineElement, Point2D,
    RectangleElement, SplineElement, VLineElement,
)
from sketcher.primitives import (
    PointRole, SolverPoint,
    extract_implicit_constraints, extract_solver_primitives, find_coincident_points,
)

pytestmark = pytest.mark.fast


def test_line_produces_two_points_and_one_line():
    points, lines, circles = extract_solver_primitives([LineElement(Point2D(0, 0), Point2D(10, 0), id="L")])

    assert [p.id for p in points] == ["L_start", "L_end"]
    assert [(p.x, p.y) for p in points] == [(0, 0), (10, 0)]
    assert len(lines) == 1
    assert (lines[0].id, lines[0].p1, lines[0].p2) == ("L_line", "L_start", "L_end")
    assert circles == []


def test_hline_and_vline_derive_end_point():
    prims = extract_solver_primitives([
        HLineElement(Point2D(1, 1), -5, id="H"),
        VLineElement(Point2D(2, 2), 3, id="V"),
    ])

    assert (prims.point("H_end").x, prims.point("H_end").y) == (-4, 1)
    assert (prims.point("V_end").x, prims.point("V_end").y) == (2, 5)
    assert prims.line("H_line").p2 == "H_end"


def test_rectangle_corners_are_distinct_points():
    prims = extract_solver_primitives([RectangleElement(Point2D(0, 0), Point2D(40, 30), id="R")])

    assert [p.id for p in prims.points] == ["R_corner0", "R_corner1", "R_corner2", "R_corner3"]
    assert [(p.x, p.y) for p in prims.points] == [(0, 0), (40, 0), (40, 30), (0, 30)]
    assert [p.index for p in prims.points] == [0, 1, 2, 3]
    assert all(p.role == PointRole.CORNER for p in prims.points)
    # Kanten verbinden die Ecken zyklisch
    assert [(l.p1, l.p2) for l in prims.lines] == [
        ("R_corner0", "R_corner1"),
        ("R_corner1", "R_corner2"),
        ("R_corner2", "R_corner3"),
        ("R_corner3", "R_corner0"),
    ]


def test_circle_and_arc_share_center_with_circle():
    prims = extract_solver_primitives([
        CircleElement(Point2D(5, 5), 3, id="C"),
        ArcElement(Point2D(0, 0), 2, 0.0, math.pi, id="A"),
    ])

    assert prims.circle("C_circle").center == "C_center"
    assert prims.circle("C_circle").radius == 3
    assert prims.circle("A_circle").center == "A_center"
    assert prims.point("A_start").x == pytest.approx(2.0)
    assert prims.point("A_end").x == pytest.approx(-2.0)
    assert prims.point("A_end").y == pytest.approx(0.0, abs=1e-12)


def test_spline_control_points_are_indexed():
    prims = extract_solver_primitives([SplineElement([Point2D(0, 0), Point2D(1, 1), Point2D(2, 0)], id="S")])

    assert [p.id for p in prims.points] == ["S_control0", "S_control1", "S_control2"]
    assert prims.lines == []
    assert prims.circles == []


def test_ids_unique_across_elements():
    elements = [
        LineElement(Point2D(0, 0), Point2D(1, 0), id="a"),
        RectangleElement(Point2D(0, 0), Point2D(1, 1), id="b"),
        ArcElement(Point2D(0, 0), 1, id="c"),
        SplineElement([Point2D(0, 0), Point2D(1, 1)], id="d"),
    ]
    prims = extract_solver_primitives(elements)
    ids = [p.id for p in prims.points]
    assert len(ids) == len(set(ids))


def test_lookup_unknown_id_raises():
    prims = extract_solver_primitives([LineElement(Point2D(0, 0), Point2D(1, 0), id="L")])
    with pytest.raises(PrimitiveReferenceError) as exc:
        prims.point("missing_start")
    assert "missing_start" in str(exc.value)


def test_find_coincident_points():
    points = [
        SolverPoint("a", 0.0, 0.0),
        SolverPoint("b", 0.0, 5e-7),
        SolverPoint("c", 1.0, 0.0),
    ]
    assert find_coincident_points(points) == [("a", "b")]
    assert find_coincident_points(points, tolerance=2.0) == [("a", "b"), ("a", "c"), ("b", "c")]


def test_extract_implicit_constraints():
    implicit = extract_implicit_constraints([
        HLineElement(Point2D(0, 0), 5, id="h"),
        VLineElement(Point2D(0, 0), 5, id="v"),
        LineElement(Point2D(0, 0), Point2D(10, 0), id="flat"),
        LineElement(Point2D(3, 0), Point2D(3, 10), id="upright"),
        LineElement(Point2D(0, 0), Point2D(10, 10), id="diag"),
        RectangleElement(Point2D(0, 0), Point2D(1, 1), id="r"),
    ])

    assert implicit.horizontal_lines == ["h_line", "flat_line"]
    assert implicit.vertical_lines == ["v_line", "upright_line"]
    assert implicit.rectangle_corners == {"r": ["r_corner0", "r_corner1", "r_corner2", "r_corner3"]}
    assert implicit.rectangle_edges == {"r": ["r_edge0", "r_edge1", "r_edge2", "r_edge3"]}


def test_points_of_element():
    prims = extract_solver_primitives([
        LineElement(Point2D(0, 0), Point2D(1, 0), id="L"),
        CircleElement(Point2D(5, 5), 1, id="C"),
    ])
    assert [p.id for p in prims.points_of("C")] == ["C_center"]
    assert prims.points_of("missing") == []
