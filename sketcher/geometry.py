"""
Sketcher - Sketch-Elemente
Linien, H/V-Linien, Rechtecke, Kreise, Bögen und Splines wie sie der Benutzer zeichnet.

Jedes Element trägt ein ``kind`` (ElementType). Extraktion und Rückschreiben
dispatchen über dieses Tag, nicht über isinstance-Ketten.
Winkel von Bögen sind in Radians.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple, Union
from enum import Enum
import math
import uuid

from .errors import UnknownElementError


def _new_id() -> str:
    return str(uuid.uuid4())[:8]


class ElementType(Enum):
    """Element-Typen (Wert = Serialisierungs-Tag)"""
    LINE = "line"
    HLINE = "hline"
    VLINE = "vline"
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    ARC = "arc"
    SPLINE = "spline"


@dataclass
class Point2D:
    """2D-Koordinate eines Elements"""
    x: float = 0.0
    y: float = 0.0

    def __post_init__(self):
        """
        FIREWALL: Wandelt alles sofort in native Python-Floats um.
        Schützt vor NumPy-Skalaren aus dem Solver.
        """
        self.x = _coerce_scalar(self.x)
        self.y = _coerce_scalar(self.y)

    def distance_to(self, other: 'Point2D') -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, d) -> 'Point2D':
        if isinstance(d, (list, tuple)):
            return cls(d[0], d[1])
        return cls(d["x"], d["y"])

    def __repr__(self):
        return f"P({self.x:.2f}, {self.y:.2f})"


def _coerce_scalar(value) -> float:
    # NumPy-Skalare: .item() nur nutzen, wenn wirklich aufrufbar
    item_attr = getattr(value, "item", None)
    if callable(item_attr):
        value = item_attr()
    return float(value)


@dataclass
class LineElement:
    """Freie Linie zwischen zwei Punkten"""
    start: Point2D
    end: Point2D
    id: str = field(default_factory=_new_id)
    kind: ElementType = field(default=ElementType.LINE, init=False)

    @property
    def length(self) -> float:
        return self.start.distance_to(self.end)

    def to_dict(self) -> dict:
        return {
            "type": self.kind.value,
            "id": self.id,
            "start": self.start.to_dict(),
            "end": self.end.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: dict) -> 'LineElement':
        return cls(Point2D.from_dict(d["start"]), Point2D.from_dict(d["end"]), id=d["id"])

    def __repr__(self):
        return f"Line({self.start} -> {self.end})"


@dataclass
class HLineElement:
    """Horizontale Linie: Start + vorzeichenbehaftete Länge entlang X"""
    start: Point2D
    length: float = 10.0
    id: str = field(default_factory=_new_id)
    kind: ElementType = field(default=ElementType.HLINE, init=False)

    @property
    def end(self) -> Point2D:
        return Point2D(self.start.x + self.length, self.start.y)

    def to_dict(self) -> dict:
        return {"type": self.kind.value, "id": self.id, "start": self.start.to_dict(), "length": self.length}

    @classmethod
    def from_dict(cls, d: dict) -> 'HLineElement':
        return cls(Point2D.from_dict(d["start"]), float(d["length"]), id=d["id"])

    def __repr__(self):
        return f"HLine({self.start}, len={self.length:.2f})"


@dataclass
class VLineElement:
    """Vertikale Linie: Start + vorzeichenbehaftete Länge entlang Y"""
    start: Point2D
    length: float = 10.0
    id: str = field(default_factory=_new_id)
    kind: ElementType = field(default=ElementType.VLINE, init=False)

    @property
    def end(self) -> Point2D:
        return Point2D(self.start.x, self.start.y + self.length)

    def to_dict(self) -> dict:
        return {"type": self.kind.value, "id": self.id, "start": self.start.to_dict(), "length": self.length}

    @classmethod
    def from_dict(cls, d: dict) -> 'VLineElement':
        return cls(Point2D.from_dict(d["start"]), float(d["length"]), id=d["id"])

    def __repr__(self):
        return f"VLine({self.start}, len={self.length:.2f})"


@dataclass
class RectangleElement:
    """Achsparalleles Rechteck aus zwei gegenüberliegenden Ecken"""
    start: Point2D
    end: Point2D
    id: str = field(default_factory=_new_id)
    kind: ElementType = field(default=ElementType.RECTANGLE, init=False)

    @property
    def corners(self) -> List[Point2D]:
        """Ecken in Umlaufreihenfolge: start, (end.x, start.y), end, (start.x, end.y)"""
        return [
            Point2D(self.start.x, self.start.y),
            Point2D(self.end.x, self.start.y),
            Point2D(self.end.x, self.end.y),
            Point2D(self.start.x, self.end.y),
        ]

    @property
    def width(self) -> float:
        return abs(self.end.x - self.start.x)

    @property
    def height(self) -> float:
        return abs(self.end.y - self.start.y)

    def to_dict(self) -> dict:
        return {
            "type": self.kind.value,
            "id": self.id,
            "start": self.start.to_dict(),
            "end": self.end.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: dict) -> 'RectangleElement':
        return cls(Point2D.from_dict(d["start"]), Point2D.from_dict(d["end"]), id=d["id"])

    def __repr__(self):
        return f"Rect({self.start}, {self.width:.2f}x{self.height:.2f})"


@dataclass
class CircleElement:
    """2D-Kreis"""
    center: Point2D
    radius: float = 10.0
    id: str = field(default_factory=_new_id)
    kind: ElementType = field(default=ElementType.CIRCLE, init=False)

    @property
    def diameter(self) -> float:
        return self.radius * 2

    def to_dict(self) -> dict:
        return {"type": self.kind.value, "id": self.id, "center": self.center.to_dict(), "radius": self.radius}

    @classmethod
    def from_dict(cls, d: dict) -> 'CircleElement':
        return cls(Point2D.from_dict(d["center"]), float(d["radius"]), id=d["id"])

    def __repr__(self):
        return f"Circle(center={self.center}, r={self.radius:.2f})"


@dataclass
class ArcElement:
    """2D-Kreisbogen (Winkel in Radians)"""
    center: Point2D
    radius: float = 10.0
    start_angle: float = 0.0
    end_angle: float = math.pi / 2
    id: str = field(default_factory=_new_id)
    kind: ElementType = field(default=ElementType.ARC, init=False)

    def point_at_angle(self, angle: float) -> Point2D:
        return Point2D(
            self.center.x + self.radius * math.cos(angle),
            self.center.y + self.radius * math.sin(angle)
        )

    @property
    def start_point(self) -> Point2D:
        """Startpunkt des Bogens"""
        return self.point_at_angle(self.start_angle)

    @property
    def end_point(self) -> Point2D:
        """Endpunkt des Bogens"""
        return self.point_at_angle(self.end_angle)

    def to_dict(self) -> dict:
        return {
            "type": self.kind.value,
            "id": self.id,
            "center": self.center.to_dict(),
            "radius": self.radius,
            "start_angle": self.start_angle,
            "end_angle": self.end_angle,
        }

    @classmethod
    def from_dict(cls, d: dict) -> 'ArcElement':
        return cls(
            Point2D.from_dict(d["center"]),
            float(d["radius"]),
            float(d["start_angle"]),
            float(d["end_angle"]),
            id=d["id"],
        )

    def __repr__(self):
        return (f"Arc(center={self.center}, r={self.radius:.2f}, "
                f"{math.degrees(self.start_angle):.1f}°-{math.degrees(self.end_angle):.1f}°)")


@dataclass
class SplineElement:
    """Spline über Kontrollpunkte"""
    points: List[Point2D] = field(default_factory=list)
    id: str = field(default_factory=_new_id)
    kind: ElementType = field(default=ElementType.SPLINE, init=False)

    def to_dict(self) -> dict:
        return {"type": self.kind.value, "id": self.id, "points": [p.to_dict() for p in self.points]}

    @classmethod
    def from_dict(cls, d: dict) -> 'SplineElement':
        return cls([Point2D.from_dict(p) for p in d.get("points", [])], id=d["id"])

    def __repr__(self):
        return f"Spline({len(self.points)} Kontrollpunkte)"


SketchElement = Union[
    LineElement, HLineElement, VLineElement, RectangleElement,
    CircleElement, ArcElement, SplineElement,
]

_ELEMENT_CLASSES: Dict[ElementType, type] = {
    ElementType.LINE: LineElement,
    ElementType.HLINE: HLineElement,
    ElementType.VLINE: VLineElement,
    ElementType.RECTANGLE: RectangleElement,
    ElementType.CIRCLE: CircleElement,
    ElementType.ARC: ArcElement,
    ElementType.SPLINE: SplineElement,
}


def element_from_dict(d: dict) -> SketchElement:
    """Erstellt ein Element aus seinem Dictionary (Gegenstück zu to_dict)."""
    try:
        kind = ElementType(d.get("type"))
    except ValueError:
        raise UnknownElementError(f"Unbekannter Element-Typ: {d.get('type')!r}") from None
    return _ELEMENT_CLASSES[kind].from_dict(d)
