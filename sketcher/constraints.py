"""
Sketcher - Constraint System
Geometrische Constraints zwischen Solver-Primitiven.

Constraints referenzieren Primitive ausschließlich über ihre IDs
(siehe sketcher.primitives: "{element}_start", "{element}_line", ...).
Welche Residuen der Solver erzeugt, hängt vom Typ UND vom Muster der
Referenzen ab (z.B. DISTANCE mit 2 Punkten vs. Linie + Kreis).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum, auto
import uuid


class ConstraintType(Enum):
    """Verfügbare Constraint-Typen"""
    # Orientierung
    HORIZONTAL = auto()         # Linie oder 2 Punkte horizontal
    VERTICAL = auto()           # Linie oder 2 Punkte vertikal

    # Topologie
    COINCIDENT = auto()         # Punkt/Punkt, Punkt auf Linie, Kreis auf Linie, ...

    # Maß-Constraints (Dimensionen)
    DISTANCE = auto()           # Länge, Abstand Punkt/Punkt, Linie/Kreis, Kreis/Kreis
    RADIUS = auto()             # Radius eines Kreises
    ANGLE = auto()              # Winkel (Grad) einer Linie oder zwischen zwei Linien

    # Linien-Beziehungen
    PARALLEL = auto()
    PERPENDICULAR = auto()
    EQUAL_LENGTH = auto()

    # Kreis-Beziehungen
    TANGENT = auto()            # Linie/Kreis, Kreis/Kreis, Punkt/Kreis
    CONCENTRIC = auto()

    MIDPOINT = auto()           # Punkt auf Mitte einer Linie
    FIXED = auto()              # Punkt (oder Kreismittelpunkt) fixiert


# Mindestanzahl referenzierter Primitive pro Typ
_MIN_REFERENCES = {
    ConstraintType.HORIZONTAL: 1,
    ConstraintType.VERTICAL: 1,
    ConstraintType.COINCIDENT: 2,
    ConstraintType.DISTANCE: 1,
    ConstraintType.RADIUS: 1,
    ConstraintType.ANGLE: 1,
    ConstraintType.PARALLEL: 2,
    ConstraintType.PERPENDICULAR: 2,
    ConstraintType.EQUAL_LENGTH: 2,
    ConstraintType.TANGENT: 2,
    ConstraintType.CONCENTRIC: 2,
    ConstraintType.MIDPOINT: 2,
    ConstraintType.FIXED: 1,
}

# Typen mit Sollwert (value=None wird als 0 behandelt)
DIMENSION_TYPES = frozenset({ConstraintType.DISTANCE, ConstraintType.RADIUS, ConstraintType.ANGLE})


def _new_constraint_id() -> str:
    return str(uuid.uuid4())[:8]


@dataclass
class Constraint:
    """Constraint zwischen Solver-Primitiven (über IDs referenziert)"""
    type: ConstraintType
    id: str = field(default_factory=_new_constraint_id)
    points: List[str] = field(default_factory=list)
    lines: List[str] = field(default_factory=list)
    circles: List[str] = field(default_factory=list)
    value: Optional[float] = None  # Für DISTANCE / RADIUS / ANGLE (Grad)
    enabled: bool = True  # Deaktivierte Constraints ignoriert der Solver

    def __repr__(self):
        refs = ", ".join(self.references())
        val_str = f"={self.value}" if self.value is not None else ""
        return f"{self.type.name}{val_str}({refs})"

    @property
    def target(self) -> float:
        """Sollwert; None zählt als 0."""
        return float(self.value) if self.value is not None else 0.0

    def references(self) -> List[str]:
        """Alle referenzierten Primitive-IDs (Punkte, Linien, Kreise)."""
        return list(self.points) + list(self.lines) + list(self.circles)

    def is_valid(self) -> bool:
        """Prüft ob genug Primitive referenziert sind."""
        return self.validation_error() is None

    def validation_error(self) -> Optional[str]:
        """Gibt eine Fehlermeldung zurück wenn der Constraint ungültig ist, sonst None."""
        required = _MIN_REFERENCES.get(self.type, 1)
        actual = len(self.references())
        if actual < required:
            return f"{self.type.name} benötigt {required} Referenzen, hat aber nur {actual}"
        return None

    def same_as(self, other: 'Constraint') -> bool:
        """
        Ungeordnete Äquivalenz: gleicher Typ, gleiche Referenzen (Reihenfolge egal)
        und gleicher Sollwert. Dient der Duplikat-Erkennung.
        """
        if self.type != other.type:
            return False
        if sorted(self.points) != sorted(other.points):
            return False
        if sorted(self.lines) != sorted(other.lines):
            return False
        if sorted(self.circles) != sorted(other.circles):
            return False
        if self.type in DIMENSION_TYPES:
            return abs(self.target - other.target) < 1e-9
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.name,
            "id": self.id,
            "points": list(self.points),
            "lines": list(self.lines),
            "circles": list(self.circles),
            "value": self.value,
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'Constraint':
        value = d.get("value")
        return cls(
            type=ConstraintType[d["type"]],
            id=d.get("id") or _new_constraint_id(),
            points=list(d.get("points", [])),
            lines=list(d.get("lines", [])),
            circles=list(d.get("circles", [])),
            value=float(value) if value is not None else None,
            enabled=d.get("enabled", True),
        )


# === Constraint-Factories ===

def make_fixed(point: Optional[str] = None, circle: Optional[str] = None) -> Constraint:
    """Punkt fixieren (bei Kreisen: den Mittelpunkt)"""
    return Constraint(
        type=ConstraintType.FIXED,
        points=[point] if point else [],
        circles=[circle] if circle else [],
    )


def make_coincident(p1: str, p2: str) -> Constraint:
    """Zwei Punkte zusammenfallen lassen"""
    return Constraint(type=ConstraintType.COINCIDENT, points=[p1, p2])


def make_point_on_line(point: str, line: str) -> Constraint:
    """Punkt auf (unendlicher) Linie"""
    return Constraint(type=ConstraintType.COINCIDENT, points=[point], lines=[line])


def make_horizontal(line: str) -> Constraint:
    """Linie horizontal"""
    return Constraint(type=ConstraintType.HORIZONTAL, lines=[line])


def make_vertical(line: str) -> Constraint:
    """Linie vertikal"""
    return Constraint(type=ConstraintType.VERTICAL, lines=[line])


def make_parallel(l1: str, l2: str) -> Constraint:
    """Zwei Linien parallel"""
    return Constraint(type=ConstraintType.PARALLEL, lines=[l1, l2])


def make_perpendicular(l1: str, l2: str) -> Constraint:
    """Zwei Linien senkrecht"""
    return Constraint(type=ConstraintType.PERPENDICULAR, lines=[l1, l2])


def make_equal_length(l1: str, l2: str) -> Constraint:
    """Zwei Linien gleich lang"""
    return Constraint(type=ConstraintType.EQUAL_LENGTH, lines=[l1, l2])


def make_concentric(c1: str, c2: str) -> Constraint:
    """Kreise/Bögen konzentrisch"""
    return Constraint(type=ConstraintType.CONCENTRIC, circles=[c1, c2])


def make_tangent(c1: str, c2: str) -> Constraint:
    """Zwei Kreise tangential (innen oder außen, je nach Ausgangslage)"""
    return Constraint(type=ConstraintType.TANGENT, circles=[c1, c2])


def make_tangent_line_circle(line: str, circle: str) -> Constraint:
    """Linie tangential an Kreis"""
    return Constraint(type=ConstraintType.TANGENT, lines=[line], circles=[circle])


def make_point_on_circle(point: str, circle: str) -> Constraint:
    """Punkt auf Kreisumfang"""
    return Constraint(type=ConstraintType.TANGENT, points=[point], circles=[circle])


def make_midpoint(point: str, line: str) -> Constraint:
    """Punkt auf Mittelpunkt einer Linie"""
    return Constraint(type=ConstraintType.MIDPOINT, points=[point], lines=[line])


# === Dimension-Constraints ===

def make_length(line: str, length: float) -> Constraint:
    """Länge einer Linie festlegen"""
    return Constraint(type=ConstraintType.DISTANCE, lines=[line], value=length)


def make_distance(p1: str, p2: str, distance: float) -> Constraint:
    """Abstand zwischen zwei Punkten"""
    return Constraint(type=ConstraintType.DISTANCE, points=[p1, p2], value=distance)


def make_distance_point_line(point: str, line: str, distance: float) -> Constraint:
    """Abstand Punkt zu Linie"""
    return Constraint(type=ConstraintType.DISTANCE, points=[point], lines=[line], value=distance)


def make_distance_line_circle(line: str, circle: str, distance: float) -> Constraint:
    """Abstand Linie zu Kreisumfang"""
    return Constraint(type=ConstraintType.DISTANCE, lines=[line], circles=[circle], value=distance)


def make_distance_circles(c1: str, c2: str, distance: float) -> Constraint:
    """Abstand zwischen zwei Kreisumfängen"""
    return Constraint(type=ConstraintType.DISTANCE, circles=[c1, c2], value=distance)


def make_angle(l1: str, l2: str, angle_deg: float) -> Constraint:
    """Winkel zwischen zwei Linien (Grad)"""
    return Constraint(type=ConstraintType.ANGLE, lines=[l1, l2], value=angle_deg)


def make_line_angle(line: str, angle_deg: float) -> Constraint:
    """Winkel einer Linie zur X-Achse (Grad)"""
    return Constraint(type=ConstraintType.ANGLE, lines=[line], value=angle_deg)


def make_radius(circle: str, radius: float) -> Constraint:
    """Radius festlegen"""
    return Constraint(type=ConstraintType.RADIUS, circles=[circle], value=radius)


def find_duplicate(constraint: Constraint, existing: List[Constraint]) -> Optional[Constraint]:
    """Gibt den ersten äquivalenten Constraint aus existing zurück (oder None)."""
    for c in existing:
        if c.same_as(constraint):
            return c
    return None
