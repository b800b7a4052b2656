"""
Sketcher - Sketch Object
Fasst Elemente und Constraints zusammen und führt den Solve-Zyklus aus:
Elemente -> Primitive -> Solver -> Elemente
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum, auto
import uuid

from loguru import logger

from .applier import apply_solved_positions
from .auto_constraints import AutoConstraintResult, detect_auto_constraints
from .constraints import Constraint, find_duplicate, make_horizontal, make_vertical
from .errors import PrimitiveReferenceError
from .geometry import SketchElement, element_from_dict
from .primitives import extract_implicit_constraints, extract_solver_primitives
from .solver_interface import ConstraintSolver, SolveStatus, SolverOptions, SolverResult


def rectangle_axis_constraints(elements: List[SketchElement]) -> List[Constraint]:
    """
    Hält Rechtecke beim Solve achsparallel.

    Die vier Ecken sind eigene Solver-Punkte; ohne diese Constraints würde
    jede Kanten-Bemaßung das Rechteck zu einem Viereck verzerren.
    Die Constraints leben nur für einen Solve-Aufruf.
    """
    constraints = []
    for edges in extract_implicit_constraints(elements).rectangle_edges.values():
        constraints.append(make_horizontal(edges[0]))
        constraints.append(make_vertical(edges[1]))
        constraints.append(make_horizontal(edges[2]))
        constraints.append(make_vertical(edges[3]))
    return constraints


class SketchState(Enum):
    """Status des Sketches"""
    EDITING = auto()      # Aktiv, wird bearbeitet
    INVALID = auto()      # Letzter Solve ist fehlgeschlagen


@dataclass
class Sketch:
    """
    2D-Sketch mit Elementen und Constraints

    Solve-Aufrufe pro Sketch müssen serialisiert werden; der Sketch hält
    keine Locks.
    """

    name: str = "Sketch"
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])

    elements: List[SketchElement] = field(default_factory=list)
    constraints: List[Constraint] = field(default_factory=list)

    # Status
    state: SketchState = SketchState.EDITING
    is_dirty: bool = False  # Nachgelagerte Features müssen neu berechnet werden
    is_valid: bool = True
    error_message: Optional[str] = None

    # Solver
    _solver: ConstraintSolver = field(default_factory=ConstraintSolver, repr=False, compare=False)

    # === Elemente ===

    def get_element(self, element_id: str) -> Optional[SketchElement]:
        for element in self.elements:
            if element.id == element_id:
                return element
        return None

    def add_element(self, element: SketchElement, auto_constrain: bool = True) -> AutoConstraintResult:
        """
        Fügt ein fertig gezeichnetes Element hinzu.
        Erkannte Auto-Constraints werden direkt übernommen (ohne Solve).
        """
        existing = list(self.elements)
        self.elements.append(element)
        self.is_dirty = True

        if not auto_constrain:
            return AutoConstraintResult()

        result = detect_auto_constraints(element, existing, self.constraints)
        for c in result.constraints:
            self.add_constraint(c)
        for description in result.descriptions:
            logger.info(f"[Sketch] Auto-Constraint: {description}")
        return result

    def update_element(self, element: SketchElement, solve: bool = True) -> Optional[SolverResult]:
        """
        Ersetzt ein Element gleicher ID (z.B. nach Drag) und löst optional neu.

        Raises:
            PrimitiveReferenceError: wenn kein Element mit dieser ID existiert
        """
        for i, existing in enumerate(self.elements):
            if existing.id == element.id:
                self.elements[i] = element
                break
        else:
            raise PrimitiveReferenceError("Element", element.id, self.name)

        self.is_dirty = True
        if solve and self.constraints:
            return self.solve()
        return None

    def remove_element(self, element_id: str) -> int:
        """
        Entfernt ein Element und alle Constraints, die seine Primitive referenzieren.

        Returns:
            Anzahl der entfernten Constraints
        """
        element = self.get_element(element_id)
        if element is None:
            return 0

        primitives = extract_solver_primitives([element])
        owned = {p.id for p in primitives.points}
        owned.update(line.id for line in primitives.lines)
        owned.update(c.id for c in primitives.circles)

        to_remove = [c for c in self.constraints if owned.intersection(c.references())]
        for c in to_remove:
            self.constraints.remove(c)

        self.elements.remove(element)
        self.is_dirty = True
        return len(to_remove)

    # === Constraints ===

    def get_constraint(self, constraint_id: str) -> Optional[Constraint]:
        for c in self.constraints:
            if c.id == constraint_id:
                return c
        return None

    def add_constraint(self, constraint: Constraint) -> Optional[Constraint]:
        """Fügt einen Constraint hinzu. Duplikate und ungültige Constraints werden abgelehnt."""
        error = constraint.validation_error()
        if error:
            logger.warning(f"[Sketch] Constraint abgelehnt: {error}")
            return None
        if find_duplicate(constraint, self.constraints) is not None:
            logger.debug(f"[Sketch] Duplikat ignoriert: {constraint!r}")
            return None
        self.constraints.append(constraint)
        self.is_dirty = True
        return constraint

    def remove_constraint(self, constraint_id: str) -> bool:
        """Entfernt einen Constraint"""
        c = self.get_constraint(constraint_id)
        if c is None:
            return False
        self.constraints.remove(c)
        self.is_dirty = True
        return True

    def update_constraint_value(self, constraint_id: str, value: Optional[float]) -> bool:
        """Setzt den Sollwert eines Dimensions-Constraints"""
        c = self.get_constraint(constraint_id)
        if c is None:
            return False
        c.value = value
        self.is_dirty = True
        return True

    def clear_constraints(self):
        """Entfernt alle Constraints"""
        self.constraints.clear()
        self.is_dirty = True

    # === Constraint-Solver ===

    def solve(self, options: Optional[SolverOptions] = None) -> Optional[SolverResult]:
        """
        Löst alle Constraints und schreibt die Positionen zurück.

        Jeder Fehler im Zyklus markiert den Sketch als ungültig statt zu propagieren.

        Returns:
            SolverResult, oder None wenn der Zyklus fehlgeschlagen ist
        """
        try:
            primitives = extract_solver_primitives(self.elements)
            constraints = list(self.constraints)
            if any(c.enabled for c in constraints):
                constraints += rectangle_axis_constraints(self.elements)
            result = self._solver.solve(
                primitives.points, constraints, primitives.lines, primitives.circles, options
            )
            if result.status != SolveStatus.NO_CONSTRAINTS:
                self.elements = apply_solved_positions(self.elements, result.points, result.circles)
        except Exception as e:
            self.is_valid = False
            self.state = SketchState.INVALID
            self.error_message = f"Constraint solver error: {e}"
            logger.error(f"[Sketch] {self.name}: {self.error_message}")
            return None

        if not result.success and result.status != SolveStatus.NO_CONSTRAINTS:
            logger.warning(f"[Sketch] {self.name}: {result.message}")

        self.is_valid = True
        self.state = SketchState.EDITING
        self.error_message = None
        self.is_dirty = True
        return result

    # === Serialisierung ===

    def to_dict(self) -> Dict[str, Any]:
        """Konvertiert zu Dictionary (für Speichern/Undo)"""
        return {
            'name': self.name,
            'id': self.id,
            'elements': [e.to_dict() for e in self.elements],
            'constraints': [c.to_dict() for c in self.constraints],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Sketch':
        """Erstellt Sketch aus Dictionary"""
        sketch = cls(name=data.get('name', 'Sketch'))
        sketch.id = data.get('id', sketch.id)
        sketch.elements = [element_from_dict(d) for d in data.get('elements', [])]
        sketch.constraints = [Constraint.from_dict(d) for d in data.get('constraints', [])]
        return sketch

    def __repr__(self):
        return (f"Sketch('{self.name}', {len(self.elements)} elements, "
                f"{len(self.constraints)} constraints)")
