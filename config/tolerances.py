"""
Sketcher - Zentralisierte Toleranz-Konfiguration
================================================

Alle numerischen Konstanten des Sketch-Kerns an einem Ort.

Toleranz-Philosophie:
- Auto-Constraints: 5 Welteinheiten (halbe Grid-Größe, gesnappte Punkte werden erkannt)
- Solver-Konvergenz: 1e-4 RMS-Residuum
- Degenerierte Geometrie: 1e-9 .. 1e-7 (Division durch Null vermeiden)

Verwendung:
    from config.tolerances import Tolerances

    # Direkt als Klassenvariablen
    tol = Tolerances.SKETCH_AUTO_COINCIDENCE

    # Oder via Convenience-Funktionen
    from config.tolerances import coincidence_tolerance
    tol = coincidence_tolerance()
"""

import math


class Tolerances:
    """
    Zentrale Toleranz-Konstanten für den Sketcher.

    Kategorien:
    - SKETCH_*: Auto-Constraint Erkennung beim Zeichnen
    - SOLVER_*: Parameter des Gauss-Newton Solvers
    - EPSILON_*: Numerische Stabilität
    - COMPARE_*: Vergleichs-Toleranzen
    """

    # =========================================================================
    # Auto-Constraints (beim Erstellen eines Elements)
    # =========================================================================

    # Chebyshev-Toleranz für Koinzidenz: |dx| <= tol UND |dy| <= tol
    SKETCH_AUTO_COINCIDENCE = 5.0  # Welteinheiten

    # Winkel-Schwelle für Horizontal/Vertikal-Erkennung (Radians)
    SKETCH_AUTO_ANGLE = math.pi / 36  # ~5°

    # Kürzere Linien bekommen keine Achsen-Constraints
    SKETCH_AUTO_MIN_LENGTH = 10.0

    # Implizite Horizontal/Vertikal-Erkennung für bereits exakte Linien
    SKETCH_IMPLICIT_AXIS = 1e-6

    # =========================================================================
    # Constraint-Solver (Damped Gauss-Newton)
    # =========================================================================

    SOLVER_MAX_ITERATIONS = 50

    # Abbruch wenn sqrt(mean(R²)) kleiner ist
    SOLVER_CONVERGENCE = 1e-4

    # Levenberg-Marquardt Dämpfung (auf die Diagonale von JᵀJ)
    SOLVER_DAMPING = 0.01

    # Gewicht der Winkel-Constraints (ANGLE, PARALLEL, PERPENDICULAR)
    SOLVER_ANGLE_STIFFNESS = 100.0

    # Schrittweite für die Finite-Differenzen-Jacobi-Matrix
    SOLVER_FD_STEP = 1e-4

    # Radien werden nach jedem Schritt auf diesen Wert begrenzt
    SOLVER_MIN_RADIUS = 0.1

    # Unterhalb dieser Radius-Differenz wird Innen-Tangenz zu Konzentrizität
    SOLVER_CONCENTRIC_RADIUS_DIFF = 1e-3

    # Grad -> Radians Skalierung der Winkel-Residuen
    SOLVER_DEGREES_PER_RADIAN = 57.3

    # =========================================================================
    # Mathematische Epsilon-Werte (Numerische Stabilität)
    # =========================================================================

    # Quadrierte Linienlänge für Abstands-Residuen
    EPSILON_LENGTH_SQ = 1e-9

    # Vektorbeträge bei Winkel-Residuen (ANGLE)
    EPSILON_MAGNITUDE = 1e-9

    # Vektorbeträge bei PARALLEL / PERPENDICULAR
    EPSILON_DIRECTION = 1e-7

    # Quadrierte Linienlänge bei Tangenz Linie/Kreis
    EPSILON_TANGENT_SQ = 1e-7

    # =========================================================================
    # Vergleichs-Toleranzen
    # =========================================================================

    # Punkt-Vergleich (sind zwei Punkte "gleich"?)
    COMPARE_POINT = 1e-6


# =============================================================================
# Convenience-Funktionen
# =============================================================================

def coincidence_tolerance() -> float:
    """Gibt die Auto-Koinzidenz-Toleranz zurück."""
    return Tolerances.SKETCH_AUTO_COINCIDENCE


def axis_angle_threshold() -> float:
    """Gibt die Horizontal/Vertikal-Schwelle in Radians zurück."""
    return Tolerances.SKETCH_AUTO_ANGLE


# =============================================================================
# Toleranz-Validierung (für Debugging)
# =============================================================================

def validate_tolerances():
    """
    Validiert dass alle Toleranzen sinnvolle Werte haben.
    Nützlich für Tests und Debugging.
    """
    issues = []

    if Tolerances.SKETCH_AUTO_COINCIDENCE <= 0:
        issues.append(f"SKETCH_AUTO_COINCIDENCE muss positiv sein: {Tolerances.SKETCH_AUTO_COINCIDENCE}")

    if not (0 < Tolerances.SKETCH_AUTO_ANGLE < math.pi / 4):
        issues.append(f"SKETCH_AUTO_ANGLE außerhalb sinnvoller Grenzen: {Tolerances.SKETCH_AUTO_ANGLE}")

    if Tolerances.SOLVER_MAX_ITERATIONS < 1:
        issues.append(f"SOLVER_MAX_ITERATIONS zu klein: {Tolerances.SOLVER_MAX_ITERATIONS}")

    # Gröbere Schritte verfälschen die Jacobi-Matrix
    if Tolerances.SOLVER_FD_STEP > 1e-2:
        issues.append(f"SOLVER_FD_STEP zu grob: {Tolerances.SOLVER_FD_STEP}")

    if Tolerances.SOLVER_MIN_RADIUS <= 0:
        issues.append(f"SOLVER_MIN_RADIUS muss positiv sein: {Tolerances.SOLVER_MIN_RADIUS}")

    return issues
