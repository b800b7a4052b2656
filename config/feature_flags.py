"""
Sketcher - Feature Flags
========================

Feature Flags ermöglichen inkrementelle Rollouts und einfaches Rollback.
Neue Features werden mit Flag=False eingeführt und nach Validierung aktiviert.

Diese Datei enthält Debug-Flags, die Solver-Backend-Auswahl und
Verhaltensänderungen, die noch nicht Standard sind.
"""

from typing import Any, Dict

# Feature Flag Registry
# =====================
# HINWEIS: "solver_backend" ist der einzige Nicht-Bool Eintrag. Gültige Werte
# stehen in sketcher.solver_interface.SolverBackendType.

FEATURE_FLAGS: Dict[str, Any] = {
    # Debug-Modi
    "solver_debug": False,  # Residuum pro Iteration loggen (sehr verbose)
    "sketch_debug": False,  # Extract/Apply Zusammenfassungen loggen

    # Solver
    "solver_backend": "gauss_newton",  # "gauss_newton" | "scipy_trf"

    # Auto-Constraints
    "auto_constraints": True,  # Koinzidenz + Horizontal/Vertikal beim Erstellen
    # Rechteck-Ecken und Spline-Endpunkte haben jetzt eindeutige IDs und
    # könnten Koinzidenz-Constraints bekommen. Bisher nur Beschreibung.
    "auto_constraints_indexed_points": False,
}


def is_enabled(flag: str) -> bool:
    """
    Prüft ob ein Feature-Flag aktiviert ist.

    Args:
        flag: Name des Feature-Flags

    Returns:
        True wenn aktiviert, False wenn nicht aktiviert oder unbekannt
    """
    return bool(FEATURE_FLAGS.get(flag, False))


def get_flag(flag: str, default: Any = None) -> Any:
    """Gibt den Rohwert eines Flags zurück (z.B. den Backend-Namen)."""
    return FEATURE_FLAGS.get(flag, default)


def set_flag(flag: str, value: Any) -> None:
    """
    Setzt ein Feature-Flag zur Laufzeit.
    Nützlich für Tests und Debugging.

    Args:
        flag: Name des Feature-Flags
        value: Neuer Wert
    """
    FEATURE_FLAGS[flag] = value


def get_all_flags() -> Dict[str, Any]:
    """Gibt alle Feature-Flags zurück."""
    return FEATURE_FLAGS.copy()
