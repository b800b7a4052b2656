"""
Sketcher - Configuration Module
===============================

Zentrale Konfiguration für Toleranzen, Solver-Parameter und Feature Flags.
"""

from .tolerances import Tolerances, coincidence_tolerance, axis_angle_threshold
from .feature_flags import is_enabled, get_flag, set_flag, get_all_flags, FEATURE_FLAGS
from .version import VERSION, VERSION_STRING
