"""
Sketcher - Zentrale Versionsverwaltung
======================================

Import: from config.version import VERSION, VERSION_STRING, APP_NAME
"""

# Haupt-Versionsnummer (Semantic Versioning: MAJOR.MINOR.PATCH)
VERSION_MAJOR = 0
VERSION_MINOR = 1
VERSION_PATCH = 0

# Release-Typ: "alpha", "beta", "rc1", "" (leer für stable release)
VERSION_SUFFIX = "alpha"

APP_NAME = "Sketcher"

# Abgeleitete Strings
VERSION = f"{VERSION_MAJOR}.{VERSION_MINOR}.{VERSION_PATCH}"
VERSION_STRING = f"{VERSION}-{VERSION_SUFFIX}" if VERSION_SUFFIX else VERSION
VERSION_FULL = f"v{VERSION_STRING}"
