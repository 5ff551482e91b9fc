"""
Access to the FACILITY_IMPORT settings block with built-in defaults.
"""

from typing import Any, Dict

from django.conf import settings

DEFAULTS: Dict[str, Any] = {
    # Substituted for missing GeoJSON feature properties
    "GEOJSON_DEFAULTS": {
        "name": "Unknown Facility",
        "type": "other",
        "district": "central",
        "address": "Hong Kong",
    },
    # Per-record diagnostics returned with an import outcome
    "MAX_ERROR_DETAILS": 50,
    # Upper bound for raw payloads accepted over HTTP
    "MAX_PAYLOAD_BYTES": 5 * 1024 * 1024,
}


def get_import_setting(name: str) -> Any:
    """
    Return a FACILITY_IMPORT setting, falling back to the default.
    """
    overrides = getattr(settings, "FACILITY_IMPORT", {}) or {}
    if name not in DEFAULTS:
        raise KeyError(f"Unknown FACILITY_IMPORT setting: {name}")
    return overrides.get(name, DEFAULTS[name])
