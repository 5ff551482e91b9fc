"""
Services package for facility data processing.

This package contains the format adapters, schema validation, duplicate
detection, import coordination and rating aggregation for sports facilities
imported from JSON, GeoJSON and CSV sources.
"""

from .dedup import DeduplicationGate
from .exceptions import (
    DuplicateSkipped,
    FacilityIngestError,
    FacilityNotFound,
    MalformedInput,
    StoreUnavailable,
    UnsupportedFormat,
    ValidationError,
)
from .importer import FacilityImporter
from .parsers import ParsedPayload, parse_csv, parse_geojson, parse_json, parse_payload
from .ratings import RatingAggregator, RecomputeResult
from .repository import DjangoFacilityRepository, FacilityRepository, RatingSummary
from .schemas import (
    FacilityPayload,
    ImportOutcome,
    RecordError,
    safe_validate_facility,
    validate_facility,
)

__all__ = [
    "DeduplicationGate",
    "DjangoFacilityRepository",
    "DuplicateSkipped",
    "FacilityImporter",
    "FacilityIngestError",
    "FacilityNotFound",
    "FacilityPayload",
    "FacilityRepository",
    "ImportOutcome",
    "MalformedInput",
    "ParsedPayload",
    "RatingAggregator",
    "RatingSummary",
    "RecomputeResult",
    "RecordError",
    "StoreUnavailable",
    "UnsupportedFormat",
    "ValidationError",
    "parse_csv",
    "parse_geojson",
    "parse_json",
    "parse_payload",
    "safe_validate_facility",
    "validate_facility",
]
