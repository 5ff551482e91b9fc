"""
Exception taxonomy for facility ingestion and rating aggregation.

Batch-fatal conditions (malformed payloads, an unreachable store) propagate to
the caller. Record-local problems (validation failures, duplicates) are
absorbed by the import coordinator and reported in its outcome.
"""

from typing import Optional


class FacilityIngestError(Exception):
    """Base class for all facility pipeline errors."""


class MalformedInput(FacilityIngestError):
    """
    The top-level shape of an import payload is wrong.

    Raised before any record is processed.
    """


class UnsupportedFormat(MalformedInput):
    """The declared source format is not one of the supported formats."""


class ValidationError(FacilityIngestError):
    """
    A single candidate failed the canonical facility schema.

    Attributes:
        field: Name of the first failing field, or None when the candidate
            itself is not a mapping
        message: Human readable reason
    """

    def __init__(self, field: Optional[str], message: str) -> None:
        self.field = field
        self.message = message
        if field:
            super().__init__(f"{field}: {message}")
        else:
            super().__init__(message)


class DuplicateSkipped(FacilityIngestError):
    """
    The store refused an insert because the facility already exists.

    Not an error from the caller's point of view.
    """


class StoreUnavailable(FacilityIngestError):
    """The persistence store could not be reached."""


class FacilityNotFound(FacilityIngestError, LookupError):
    """No facility exists with the requested identifier."""

    def __init__(self, facility_id: int) -> None:
        self.facility_id = facility_id
        super().__init__(f"Facility {facility_id} does not exist")
