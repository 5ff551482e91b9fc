"""
Pydantic schemas for facility data validation.

This module defines the canonical facility shape that every imported record
must satisfy before it is persisted, and the result model returned by an
import batch.
"""

import logging
from collections.abc import Mapping
from datetime import time
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    field_validator,
    model_validator,
)
from pydantic.types import constr

from ..choices import District, FacilityType
from .exceptions import ValidationError
from .normalizers import coerce_to_str_list, quantize_coordinate

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "type", "district", "address", "latitude", "longitude")


class FacilityPayload(BaseModel):
    """
    Pydantic model for a validated facility record.

    Accepts both the external camelCase keys (``openTime``) and the
    internal snake_case names (``open_time``). ``model_dump()`` returns the
    snake_case names used by the Facility model.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: constr(strip_whitespace=True, min_length=1, max_length=255) = Field(
        ..., description="Display name of the facility"
    )

    type: FacilityType = Field(..., description="Sport type")

    district: District = Field(..., description="District the facility is in")

    address: constr(strip_whitespace=True, min_length=1, max_length=500) = Field(
        ..., description="Street address"
    )

    latitude: Decimal = Field(
        ..., ge=Decimal("-90"), le=Decimal("90"), description="Latitude (-90 to 90)"
    )

    longitude: Decimal = Field(
        ...,
        ge=Decimal("-180"),
        le=Decimal("180"),
        description="Longitude (-180 to 180)",
    )

    description: Optional[str] = None
    open_time: Optional[time] = Field(default=None, alias="openTime")
    close_time: Optional[time] = Field(default=None, alias="closeTime")
    contact_phone: Optional[constr(max_length=64)] = Field(
        default=None, alias="contactPhone"
    )
    image_url: Optional[constr(max_length=500)] = Field(default=None, alias="imageUrl")
    courts: Optional[int] = Field(default=None, ge=0)
    amenities: Optional[List[str]] = None
    age_restriction: Optional[constr(max_length=64)] = Field(
        default=None, alias="ageRestriction"
    )
    gender_suitability: Optional[constr(max_length=64)] = Field(
        default=None, alias="genderSuitability"
    )

    @model_validator(mode="before")
    @classmethod
    def drop_blank_values(cls, data: Any) -> Any:
        """
        Treat None and blank strings as absent so that required fields
        report as missing and optional fields fall back to None.
        """
        if not isinstance(data, Mapping):
            return data

        return {
            key: value
            for key, value in data.items()
            if value is not None and not (isinstance(value, str) and not value.strip())
        }

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def quantize_coordinates(cls, v: Any) -> Decimal:
        return quantize_coordinate(v)

    @field_validator("amenities", mode="before")
    @classmethod
    def coerce_amenities(cls, v: Any) -> Any:
        """
        Accept "a, b" and '["a", "b"]' strings as well as lists of strings.
        """
        if isinstance(v, str):
            return coerce_to_str_list(v)
        if isinstance(v, (list, tuple)) and all(isinstance(item, str) for item in v):
            return coerce_to_str_list(list(v))
        return v

    @field_validator("description", "contact_phone", "image_url", "age_restriction",
                     "gender_suitability", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @property
    def identity_key(self) -> Tuple[str, Decimal, Decimal]:
        """Key used to detect an already imported facility."""
        return self.name, self.latitude, self.longitude

    def model_post_init(self, __context) -> None:
        logger.debug(
            f"Validated facility: {self.name} ({self.type}, {self.district}) "
            f"at {self.latitude},{self.longitude}"
        )


_ALIAS_TO_FIELD = {
    (info.alias or name): name for name, info in FacilityPayload.model_fields.items()
}
_FIELD_ORDER = list(FacilityPayload.model_fields)


def _error_rank(error: Dict[str, Any]) -> Tuple[int, int]:
    """
    Rank a pydantic error by validation stage, then by field order.

    Stages: required-field presence, type enum, district enum, coordinate
    ranges, everything else.
    """
    loc = error.get("loc") or ("",)
    field = _ALIAS_TO_FIELD.get(str(loc[0]), str(loc[0]))
    position = _FIELD_ORDER.index(field) if field in _FIELD_ORDER else len(_FIELD_ORDER)

    if error.get("type") == "missing":
        stage = 0
    elif field == "type":
        stage = 1
    elif field == "district":
        stage = 2
    elif field in ("latitude", "longitude"):
        stage = 3
    else:
        stage = 4

    return stage, position


def _first_error(exc: PydanticValidationError) -> ValidationError:
    error = min(exc.errors(), key=_error_rank)
    loc = error.get("loc") or ()
    field = str(loc[0]) if loc else None
    return ValidationError(field, error.get("msg", "Invalid value"))


def validate_facility(candidate: Any, source: str = "unknown") -> FacilityPayload:
    """
    Validate a facility candidate against the canonical schema.

    Args:
        candidate: Raw candidate produced by a format adapter
        source: Source description for logging context

    Returns:
        Validated FacilityPayload instance

    Raises:
        ValidationError: Naming the first failing field
    """
    if not isinstance(candidate, Mapping):
        logger.warning(
            f"Validation failed for record in {source}: expected an object, "
            f"got {type(candidate).__name__}"
        )
        raise ValidationError(None, "Facility record must be an object")

    try:
        return FacilityPayload.model_validate(dict(candidate))

    except PydanticValidationError as e:
        name = candidate.get("name", "unnamed")
        logger.warning(
            f"Validation failed for facility '{name}' in {source}: "
            f"{e.error_count()} errors"
        )

        for error in e.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            logger.debug(
                f"  Field '{field}': {error['msg']} "
                f"(input: {error.get('input', 'N/A')})"
            )

        raise _first_error(e) from e


def safe_validate_facility(
    candidate: Any, source: str = "unknown"
) -> Optional[FacilityPayload]:
    """
    Validate a facility candidate, returning None if validation fails.
    """
    try:
        return validate_facility(candidate, source)
    except ValidationError:
        # Already logged in validate_facility
        return None


class RecordError(BaseModel):
    """
    Diagnostic for one rejected record.
    """

    index: int = Field(..., description="Zero-based position in the batch")
    field: Optional[str] = Field(default=None, description="First failing field")
    message: str


class ImportOutcome(BaseModel):
    """
    Result of one import batch.
    """

    imported_count: int = Field(default=0, description="Facilities inserted")
    error_count: int = Field(default=0, description="Records that failed")
    skipped_duplicates: int = Field(
        default=0, description="Records matching an existing facility"
    )
    dropped_count: int = Field(
        default=0, description="Entries dropped by the adapter"
    )
    errors: List[RecordError] = Field(default_factory=list)

    @property
    def total_processed(self) -> int:
        return self.imported_count + self.error_count + self.skipped_duplicates

    def as_response(self) -> Dict[str, Any]:
        """
        Render the outcome with the camelCase keys used by the HTTP API.
        """
        return {
            "importedCount": self.imported_count,
            "errorCount": self.error_count,
            "skippedDuplicates": self.skipped_duplicates,
            "droppedCount": self.dropped_count,
            "errors": [error.model_dump() for error in self.errors],
        }
