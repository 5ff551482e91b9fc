"""
Format adapters for facility import payloads.

This module turns JSON arrays, GeoJSON FeatureCollections and CSV text into
loosely-typed facility candidates. Adapters never validate records; they only
fail the whole call when the top-level shape of the payload is wrong.
"""

import csv
import io
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Union

from .config import get_import_setting
from .exceptions import MalformedInput, UnsupportedFormat
from .normalizers import coerce_to_float, coerce_to_int, coerce_to_str_list

logger = logging.getLogger(__name__)

RawPayload = Union[str, bytes, bytearray, List[Any], Dict[str, Any]]

# CSV columns converted to numbers before validation
CSV_FLOAT_FIELDS = ("latitude", "longitude")
CSV_INT_FIELDS = ("courts",)

# GeoJSON properties copied onto the candidate as-is
GEOJSON_PROPERTIES = (
    "description",
    "openTime",
    "closeTime",
    "contactPhone",
    "imageUrl",
    "amenities",
    "ageRestriction",
    "genderSuitability",
)


@dataclass
class ParsedPayload:
    """
    Candidates extracted from one payload.

    Attributes:
        candidates: Candidate records in input order
        dropped_count: Input entries the adapter discarded
    """

    candidates: List[Any] = field(default_factory=list)
    dropped_count: int = 0

    def __len__(self) -> int:
        return len(self.candidates)


def _decode(raw: RawPayload, fmt: str) -> Any:
    """
    Decode JSON text, passing already decoded values through.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise MalformedInput(f"{fmt} payload is not valid UTF-8: {e}") from e

    if not isinstance(raw, str):
        return raw

    content = raw.strip()
    if not content:
        raise MalformedInput(f"{fmt} payload is empty")

    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise MalformedInput(f"{fmt} payload is not valid JSON: {e}") from e


def parse_json(raw: RawPayload) -> ParsedPayload:
    """
    Parse a JSON array of facility objects.

    Expected JSON structure:
    - Array of objects: [{name, type, district, address, latitude, ...}, ...]

    Args:
        raw: JSON text, bytes, or an already decoded list

    Returns:
        ParsedPayload with one candidate per array item

    Raises:
        MalformedInput: If the payload is not JSON or not an array
    """
    data = _decode(raw, "JSON")

    if not isinstance(data, list):
        logger.error(f"Unexpected JSON structure: {type(data).__name__}")
        raise MalformedInput(
            "Import payload must contain an array of facilities, "
            f"got {type(data).__name__}"
        )

    logger.info(f"Parsed {len(data)} JSON records")
    return ParsedPayload(candidates=list(data))


def _point_coordinates(feature: Any) -> Union[List[Any], None]:
    """
    Return [longitude, latitude] for a Point feature, or None.
    """
    if not isinstance(feature, dict):
        return None

    geometry = feature.get("geometry")
    if not isinstance(geometry, dict) or geometry.get("type") != "Point":
        return None

    coordinates = geometry.get("coordinates")
    if not isinstance(coordinates, list) or len(coordinates) != 2:
        return None

    return coordinates


def _feature_to_candidate(
    feature: Dict[str, Any], coordinates: List[Any], defaults: Dict[str, str]
) -> Dict[str, Any]:
    props = feature.get("properties") or {}
    if not isinstance(props, dict):
        props = {}

    # Coordinate order in GeoJSON is [longitude, latitude]
    longitude, latitude = coordinates

    candidate = {
        "name": props.get("name") or defaults["name"],
        "type": props.get("type") or defaults["type"],
        "district": props.get("district") or defaults["district"],
        "address": props.get("address") or defaults["address"],
        "latitude": latitude,
        "longitude": longitude,
    }

    for key in GEOJSON_PROPERTIES:
        if props.get(key) is not None:
            candidate[key] = props[key]

    courts = props.get("courts")
    if courts not in (None, ""):
        parsed = coerce_to_int(courts)
        candidate["courts"] = parsed if parsed is not None else courts

    return candidate


def parse_geojson(raw: RawPayload) -> ParsedPayload:
    """
    Parse a GeoJSON FeatureCollection of Point features.

    Features without a Point geometry and a [longitude, latitude] pair are
    dropped and counted, never raised. Missing properties get the configured
    defaults (type "other", district "central", address "Hong Kong").

    Args:
        raw: GeoJSON text, bytes, or an already decoded dict

    Returns:
        ParsedPayload with one candidate per usable feature

    Raises:
        MalformedInput: If the payload is not a FeatureCollection
    """
    data = _decode(raw, "GeoJSON")

    if (
        not isinstance(data, dict)
        or data.get("type") != "FeatureCollection"
        or not isinstance(data.get("features"), list)
    ):
        raise MalformedInput("Invalid GeoJSON format: expected a FeatureCollection")

    defaults = get_import_setting("GEOJSON_DEFAULTS")
    result = ParsedPayload()

    for idx, feature in enumerate(data["features"]):
        coordinates = _point_coordinates(feature)
        if coordinates is None:
            result.dropped_count += 1
            logger.warning(f"Feature {idx}: skipping feature without valid point geometry")
            continue

        result.candidates.append(_feature_to_candidate(feature, coordinates, defaults))

    logger.info(
        f"Parsed {len(result.candidates)} GeoJSON features "
        f"({result.dropped_count} dropped)"
    )
    return result


def _convert_csv_row(row: Dict[str, str]) -> Dict[str, Any]:
    candidate: Dict[str, Any] = dict(row)

    for key in CSV_FLOAT_FIELDS:
        if key in candidate:
            number = coerce_to_float(candidate[key])
            if number is not None:
                candidate[key] = number

    for key in CSV_INT_FIELDS:
        if key in candidate:
            number = coerce_to_int(candidate[key])
            if number is not None:
                candidate[key] = number

    amenities = candidate.get("amenities")
    if isinstance(amenities, str) and amenities.startswith("["):
        candidate["amenities"] = coerce_to_str_list(amenities)

    return candidate


def parse_csv(raw: Union[str, bytes, bytearray]) -> ParsedPayload:
    """
    Parse CSV text with a header row.

    Expected CSV columns match the facility field names, e.g.
    name,type,district,address,latitude,longitude,courts,amenities

    Each data line is zipped positionally against the headers. Cells are
    trimmed and empty cells are left out of the candidate. Extra cells
    beyond the header are ignored. Rows the csv module cannot read, such as
    one with an oversized cell, are dropped and counted.

    Args:
        raw: CSV text or bytes

    Returns:
        ParsedPayload with one candidate per non-blank data line

    Raises:
        MalformedInput: If the payload is empty or has no header
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise MalformedInput(f"CSV payload is not valid UTF-8: {e}") from e

    if not isinstance(raw, str):
        raise MalformedInput(f"CSV payload must be text, got {type(raw).__name__}")

    content = raw.strip()
    if not content:
        raise MalformedInput("CSV payload is empty")

    reader = csv.reader(io.StringIO(content), skipinitialspace=True)
    try:
        headers = [header.strip() for header in next(reader)]
    except csv.Error as e:
        raise MalformedInput(f"CSV header row is unreadable: {e}") from e
    if not any(headers):
        raise MalformedInput("CSV header row is empty")

    result = ParsedPayload()

    while True:
        try:
            values = next(reader)
        except StopIteration:
            break
        except csv.Error as e:
            # The reader resumes on the line after the broken row
            result.dropped_count += 1
            logger.warning(f"Row {reader.line_num}: dropped unreadable CSV row: {e}")
            continue

        if not any(value.strip() for value in values):
            continue

        row = {}
        for header, value in zip(headers, values):
            value = value.strip()
            if header and value:
                row[header] = value

        if len(values) > len(headers):
            logger.debug(
                f"Row {reader.line_num}: ignoring {len(values) - len(headers)} extra cells"
            )

        result.candidates.append(_convert_csv_row(row))

    logger.info(
        f"Parsed {len(result.candidates)} CSV rows ({result.dropped_count} dropped)"
    )
    return result


PARSERS: Dict[str, Callable[[Any], ParsedPayload]] = {
    "json": parse_json,
    "geojson": parse_geojson,
    "csv": parse_csv,
}


def parse_payload(fmt: str, raw: RawPayload) -> ParsedPayload:
    """
    Parse a payload with the adapter registered for its format.

    Raises:
        UnsupportedFormat: If no adapter handles the format
        MalformedInput: If the payload shape is wrong
    """
    parser = PARSERS.get((fmt or "").strip().lower())
    if parser is None:
        raise UnsupportedFormat(
            f"Unsupported format '{fmt}', must be one of: {', '.join(PARSERS)}"
        )
    return parser(raw)
