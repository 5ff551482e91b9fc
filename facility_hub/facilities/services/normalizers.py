"""
Normalization utilities for facility data processing.

This module provides utilities to coerce raw values coming out of the
format adapters, quantize coordinates and round rating averages.
"""

import json
import logging
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, List, Optional, Union

logger = logging.getLogger(__name__)

COORDINATE_QUANTUM = Decimal("0.000001")
RATING_QUANTUM = Decimal("0.1")


def coerce_to_float(
    value: Union[str, int, float, None], default: Optional[float] = None
) -> Optional[float]:
    """
    Coerce a value to float with robust error handling.

    Args:
        value: Value to coerce (string, int, float, or None)
        default: Default value if coercion fails

    Returns:
        Float value or default if coercion fails
    """
    if value is None or isinstance(value, bool):
        return default

    if isinstance(value, (int, float)):
        return float(value)

    if isinstance(value, str):
        value = value.strip()
        if not value:
            return default

        try:
            return float(value)
        except ValueError:
            logger.warning(f"Could not coerce '{value}' to float, using default {default}")
            return default

    logger.warning(
        f"Unexpected type {type(value)} for value '{value}', using default {default}"
    )
    return default


def coerce_to_int(
    value: Union[str, int, float, None], default: Optional[int] = None
) -> Optional[int]:
    """
    Coerce a value to int, accepting integral floats and numeric strings.
    """
    number = coerce_to_float(value)
    if number is None or number != number or number in (float("inf"), float("-inf")):
        return default

    if not number.is_integer():
        logger.warning(f"Could not coerce '{value}' to int, using default {default}")
        return default

    return int(number)


def coerce_to_str_list(value: Any, separator: str = ",") -> List[str]:
    """
    Coerce a value to a list of strings.

    Accepts a list, a JSON array string such as '["a", "b"]', or a
    bracketed/plain separated string such as "[a, b]" or "a, b".

    Args:
        value: Value to coerce
        separator: Separator character for string splitting

    Returns:
        List of non-empty, stripped strings
    """
    if value is None:
        return []

    if isinstance(value, (list, tuple)):
        return [normalize_string(item) for item in value if normalize_string(item)]

    if isinstance(value, str):
        value = value.strip()
        if not value or value == "[]":
            return []

        if value.startswith("[") and value.endswith("]"):
            try:
                parsed_list = json.loads(value)
                if isinstance(parsed_list, list):
                    return coerce_to_str_list(parsed_list)
            except json.JSONDecodeError:
                logger.debug(f"Falling back to separator split for list value: {value}")

        # Strip brackets and quotes, then split
        value = re.sub(r"[\[\]\"']", "", value)
        return [item.strip() for item in value.split(separator) if item.strip()]

    logger.warning(f"Could not coerce {type(value)} to string list: {value}")
    return [normalize_string(value)]


def quantize_coordinate(value: Union[str, int, float, Decimal]) -> Decimal:
    """
    Convert a coordinate to a Decimal with six fractional digits.

    Raises:
        ValueError: If the value is not numeric or too large to hold six
            fractional digits
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid coordinate value: {value!r}")

    try:
        decimal_value = Decimal(str(value).strip())
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Invalid coordinate value: {value!r}") from e

    if not decimal_value.is_finite():
        raise ValueError(f"Invalid coordinate value: {value!r}")

    try:
        return decimal_value.quantize(COORDINATE_QUANTUM, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise ValueError(f"Coordinate out of range: {value!r}") from e


def round_rating(value: Union[int, float, Decimal]) -> Decimal:
    """
    Round a rating average to one fractional digit, half away from zero.
    """
    return Decimal(str(value)).quantize(RATING_QUANTUM, rounding=ROUND_HALF_UP)


def mean_rating(total: Optional[int], count: int) -> Optional[Decimal]:
    """
    Compute the rounded mean rating from a rating sum and a review count.

    Args:
        total: Sum of all ratings (None when there are no reviews)
        count: Number of reviews

    Returns:
        Mean rounded to one fractional digit, or None if count is 0
    """
    if not count or total is None:
        return None

    return round_rating(Decimal(total) / Decimal(count))


def normalize_string(value: Any, default: str = "") -> str:
    """
    Normalize a string value by stripping whitespace and handling None.

    Args:
        value: String value to normalize
        default: Default value if input is None or empty

    Returns:
        Normalized string value
    """
    if value is None:
        return default

    if isinstance(value, str):
        normalized = value.strip()
        return normalized if normalized else default

    normalized = str(value).strip()
    return normalized if normalized else default
