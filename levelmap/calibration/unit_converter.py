"""
Unit Converter Module

Parsing and formatting of measurement values between decimal,
fractional-imperial, and metric representations.
"""

import logging
import math
import re
from typing import Optional

from ..constants import (
    MM_PER_INCH,
    RESOLUTION_NAMES,
    UNIT_LABELS,
    Units,
)
from ..errors import ParseError, ValidationError

logger = logging.getLogger(__name__)

# Plain decimal: 2, 2.5, .5, -1.25
DECIMAL_PATTERN = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)$")

# Fraction: 3/8, 1.5/2, -3/4
FRACTION_PATTERN = re.compile(r"^([+-]?(?:\d+(?:\.\d*)?|\.\d+))/((?:\d+(?:\.\d*)?|\.\d+))$")

# Trailing unit label on user input: 1 3/8 in, 1 3/8", 35 mm
UNIT_SUFFIX_PATTERN = re.compile(r"\s*(?:in|inch|inches|\"|mm)\s*$", re.IGNORECASE)

# Readable fractions tried before falling back to steps/denominator
COMMON_FRACTIONS = [
    (1, 2),
    (1, 4),
    (3, 4),
    (1, 8),
    (3, 8),
    (5, 8),
    (7, 8),
    (1, 16),
    (3, 16),
    (5, 16),
    (7, 16),
    (9, 16),
    (11, 16),
    (13, 16),
    (15, 16),
]


def _parse_decimal(text: str) -> Optional[float]:
    """Parse a plain decimal token, or None."""
    if DECIMAL_PATTERN.match(text):
        return float(text)
    return None


def _parse_fraction(text: str) -> Optional[float]:
    """Parse a 'num/den' token, or None (including zero denominators)."""
    match = FRACTION_PATTERN.match(text)
    if not match:
        return None

    numerator = float(match.group(1))
    denominator = float(match.group(2))
    if denominator == 0:
        return None

    return numerator / denominator


def parse_fractional_inches(text: str) -> float:
    """
    Parse a fractional inch string to decimal inches.

    Accepts decimals ("2.5"), fractions ("3/4") and mixed numbers ("1 3/8").
    A leading minus sign applies to the whole mixed number, so "-1 3/8" is
    -1.375.

    Args:
        text: Measurement text

    Returns:
        Value in decimal inches

    Raises:
        ParseError: If the text is not a number, fraction or mixed number
    """
    if text is None:
        raise ParseError("", "empty input")

    trimmed = text.strip()
    if not trimmed:
        raise ParseError(text, "empty input")

    decimal = _parse_decimal(trimmed)
    if decimal is not None:
        return decimal

    tokens = trimmed.split()

    if len(tokens) == 2:
        whole = _parse_decimal(tokens[0])
        if whole is None:
            raise ParseError(text, f"'{tokens[0]}' is not a number")

        if tokens[1].startswith(("-", "+")):
            raise ParseError(text, "fraction part of a mixed number cannot be signed")

        fraction = _parse_fraction(tokens[1])
        if fraction is None:
            raise ParseError(text, f"'{tokens[1]}' is not a valid fraction")

        if tokens[0].startswith("-"):
            return -(abs(whole) + fraction)
        return whole + fraction

    if len(tokens) == 1:
        fraction = _parse_fraction(tokens[0])
        if fraction is not None:
            return fraction
        raise ParseError(text)

    raise ParseError(text, "too many parts")


def _round_half_away(x: float) -> float:
    """Round half away from zero (0.5 -> 1, -0.5 -> -1)."""
    return math.copysign(math.floor(abs(x) + 0.5), x)


def round_to_fraction(value: float, resolution: float) -> float:
    """Round a value to the nearest multiple of resolution."""
    return _round_half_away(value / resolution) * resolution


def decimal_to_fraction(decimal: float, resolution: float) -> str:
    """
    Convert a fractional part (0 <= decimal < 1) to a fraction string.

    Common fractions are preferred; otherwise steps of the resolution
    are used, e.g. "3/8".
    """
    tolerance = resolution / 2.0

    for numerator, denominator in COMMON_FRACTIONS:
        if abs(decimal - numerator / denominator) < tolerance:
            return f"{numerator}/{denominator}"

    steps = int(_round_half_away(decimal / resolution))
    denominator = int(round(1.0 / resolution))
    return f"{steps}/{denominator}"


def format_fractional_inches(value: float, resolution: float) -> str:
    """
    Format decimal inches as a fractional string.

    Examples:
        1.375, 1/8 -> "1 3/8"
        0.75, 1/8 -> "3/4"
        2.0, 1/8 -> "2"

    Args:
        value: Value in decimal inches
        resolution: Fractional resolution (1/8 or 1/16)

    Returns:
        Formatted string
    """
    if resolution <= 0:
        raise ValidationError(f"Resolution must be positive: {resolution}")

    rounded = round_to_fraction(value, resolution)
    if rounded < 0:
        return "-" + format_fractional_inches(-rounded, resolution)

    whole_number = int(rounded)
    fractional_part = rounded - whole_number

    if fractional_part == 0:
        return str(whole_number)

    fraction = decimal_to_fraction(fractional_part, resolution)
    if whole_number == 0:
        return fraction
    return f"{whole_number} {fraction}"


def inches_to_mm(inches: float) -> float:
    """Convert inches to millimeters."""
    return inches * MM_PER_INCH


def mm_to_inches(mm: float) -> float:
    """Convert millimeters to inches."""
    return mm / MM_PER_INCH


def validate_units(units: str) -> str:
    """Return units if known, else raise ValidationError."""
    if units not in Units.ALL:
        raise ValidationError(f"Unknown units '{units}', expected one of {Units.ALL}")
    return units


def format_measurement(
    value: float,
    units: str,
    resolution: Optional[float] = None
) -> str:
    """
    Format a measurement value with its unit label.

    Args:
        value: Measurement value in session units
        units: "imperial" or "metric"
        resolution: Fractional resolution (imperial only)

    Returns:
        Formatted string like "1 3/8 in" or "35.0 mm"
    """
    validate_units(units)

    if units == Units.IMPERIAL:
        if resolution is not None:
            return f"{format_fractional_inches(value, resolution)} in"
        return f"{value:.3f} in"

    return f"{value:.1f} mm"


def convert_value(value: float, from_units: str, to_units: str) -> float:
    """Convert a value between imperial (inches) and metric (mm)."""
    validate_units(from_units)
    validate_units(to_units)

    if from_units == Units.IMPERIAL and to_units == Units.METRIC:
        return inches_to_mm(value)
    if from_units == Units.METRIC and to_units == Units.IMPERIAL:
        return mm_to_inches(value)
    return value


def convert_and_format(
    value: float,
    from_units: str,
    to_units: str,
    resolution: Optional[float] = None
) -> str:
    """Convert a measurement to another unit system and format it there."""
    converted = convert_value(value, from_units, to_units)
    return format_measurement(converted, to_units, resolution)


def parse_measurement(text: str, units: str) -> float:
    """
    Parse user-entered measurement text in the given unit system.

    A trailing unit label ("in", '"', "mm") is ignored.

    Raises:
        ParseError: If the text is malformed
    """
    validate_units(units)
    if text is None:
        raise ParseError("", "empty input")

    stripped = UNIT_SUFFIX_PATTERN.sub("", text).strip()

    if units == Units.IMPERIAL:
        return parse_fractional_inches(stripped)

    value = _parse_decimal(stripped)
    if value is None:
        raise ParseError(text, "metric values must be decimal millimeters")
    return value


def is_valid_measurement(text: str, units: str) -> bool:
    """Check whether text parses as a measurement in the given units."""
    try:
        parse_measurement(text, units)
    except ParseError:
        return False
    return True


def resolution_from_string(name: str) -> float:
    """
    Parse a resolution name like "1/8" or "1/16".

    Raises:
        ValidationError: If the resolution is not supported
    """
    key = name.strip()
    if key not in RESOLUTION_NAMES:
        raise ValidationError(
            f"Unsupported resolution '{name}', expected one of {sorted(RESOLUTION_NAMES)}"
        )
    return RESOLUTION_NAMES[key]


def unit_label(units: str) -> str:
    """Short unit label: "in" or "mm"."""
    return UNIT_LABELS[validate_units(units)]
