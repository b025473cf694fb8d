# Unit conversion and ruler calibration module

from .unit_converter import (
    parse_fractional_inches,
    format_fractional_inches,
    round_to_fraction,
    decimal_to_fraction,
    inches_to_mm,
    mm_to_inches,
    validate_units,
    format_measurement,
    convert_value,
    convert_and_format,
    parse_measurement,
    is_valid_measurement,
    resolution_from_string,
    unit_label,
)

from .ruler_calibration import (
    RulerMarking,
    Calibration,
    project_pixel,
    sort_markings,
    derive_calibration,
    calculate_confidence,
)

__all__ = [
    # Unit Converter
    "parse_fractional_inches",
    "format_fractional_inches",
    "round_to_fraction",
    "decimal_to_fraction",
    "inches_to_mm",
    "mm_to_inches",
    "validate_units",
    "format_measurement",
    "convert_value",
    "convert_and_format",
    "parse_measurement",
    "is_valid_measurement",
    "resolution_from_string",
    "unit_label",
    # Ruler Calibration
    "RulerMarking",
    "Calibration",
    "project_pixel",
    "sort_markings",
    "derive_calibration",
    "calculate_confidence",
]
