"""
LevelMap - Master Constants Reference

Fixed thresholds and factors used by the measurement engine.
Changing any of these changes reported pass/fail results.
"""

# =============================================================================
# UNIT CONVERSION CONSTANTS
# =============================================================================

# Exact, by definition of the inch
MM_PER_INCH = 25.4

# Inches per meter used by the AR world (meters) to session unit conversion
INCHES_PER_METER = 39.3701

# Millimeters per meter
MM_PER_METER = 1000.0

# =============================================================================
# GRID CONSTANTS
# =============================================================================

# Row letters run A..Z, so rows are capped at 26
MIN_GRID_ROWS = 2
MAX_GRID_ROWS = 26

MIN_GRID_COLS = 2
MAX_GRID_COLS = 50

# Corners closer than this (horizontal, meters) cannot define a rectangle
MIN_CORNER_SEPARATION_M = 1e-6

# Grid presets offered to the technician: (name, rows, cols)
GRID_PRESETS = [
    ("Halves (2)", 2, 1),
    ("Fourths (2×2)", 2, 2),
    ("Eighths (4×2)", 4, 2),
    ("Eighths (2×4)", 2, 4),
    ("Custom", 0, 0),
]

# =============================================================================
# TOLERANCE CONSTANTS
# =============================================================================

# Maximum tolerance, inclusive
MAX_TOLERANCE_INCHES = 12.0
MAX_TOLERANCE_MM = 300.0

# Tolerance ladders offered per unit system
DEFAULT_TOLERANCES_IMPERIAL = [0.125, 0.25, 0.5, 1.0, 2.0]  # 1/8", 1/4", 1/2", 1", 2"
DEFAULT_TOLERANCES_METRIC = [3.0, 5.0, 10.0, 25.0, 50.0]

# Heatmap: yellow up to this multiple of tolerance, red beyond
HEATMAP_YELLOW_FACTOR = 1.5

# Normalized heatmap deviation is capped at this multiple of tolerance
HEATMAP_NORMALIZED_CAP = 2.0

# =============================================================================
# QUALITY ASSESSMENT CONSTANTS
# =============================================================================

EXCELLENT_PASS_RATE = 0.95
EXCELLENT_UNCERTAINTY_RATIO = 0.1  # uncertainty < 10% of tolerance

GOOD_PASS_RATE = 0.90
GOOD_UNCERTAINTY_RATIO = 0.2

ACCEPTABLE_PASS_RATE = 0.80

# Warn when max pairwise delta exceeds this fraction of the average
HIGH_VARIATION_RATIO = 0.1

# =============================================================================
# MEASUREMENT EXTRACTION CONSTANTS
# =============================================================================

# Confidence heuristic: base + marking count term + OCR term + consistency
CONFIDENCE_BASE = 0.5
CONFIDENCE_PER_MARKING = 0.1
CONFIDENCE_MARKING_CAP = 0.3
CONFIDENCE_OCR_WEIGHT = 0.2
CONFIDENCE_CONSISTENCY_BONUS = 0.1

# Readings below this confidence ask the technician to tap-calibrate
CALIBRATION_TAP_THRESHOLD = 0.6

# Fresh calibration needs at least this many recognized markings
MIN_MARKINGS_FOR_CALIBRATION = 2

# Manual entries are trusted completely
MANUAL_CONFIDENCE = 1.0

# =============================================================================
# VISION ADAPTER CONSTANTS
# =============================================================================

# Minimum OCR confidence for a ruler numeral to be used
OCR_CONFIDENCE_THRESHOLD = 0.6

# HSV ranges (OpenCV scale: H 0-180, S/V 0-255)
LASER_RED_HUE_RANGES = [(0, 10), (170, 180)]
LASER_GREEN_HUE_RANGE = (45, 75)
LASER_MIN_SATURATION = 128
LASER_MIN_VALUE = 128

# Blobs smaller than this (pixels) are noise
LASER_MIN_BLOB_AREA = 4

# Ruler contour must cover at least this fraction of the image
RULER_MIN_AREA_RATIO = 0.01

# =============================================================================
# SESSION DEFAULTS
# =============================================================================

DEFAULT_UNITS = "imperial"
DEFAULT_TOLERANCE_INCHES = 0.125
DEFAULT_TOLERANCE_MM = 3.0
DEFAULT_RESOLUTION = "1/8"
DEFAULT_GRID_ROWS = 4
DEFAULT_GRID_COLS = 4

# =============================================================================
# UNITS
# =============================================================================

class Units:
    IMPERIAL = "imperial"
    METRIC = "metric"

    ALL = (IMPERIAL, METRIC)


UNIT_LABELS = {
    Units.IMPERIAL: "in",
    Units.METRIC: "mm",
}

# =============================================================================
# FRACTIONAL RESOLUTION
# =============================================================================

class FractionalResolution:
    EIGHTH = 1.0 / 8.0
    SIXTEENTH = 1.0 / 16.0


RESOLUTION_NAMES = {
    "1/8": FractionalResolution.EIGHTH,
    "1/16": FractionalResolution.SIXTEENTH,
}

# =============================================================================
# RULER AXIS
# =============================================================================

class Axis:
    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"

# =============================================================================
# MEASUREMENT METHODS
# =============================================================================

class MeasurementMethod:
    VISION = "vision-ocr+laser"
    MANUAL = "manual"
