"""
Error Types Module

Exceptions raised by the measurement engine. Detection errors are always
recoverable by the caller (rescan, manual entry, or calibration).
"""


class LevelMapError(Exception):
    """Base class for all measurement engine errors."""


class ParseError(LevelMapError, ValueError):
    """Measurement text could not be parsed."""

    def __init__(self, text: str, reason: str = "not a valid measurement"):
        self.text = text
        self.reason = reason
        super().__init__(f"Cannot parse '{text}': {reason}")


class ValidationError(LevelMapError, ValueError):
    """Tolerance, grid dimensions, or geometry out of bounds."""


class InsufficientDataError(LevelMapError):
    """Not enough data points for the requested computation."""


class DetectionError(LevelMapError):
    """Base class for vision/measurement detection failures."""

    message = "Detection failed"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)


class ImageProcessingError(DetectionError):
    message = "Invalid image provided"


class LaserDetectionError(DetectionError):
    message = "Could not detect laser dot"


class RulerDetectionError(DetectionError):
    message = "Could not detect ruler"


class TextRecognitionError(DetectionError):
    message = "Could not read ruler markings"


class InsufficientMarkingsError(DetectionError, InsufficientDataError):
    message = "Not enough ruler markings detected"


class CalibrationRequiredError(DetectionError):
    message = "Calibration required for accurate measurement"
