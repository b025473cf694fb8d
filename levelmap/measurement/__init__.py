# Calibrated measurement extraction module

from .extractor import (
    MeasurementResult,
    MeasurementExtractor,
    extract_measurement,
    manual_result,
)

from .vision import (
    TextBlock,
    VisionReading,
    OpenCVVisionAnalyzer,
    check_image,
    load_image,
    laser_mask,
    locate_laser_dot,
    detect_ruler_axis,
    markings_from_text_blocks,
    run_tesseract,
    read_ruler_markings,
)

__all__ = [
    # Extractor
    "MeasurementResult",
    "MeasurementExtractor",
    "extract_measurement",
    "manual_result",
    # Vision
    "TextBlock",
    "VisionReading",
    "OpenCVVisionAnalyzer",
    "check_image",
    "load_image",
    "laser_mask",
    "locate_laser_dot",
    "detect_ruler_axis",
    "markings_from_text_blocks",
    "run_tesseract",
    "read_ruler_markings",
]
