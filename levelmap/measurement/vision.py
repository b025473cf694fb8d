"""
Vision Adapter Module

Reference implementation of the vision capability used by the
measurement extractor: locates the laser dot with OpenCV colour masks,
finds the ruler orientation, and reads ruler numerals with Tesseract.

The extractor only needs an object with analyze(image) -> VisionReading,
so tests and other capture workflows can inject their own analyzer.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

import cv2
import numpy as np

from ..calibration.ruler_calibration import RulerMarking, sort_markings
from ..constants import (
    LASER_GREEN_HUE_RANGE,
    LASER_MIN_BLOB_AREA,
    LASER_MIN_SATURATION,
    LASER_MIN_VALUE,
    LASER_RED_HUE_RANGES,
    OCR_CONFIDENCE_THRESHOLD,
    RULER_MIN_AREA_RATIO,
    Axis,
)
from ..errors import (
    ImageProcessingError,
    LaserDetectionError,
    RulerDetectionError,
    TextRecognitionError,
)

logger = logging.getLogger(__name__)

TESSERACT_AVAILABLE = False

try:
    import pytesseract
    TESSERACT_AVAILABLE = True
except ImportError:
    logger.debug("Tesseract not available")

# Ruler numerals: 12, 3.5, 30
NUMERAL_PATTERN = re.compile(r"^\d+(?:\.\d+)?$")

TESSERACT_CONFIG = "--psm 11 -c tessedit_char_whitelist=0123456789."


@dataclass
class TextBlock:
    """A piece of text recognized in the photo."""
    text: str
    bbox: Tuple[float, float, float, float]  # (x0, y0, x1, y1) in image pixels
    confidence: float
    source: str = "ocr"

    @property
    def center(self) -> Tuple[float, float]:
        x0, y0, x1, y1 = self.bbox
        return ((x0 + x1) / 2, (y0 + y1) / 2)


@dataclass
class VisionReading:
    """What the vision collaborator found in one ruler photo."""
    laser_pixel: Tuple[float, float]
    markings: List[RulerMarking] = field(default_factory=list)
    axis: str = Axis.VERTICAL


def check_image(image) -> np.ndarray:
    """Validate a BGR image array, raising ImageProcessingError if unusable."""
    if image is None or not isinstance(image, np.ndarray):
        raise ImageProcessingError("Invalid image provided")
    if image.ndim != 3 or image.shape[2] != 3 or image.size == 0:
        raise ImageProcessingError(f"Expected a BGR image, got shape {image.shape}")
    return image


def load_image(path: str) -> np.ndarray:
    """Read a photo from disk as a BGR array."""
    image = cv2.imread(str(path))
    if image is None:
        raise ImageProcessingError(f"Could not read image: {path}")
    return image


def laser_mask(image: np.ndarray) -> np.ndarray:
    """Binary mask of saturated, bright red or green pixels."""
    hsv = cv2.cvtColor(check_image(image), cv2.COLOR_BGR2HSV)

    hue_ranges = list(LASER_RED_HUE_RANGES) + [LASER_GREEN_HUE_RANGE]
    mask = np.zeros(hsv.shape[:2], dtype=np.uint8)
    for low, high in hue_ranges:
        lower = np.array([low, LASER_MIN_SATURATION, LASER_MIN_VALUE], dtype=np.uint8)
        upper = np.array([min(high, 179), 255, 255], dtype=np.uint8)
        mask = cv2.bitwise_or(mask, cv2.inRange(hsv, lower, upper))

    return mask


def locate_laser_dot(image: np.ndarray) -> Tuple[float, float]:
    """
    Find the laser dot as the centroid of the largest laser-coloured blob.

    Returns:
        (x, y) pixel of the dot

    Raises:
        ImageProcessingError: If the image is unusable
        LaserDetectionError: If no laser-coloured blob is found
    """
    mask = laser_mask(image)
    contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

    best = None
    best_area = 0.0
    for contour in contours:
        area = cv2.contourArea(contour)
        if area >= LASER_MIN_BLOB_AREA and area > best_area:
            best = contour
            best_area = area

    if best is None:
        raise LaserDetectionError()

    moments = cv2.moments(best)
    if moments["m00"] == 0:
        raise LaserDetectionError()

    x = moments["m10"] / moments["m00"]
    y = moments["m01"] / moments["m00"]
    logger.debug(f"Laser dot at ({x:.1f}, {y:.1f}), blob area {best_area:.0f} px")
    return (float(x), float(y))


def detect_ruler_axis(image: np.ndarray) -> str:
    """
    Determine whether the ruler runs vertically or horizontally.

    Uses the minimum-area rectangle around the largest edge contour; the
    ruler axis follows its long side.

    Raises:
        RulerDetectionError: If no ruler-sized contour is found
    """
    gray = cv2.cvtColor(check_image(image), cv2.COLOR_BGR2GRAY)
    edges = cv2.Canny(gray, 50, 150)
    edges = cv2.dilate(edges, np.ones((3, 3), dtype=np.uint8))

    contours, _ = cv2.findContours(edges, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
    if not contours:
        raise RulerDetectionError()

    largest = max(contours, key=lambda c: cv2.contourArea(cv2.convexHull(c)))
    image_area = gray.shape[0] * gray.shape[1]
    if cv2.contourArea(cv2.convexHull(largest)) < image_area * RULER_MIN_AREA_RATIO:
        raise RulerDetectionError()

    box = cv2.boxPoints(cv2.minAreaRect(largest))
    edge_a = box[1] - box[0]
    edge_b = box[2] - box[1]
    long_edge = edge_a if np.linalg.norm(edge_a) >= np.linalg.norm(edge_b) else edge_b

    axis = Axis.VERTICAL if abs(long_edge[1]) >= abs(long_edge[0]) else Axis.HORIZONTAL
    logger.debug(f"Ruler axis: {axis}")
    return axis


def markings_from_text_blocks(blocks: Sequence[TextBlock]) -> List[RulerMarking]:
    """
    Keep text blocks that read as ruler numerals and convert them to
    markings positioned at the block center, sorted by value.
    """
    markings = []
    for block in blocks:
        text = block.text.strip()
        if not NUMERAL_PATTERN.match(text):
            continue
        if block.confidence < OCR_CONFIDENCE_THRESHOLD:
            logger.debug(f"Skipping low-confidence numeral '{text}' ({block.confidence:.2f})")
            continue

        markings.append(RulerMarking(
            value=float(text),
            text=text,
            confidence=block.confidence,
            pixel_position=block.center,
        ))

    return sort_markings(markings)


def run_tesseract(image: np.ndarray) -> List[TextBlock]:
    """
    Run Tesseract on a ruler photo.

    Raises:
        TextRecognitionError: If Tesseract is unavailable or fails
    """
    if not TESSERACT_AVAILABLE:
        raise TextRecognitionError("Tesseract is not installed")

    image_rgb = cv2.cvtColor(check_image(image), cv2.COLOR_BGR2RGB)

    try:
        data = pytesseract.image_to_data(
            image_rgb,
            config=TESSERACT_CONFIG,
            output_type=pytesseract.Output.DICT
        )
    except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as e:
        raise TextRecognitionError(f"Tesseract failed: {e}") from e

    blocks = []
    for i in range(len(data["text"])):
        text = str(data["text"][i]).strip()
        if not text:
            continue

        conf = float(data["conf"][i])
        conf = 0.5 if conf == -1 else conf / 100.0

        x, y = data["left"][i], data["top"][i]
        w, h = data["width"][i], data["height"][i]

        blocks.append(TextBlock(
            text=text,
            bbox=(x, y, x + w, y + h),
            confidence=conf,
        ))

    logger.debug(f"Tesseract extracted {len(blocks)} text blocks")
    return blocks


def read_ruler_markings(image: np.ndarray) -> List[RulerMarking]:
    """
    Recognize the ruler's numeric labels.

    Raises:
        TextRecognitionError: If no numerals could be read
    """
    markings = markings_from_text_blocks(run_tesseract(image))
    if not markings:
        raise TextRecognitionError()

    logger.info(f"Read {len(markings)} ruler markings")
    return markings


class OpenCVVisionAnalyzer:
    """Vision analyzer backed by OpenCV colour masks and Tesseract OCR."""

    def analyze(self, image: np.ndarray) -> VisionReading:
        image = check_image(image)

        laser_pixel = locate_laser_dot(image)
        axis = detect_ruler_axis(image)
        markings = read_ruler_markings(image)

        return VisionReading(laser_pixel=laser_pixel, markings=markings, axis=axis)
