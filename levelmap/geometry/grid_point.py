"""
Grid Point Data Structure Module

Defines the GridPoint class holding one labeled sample location and
its measurements.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


def row_letter_for_index(row: int) -> str:
    """Row letter for a 0-based row index: 0 -> "A", 1 -> "B", ..."""
    return chr(ord("A") + row)


@dataclass
class GridPoint:
    """
    One labeled sample location on the measurement rectangle.

    The final value is the technician's entry when present, otherwise
    the vision reading.
    """
    # Identification
    session_id: str
    row_letter: str
    col_index: int  # 1-based
    world_position: Tuple[float, float, float] = (0.0, 0.0, 0.0)  # meters
    point_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    # Vision reading
    ai_measured_value: Optional[float] = None
    ai_measured_display: Optional[str] = None
    ai_confidence: Optional[float] = None
    ai_method: Optional[str] = None

    # Technician entry
    measured_user_value: Optional[float] = None
    measured_user_display: Optional[str] = None
    is_user_overridden: bool = False

    # Depth sensor channel (meters)
    lidar_height: Optional[float] = None
    deviation_from_avg: Optional[float] = None
    lidar_pass_fail: Optional[bool] = None

    # Value channel
    pass_fail: Optional[bool] = None

    photo_ids: List[str] = field(default_factory=list)

    @property
    def label(self) -> str:
        return f"{self.row_letter}{self.col_index}"

    @property
    def final_value(self) -> Optional[float]:
        if self.measured_user_value is not None:
            return self.measured_user_value
        return self.ai_measured_value

    @property
    def final_display(self) -> Optional[str]:
        if self.measured_user_display is not None:
            return self.measured_user_display
        return self.ai_measured_display

    def apply_measurement(self, result) -> None:
        """Record a vision MeasurementResult as this point's AI reading."""
        self.ai_measured_value = result.value
        self.ai_measured_display = result.display
        self.ai_confidence = result.confidence
        self.ai_method = result.method

    def apply_user_override(self, result) -> None:
        """Record a manual MeasurementResult as the technician's value."""
        self.measured_user_value = result.value
        self.measured_user_display = result.display
        self.is_user_overridden = True

    def clear_user_override(self) -> None:
        self.measured_user_value = None
        self.measured_user_display = None
        self.is_user_overridden = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert point to dictionary for JSON serialization."""
        return {
            "id": self.point_id,
            "sessionId": self.session_id,
            "label": self.label,
            "rowLetter": self.row_letter,
            "colIndex": self.col_index,
            "worldPosition": list(self.world_position),
            "aiMeasuredValue": self.ai_measured_value,
            "aiMeasuredDisplay": self.ai_measured_display,
            "aiConfidence": self.ai_confidence,
            "aiMethod": self.ai_method,
            "measuredUserValue": self.measured_user_value,
            "measuredUserDisplay": self.measured_user_display,
            "isUserOverridden": self.is_user_overridden,
            "lidarHeight": self.lidar_height,
            "deviationFromAvg": self.deviation_from_avg,
            "lidarPassFail": self.lidar_pass_fail,
            "passFail": self.pass_fail,
            "photoIds": list(self.photo_ids),
        }

    def to_export_record(self) -> Dict[str, Any]:
        """Per-point record handed to persistence and export."""
        return {
            "label": self.label,
            "aiValue": self.ai_measured_value,
            "aiConfidence": self.ai_confidence,
            "finalValue": self.final_value,
            "lidarHeight": self.lidar_height,
            "deviation": self.deviation_from_avg,
            "passFail": self.pass_fail,
        }


def sort_by_label(points: List[GridPoint]) -> List[GridPoint]:
    """Points ordered row by row, then by column (A1, A2, ..., B1, ...)."""
    return sorted(points, key=lambda p: (p.row_letter, p.col_index))
