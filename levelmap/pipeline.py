"""
Session Pipeline Module

Owns the grid point collection of one session and coordinates the
workflow: grid generation, measurement commits, and statistics.

Commits are serialized per point with one lock per label, so points
captured in quick succession never lose updates while different points
can be committed concurrently.
"""

import json
import logging
import re
import threading
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from .constants import MeasurementMethod, Units
from .calibration.unit_converter import format_measurement, resolution_from_string
from .errors import ValidationError
from .geometry.grid import grid_world_positions
from .geometry.grid_point import GridPoint, sort_by_label
from .measurement.extractor import MeasurementExtractor, MeasurementResult
from .session import SessionGeometry
from .tolerance.engine import (
    HeatmapCell,
    ToleranceStats,
    calculate_height_deviations,
    calculate_pass_fail,
    calculate_tolerance_stats,
    calculate_uncertainty,
    generate_heatmap_data,
)
from .tolerance.quality import QualityAssessment, assess_quality

logger = logging.getLogger(__name__)

LABEL_PATTERN = re.compile(r"^([A-Z])(\d+)$")


class MeasurementSession:
    """A session's geometry plus its mutable grid points."""

    def __init__(self, geometry: SessionGeometry, points: Optional[List[GridPoint]] = None):
        self.geometry = geometry

        if points is None:
            points = grid_world_positions(
                geometry.transform,
                geometry.width,
                geometry.length,
                geometry.rows,
                geometry.cols,
                session_id=geometry.session_id,
            )

        self._points: Dict[str, GridPoint] = {}
        for point in points:
            if point.label in self._points:
                raise ValidationError(f"Duplicate grid point label {point.label}")
            self._points[point.label] = point

        self._locks = {label: threading.Lock() for label in self._points}

    @classmethod
    def from_corners(cls, corner_a, corner_b, rows: int, cols: int, units: str,
                     tolerance: float, resolution: Optional[float] = None,
                     lidar_available: bool = False) -> "MeasurementSession":
        """Start a session from two picked corners."""
        geometry = SessionGeometry.from_corners(
            corner_a, corner_b, rows, cols, units, tolerance,
            resolution=resolution, lidar_available=lidar_available,
        )
        return cls(geometry)

    def regenerate(self, geometry: SessionGeometry) -> "MeasurementSession":
        """New session with a regenerated grid; this session is left unchanged."""
        logger.info(f"Regenerating grid {geometry.rows}x{geometry.cols}")
        return MeasurementSession(geometry)

    @property
    def labels(self) -> List[str]:
        return [p.label for p in sort_by_label(list(self._points.values()))]

    def _require(self, label: str) -> GridPoint:
        try:
            return self._points[label]
        except KeyError:
            raise ValidationError(f"Unknown grid point '{label}'") from None

    def point(self, label: str) -> GridPoint:
        """Copy of a point's current state."""
        point = self._require(label)
        with self._locks[label]:
            return replace(point, photo_ids=list(point.photo_ids))

    def snapshot(self) -> List[GridPoint]:
        """Consistent per-point copies of all points, in label order."""
        return [self.point(label) for label in self.labels]

    def commit_measurement(self, label: str, result: MeasurementResult) -> GridPoint:
        """
        Store a reading on a point. Manual results become the technician's
        override; vision results become the AI reading.
        """
        point = self._require(label)
        with self._locks[label]:
            if result.method == MeasurementMethod.MANUAL:
                point.apply_user_override(result)
            else:
                point.apply_measurement(result)
            committed = replace(point, photo_ids=list(point.photo_ids))

        logger.debug(f"{label}: committed {result.display} ({result.method})")
        return committed

    def clear_override(self, label: str) -> None:
        point = self._require(label)
        with self._locks[label]:
            point.clear_user_override()

    def commit_lidar_height(self, label: str, height_m: float) -> None:
        point = self._require(label)
        with self._locks[label]:
            point.lidar_height = height_m

    def add_photo(self, label: str, photo_id: str) -> None:
        point = self._require(label)
        with self._locks[label]:
            point.photo_ids.append(photo_id)

    def measure_point(self, label: str, image, extractor: MeasurementExtractor) -> MeasurementResult:
        """
        Read a ruler photo for a point and commit the result.

        Detection errors propagate so the caller can offer rescan, manual
        entry or calibration.
        """
        self._require(label)
        result = extractor.measure(image)
        self.commit_measurement(label, result)
        return result

    def recompute(self) -> ToleranceStats:
        """
        Refresh derived per-point fields from a snapshot: value-channel
        pass/fail and, with LiDAR, height deviations.
        """
        snapshot = self.snapshot()
        updated = calculate_pass_fail(snapshot, self.geometry.tolerance, self.geometry.units)
        updated = calculate_height_deviations(updated, self.geometry)

        for derived in updated:
            point = self._points[derived.label]
            with self._locks[derived.label]:
                point.pass_fail = derived.pass_fail
                point.deviation_from_avg = derived.deviation_from_avg
                point.lidar_pass_fail = derived.lidar_pass_fail

        return calculate_tolerance_stats(snapshot, self.geometry.tolerance)

    def statistics(self) -> ToleranceStats:
        return calculate_tolerance_stats(self.snapshot(), self.geometry.tolerance)

    def uncertainty(self) -> float:
        return calculate_uncertainty(self.snapshot())

    def quality(self) -> QualityAssessment:
        return assess_quality(self.geometry, self.snapshot())

    def heatmap(self) -> List[HeatmapCell]:
        return generate_heatmap_data(self.snapshot(), self.geometry.tolerance, self.geometry.units)

    def export_summary(self) -> Dict[str, Any]:
        """Everything persistence and reporting need, as plain data."""
        points = self.snapshot()
        return {
            "session": self.geometry.to_export_record(),
            "points": [p.to_export_record() for p in points],
            "statistics": calculate_tolerance_stats(points, self.geometry.tolerance).to_dict(),
            "quality": assess_quality(self.geometry, points).to_dict(),
            "heatmap": [
                cell.to_dict()
                for cell in generate_heatmap_data(points, self.geometry.tolerance, self.geometry.units)
            ],
        }


def parse_label(label: str):
    """Split a label like "B12" into ("B", 12)."""
    match = LABEL_PATTERN.match(label.strip().upper())
    if not match:
        raise ValidationError(f"Invalid grid point label '{label}'")
    return match.group(1), int(match.group(2))


def _require_mapping(value: Any, what: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ValidationError(f"{what} must be an object, got {type(value).__name__}")
    return value


def _number(record: Dict[str, Any], key: str, convert=float, default=None):
    """Read an optional numeric field, rejecting non-numeric values."""
    value = record.get(key, default)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"Field '{key}' must be a number, got {value!r}")
    try:
        return convert(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Field '{key}' must be a number, got {value!r}") from None


def _required_number(record: Dict[str, Any], key: str, convert=float, default=None):
    value = _number(record, key, convert, default)
    if value is None:
        raise ValidationError(f"Session field '{key}' is required")
    return value


def session_from_dict(data: Dict[str, Any]) -> MeasurementSession:
    """
    Rebuild a session from exported data.

    Expects {"session": {units, tolerance, rows, cols, rectWidth,
    rectLength, [resolution], [lidarAvailable]}, "points": [{label,
    [aiValue], [aiConfidence], [finalValue], [lidarHeight]}]}. A finalValue
    different from aiValue is treated as a technician override.

    Raises:
        ValidationError: If the data does not have that shape
    """
    _require_mapping(data, "Session data")
    session = _require_mapping(data.get("session") or {}, "Session record")
    units = session.get("units", Units.IMPERIAL)

    resolution = session.get("resolution")
    if resolution is not None and not isinstance(resolution, (int, float)):
        resolution = resolution_from_string(str(resolution))

    geometry = SessionGeometry(
        rows=_required_number(session, "rows", int, 0),
        cols=_required_number(session, "cols", int, 0),
        units=units,
        tolerance=_required_number(session, "tolerance", float, 0.0),
        width=_required_number(session, "rectWidth", float, 0.0),
        length=_required_number(session, "rectLength", float, 0.0),
        resolution=resolution,
        lidar_available=bool(session.get("lidarAvailable", False)),
    )

    points = grid_world_positions(
        geometry.transform, geometry.width, geometry.length,
        geometry.rows, geometry.cols, session_id=geometry.session_id,
    )
    by_label = {p.label: p for p in points}

    records = data.get("points") or []
    if not isinstance(records, list):
        raise ValidationError(f"Points must be a list, got {type(records).__name__}")

    for record in records:
        _require_mapping(record, "Point record")
        row_letter, col_index = parse_label(str(record.get("label", "")))
        label = f"{row_letter}{col_index}"
        if label not in by_label:
            raise ValidationError(f"Point {label} is outside the {geometry.rows}x{geometry.cols} grid")

        point = by_label[label]
        point.ai_measured_value = _number(record, "aiValue")
        point.ai_confidence = _number(record, "aiConfidence")
        point.lidar_height = _number(record, "lidarHeight")
        if point.ai_measured_value is not None:
            point.ai_measured_display = format_measurement(
                point.ai_measured_value, geometry.units, geometry.resolution
            )

        final_value = _number(record, "finalValue")
        if final_value is not None and final_value != point.ai_measured_value:
            point.measured_user_value = final_value
            point.measured_user_display = format_measurement(
                final_value, geometry.units, geometry.resolution
            )
            point.is_user_overridden = True

    logger.info(f"Loaded session with {len(records)} measured points")
    return MeasurementSession(geometry, points)


def load_session_file(path: str) -> MeasurementSession:
    """Load a session JSON file as written by export_summary()."""
    session_path = Path(path)
    if not session_path.exists():
        raise ValidationError(f"Session file not found: {path}")

    try:
        with open(session_path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid session file {path}: {e}") from e

    return session_from_dict(data)
