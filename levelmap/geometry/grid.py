"""
Grid Builder Module

Builds the rectangle transform from two corner picks and lays out the
labeled sample grid in world space.

World coordinates are meters with +Y up, as reported by plane tracking.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..constants import (
    GRID_PRESETS,
    MAX_GRID_COLS,
    MAX_GRID_ROWS,
    MIN_CORNER_SEPARATION_M,
    MIN_GRID_COLS,
    MIN_GRID_ROWS,
)
from ..errors import ValidationError
from .grid_point import GridPoint, row_letter_for_index

logger = logging.getLogger(__name__)

WORLD_UP = np.array([0.0, 1.0, 0.0])


def _as_vec3(point: Sequence[float]) -> np.ndarray:
    vec = np.asarray(point, dtype=float)
    if vec.shape != (3,):
        raise ValidationError(f"Expected a 3D point, got shape {vec.shape}")
    return vec


def horizontal_separation(corner_a: Sequence[float], corner_b: Sequence[float]) -> float:
    """Distance between two corners projected onto the floor (x/z)."""
    delta = _as_vec3(corner_b) - _as_vec3(corner_a)
    return float(np.hypot(delta[0], delta[2]))


def create_rectangle_transform(
    corner_a: Sequence[float],
    corner_b: Sequence[float]
) -> np.ndarray:
    """
    Create a 4x4 rigid transform for the rectangle spanned by two corners.

    Columns are right, up, forward and the rectangle center. Forward is the
    horizontal direction from corner A to corner B; there is no scale.

    Args:
        corner_a: First corner (x, y, z) in meters
        corner_b: Second corner (x, y, z) in meters

    Returns:
        4x4 numpy array

    Raises:
        ValidationError: If the corners have no horizontal separation
    """
    a = _as_vec3(corner_a)
    b = _as_vec3(corner_b)

    separation = horizontal_separation(a, b)
    if separation < MIN_CORNER_SEPARATION_M:
        raise ValidationError(
            f"Corners are {separation:.2e} m apart horizontally; "
            f"pick two distinct floor corners"
        )

    center = (a + b) / 2.0

    delta = b - a
    forward = np.array([delta[0], 0.0, delta[2]]) / separation
    right = np.array([forward[2], 0.0, -forward[0]])
    right /= np.linalg.norm(right)

    transform = np.identity(4)
    transform[:3, 0] = right
    transform[:3, 1] = WORLD_UP
    transform[:3, 2] = forward
    transform[:3, 3] = center

    return transform


def transform_point(point: Sequence[float], transform: np.ndarray) -> np.ndarray:
    """Transform a local 3D point to world coordinates."""
    homogeneous = np.append(_as_vec3(point), 1.0)
    return (np.asarray(transform, dtype=float) @ homogeneous)[:3]


def calculate_rectangle_dimensions(
    corner_a: Sequence[float],
    corner_b: Sequence[float]
) -> Tuple[float, float]:
    """
    Calculate rectangle width and length from two corner points.

    Returns:
        Tuple of (width, length) in meters: |dx| and |dz|
    """
    delta = _as_vec3(corner_b) - _as_vec3(corner_a)
    return float(abs(delta[0])), float(abs(delta[2]))


def validate_grid_dimensions(rows: int, cols: int) -> bool:
    """Rows must be 2-26 (one letter each), columns 2-50."""
    return MIN_GRID_ROWS <= rows <= MAX_GRID_ROWS and MIN_GRID_COLS <= cols <= MAX_GRID_COLS


def require_grid_dimensions(rows: int, cols: int) -> None:
    """Raise ValidationError unless the grid dimensions are valid."""
    if not validate_grid_dimensions(rows, cols):
        raise ValidationError(
            f"Grid {rows}x{cols} out of bounds: rows must be "
            f"{MIN_GRID_ROWS}-{MAX_GRID_ROWS}, cols {MIN_GRID_COLS}-{MAX_GRID_COLS}"
        )


def local_grid_offset(
    row: int,
    col: int,
    width: float,
    length: float,
    rows: int,
    cols: int
) -> np.ndarray:
    """Offset of a grid cell from the rectangle center in local axes."""
    step_x = width / (cols - 1)
    step_z = length / (rows - 1)

    local_x = (col - (cols - 1) / 2.0) * step_x
    local_z = (row - (rows - 1) / 2.0) * step_z
    return np.array([local_x, 0.0, local_z])


def grid_world_positions(
    transform: np.ndarray,
    width: float,
    length: float,
    rows: int,
    cols: int,
    session_id: Optional[str] = None
) -> List[GridPoint]:
    """
    Generate labeled grid points for a rectangle.

    Row r gets letter A+r, column c gets index c+1. Points are spread
    evenly so the outer rows/columns sit on the rectangle edges.

    Args:
        transform: 4x4 rectangle transform
        width: Rectangle width in meters (local x)
        length: Rectangle length in meters (local z)
        rows: Number of rows (2-26)
        cols: Number of columns (2-50)
        session_id: Session the points belong to

    Returns:
        List of GridPoint objects in row-major order
    """
    require_grid_dimensions(rows, cols)

    session_id = session_id or ""
    grid_points = []

    for row in range(rows):
        row_letter = row_letter_for_index(row)

        for col in range(cols):
            local = local_grid_offset(row, col, width, length, rows, cols)
            world = transform_point(local, transform)

            grid_points.append(GridPoint(
                session_id=session_id,
                row_letter=row_letter,
                col_index=col + 1,
                world_position=tuple(float(v) for v in world),
            ))

    logger.info(f"Generated {len(grid_points)} grid points ({rows} rows x {cols} cols)")
    return grid_points


def grid_presets() -> List[Tuple[str, int, int]]:
    """Preset grid layouts as (name, rows, cols); "Custom" is (0, 0)."""
    return list(GRID_PRESETS)
