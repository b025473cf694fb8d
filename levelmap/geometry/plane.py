"""
Plane Fitting Module

Approximate floor plane through measured points and signed distances to it.
"""

import logging
from typing import Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)

VERTICAL_NORMAL = np.array([0.0, 1.0, 0.0])


def distance(point_a: Sequence[float], point_b: Sequence[float]) -> float:
    """Euclidean distance between two 3D points."""
    return float(np.linalg.norm(np.asarray(point_b, dtype=float) - np.asarray(point_a, dtype=float)))


def best_fit_plane(points: Sequence[Sequence[float]]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Find a plane through a set of points.

    Exactly 3 points give the exact plane through them. More than 3 points
    give a horizontal plane (vertical normal) through the centroid; this is
    an approximation, not a least-squares fit. Fewer than 3 points give a
    horizontal plane through the origin.

    Args:
        points: Sequence of (x, y, z) points

    Returns:
        Tuple of (unit normal, point on plane)
    """
    if len(points) < 3:
        logger.warning(f"Plane fit needs 3 points, got {len(points)}; using horizontal plane")
        return VERTICAL_NORMAL.copy(), np.zeros(3)

    coords = np.asarray(points, dtype=float)
    centroid = coords.mean(axis=0)

    if len(coords) == 3:
        normal = np.cross(coords[1] - coords[0], coords[2] - coords[0])
        norm = np.linalg.norm(normal)
        if norm == 0:
            logger.warning("Plane fit points are collinear; using horizontal plane")
            return VERTICAL_NORMAL.copy(), centroid
        return normal / norm, centroid

    return VERTICAL_NORMAL.copy(), centroid


def height_deviation(
    point: Sequence[float],
    plane_normal: Sequence[float],
    plane_point: Sequence[float]
) -> float:
    """Signed distance of a point from a plane (positive on the normal side)."""
    offset = np.asarray(point, dtype=float) - np.asarray(plane_point, dtype=float)
    return float(np.dot(offset, np.asarray(plane_normal, dtype=float)))
