# Coordinate grid and geometry module

from .grid_point import (
    GridPoint,
    row_letter_for_index,
    sort_by_label,
)

from .grid import (
    create_rectangle_transform,
    transform_point,
    calculate_rectangle_dimensions,
    horizontal_separation,
    validate_grid_dimensions,
    require_grid_dimensions,
    local_grid_offset,
    grid_world_positions,
    grid_presets,
)

from .plane import (
    best_fit_plane,
    height_deviation,
    distance,
)

from .calculator import (
    convert_from_meters,
    convert_to_meters,
    rectangle_area,
    rectangle_footprint,
    points_on_footprint,
)

__all__ = [
    # Grid Point
    "GridPoint",
    "row_letter_for_index",
    "sort_by_label",
    # Grid
    "create_rectangle_transform",
    "transform_point",
    "calculate_rectangle_dimensions",
    "horizontal_separation",
    "validate_grid_dimensions",
    "require_grid_dimensions",
    "local_grid_offset",
    "grid_world_positions",
    "grid_presets",
    # Plane
    "best_fit_plane",
    "height_deviation",
    "distance",
    # Calculator
    "convert_from_meters",
    "convert_to_meters",
    "rectangle_area",
    "rectangle_footprint",
    "points_on_footprint",
]
