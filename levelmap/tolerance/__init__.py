# Tolerance statistics and quality module

from .engine import (
    HeatmapColor,
    HeatmapCell,
    ToleranceStats,
    final_values,
    max_pairwise_delta,
    calculate_tolerance_stats,
    calculate_height_deviations,
    calculate_pass_fail,
    classify_deviation,
    generate_heatmap_data,
    calculate_uncertainty,
    validate_tolerance,
    require_tolerance,
    default_tolerances,
)

from .quality import (
    QualityLevel,
    QualityAssessment,
    classify_quality,
    generate_recommendations,
    assess_quality,
)

__all__ = [
    # Engine
    "HeatmapColor",
    "HeatmapCell",
    "ToleranceStats",
    "final_values",
    "max_pairwise_delta",
    "calculate_tolerance_stats",
    "calculate_height_deviations",
    "calculate_pass_fail",
    "classify_deviation",
    "generate_heatmap_data",
    "calculate_uncertainty",
    "validate_tolerance",
    "require_tolerance",
    "default_tolerances",
    # Quality
    "QualityLevel",
    "QualityAssessment",
    "classify_quality",
    "generate_recommendations",
    "assess_quality",
]
