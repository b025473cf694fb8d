"""
Quality Assessment Module

Overall excellent/good/acceptable/poor verdict for a measurement session.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Sequence

from ..constants import (
    ACCEPTABLE_PASS_RATE,
    EXCELLENT_PASS_RATE,
    EXCELLENT_UNCERTAINTY_RATIO,
    GOOD_PASS_RATE,
    GOOD_UNCERTAINTY_RATIO,
    HIGH_VARIATION_RATIO,
)
from ..geometry.grid_point import GridPoint
from .engine import ToleranceStats, calculate_tolerance_stats, calculate_uncertainty

logger = logging.getLogger(__name__)


class QualityLevel(Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    ACCEPTABLE = "Acceptable"
    POOR = "Poor"

    @property
    def description(self) -> str:
        return QUALITY_DESCRIPTIONS[self]


QUALITY_DESCRIPTIONS = {
    QualityLevel.EXCELLENT: "All measurements within tolerance with low uncertainty",
    QualityLevel.GOOD: "Most measurements within tolerance with acceptable uncertainty",
    QualityLevel.ACCEPTABLE: "Some measurements exceed tolerance but overall quality is acceptable",
    QualityLevel.POOR: "Significant quality issues detected",
}


@dataclass(frozen=True)
class QualityAssessment:
    quality: QualityLevel
    pass_rate: float
    uncertainty: float
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "quality": self.quality.value,
            "description": self.quality.description,
            "passRate": self.pass_rate,
            "uncertainty": self.uncertainty,
            "recommendations": list(self.recommendations),
        }


def classify_quality(pass_rate: float, uncertainty: float, tolerance: float) -> QualityLevel:
    if pass_rate >= EXCELLENT_PASS_RATE and uncertainty < tolerance * EXCELLENT_UNCERTAINTY_RATIO:
        return QualityLevel.EXCELLENT
    if pass_rate >= GOOD_PASS_RATE and uncertainty < tolerance * GOOD_UNCERTAINTY_RATIO:
        return QualityLevel.GOOD
    if pass_rate >= ACCEPTABLE_PASS_RATE:
        return QualityLevel.ACCEPTABLE
    return QualityLevel.POOR


def generate_recommendations(stats: ToleranceStats, quality: QualityLevel) -> List[str]:
    """Fixed advice per quality tier, plus a variation warning."""
    recommendations = []

    if quality == QualityLevel.EXCELLENT:
        recommendations.append("Excellent measurement quality")
    elif quality == QualityLevel.GOOD:
        recommendations.append("Good measurement quality")
    elif quality == QualityLevel.ACCEPTABLE:
        recommendations.append("Consider re-measuring points with high deviations")
        if stats.exceedance_count > 0:
            recommendations.append(
                f"Review {stats.exceedance_count} points that exceed tolerance"
            )
    else:
        recommendations.append("Significant quality issues detected")
        recommendations.append("Re-measure all points with high deviations")
        recommendations.append("Check measurement equipment and technique")

    if stats.max_pairwise_delta > stats.average * HIGH_VARIATION_RATIO:
        recommendations.append("High variation between measurements - check for systematic errors")

    return recommendations


def assess_quality(geometry, points: Sequence[GridPoint]) -> QualityAssessment:
    """
    Assess overall session quality.

    Args:
        geometry: Session geometry (tolerance, units)
        points: Grid points with measurements

    Returns:
        QualityAssessment
    """
    stats = calculate_tolerance_stats(points, geometry.tolerance)
    uncertainty = calculate_uncertainty(points)
    quality = classify_quality(stats.pass_rate, uncertainty, geometry.tolerance)

    logger.info(
        f"Quality {quality.value}: pass rate {stats.pass_rate:.1%}, "
        f"uncertainty {uncertainty:.4f} {geometry.units}"
    )

    return QualityAssessment(
        quality=quality,
        pass_rate=stats.pass_rate,
        uncertainty=uncertainty,
        recommendations=generate_recommendations(stats, quality),
    )
