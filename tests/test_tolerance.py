"""
Tolerance Engine Tests

Tests for tolerance statistics, pass/fail channels, heatmap
classification, uncertainty and the quality verdict.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from levelmap.geometry import GridPoint
from levelmap.session import SessionGeometry
from levelmap.tolerance import (
    HeatmapColor,
    ToleranceStats,
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
    QualityLevel,
    classify_quality,
    assess_quality,
)
from levelmap.constants import Units
from levelmap.errors import ValidationError


def make_points(values, heights=None):
    """One row of points carrying the given AI values and LiDAR heights."""
    heights = heights or [None] * len(values)
    return [
        GridPoint(session_id="s1", row_letter="A", col_index=i + 1,
                  ai_measured_value=value, lidar_height=height)
        for i, (value, height) in enumerate(zip(values, heights))
    ]


def make_geometry(tolerance, units=Units.IMPERIAL, lidar_available=False):
    return SessionGeometry(rows=2, cols=2, units=units, tolerance=tolerance,
                           lidar_available=lidar_available)


def test_tolerance_stats_scenario():
    """Values 1.0, 1.1, 0.9 with tolerance 0.2 all pass."""
    stats = calculate_tolerance_stats(make_points([1.0, 1.1, 0.9]), 0.2)

    assert stats.average == pytest.approx(1.0)
    assert stats.min == pytest.approx(0.9)
    assert stats.max == pytest.approx(1.1)
    assert stats.range == pytest.approx(0.2)
    assert stats.max_pairwise_delta == pytest.approx(0.2)
    assert stats.exceedance_count == 0
    assert stats.total_points == 3
    assert stats.pass_rate == 1.0

    data = stats.to_dict()
    assert data["passRate"] == 1.0
    assert data["exceedanceCount"] == 0

    print("  [PASS] Tolerance stats scenario")


def test_tolerance_stats_empty():
    """No measured values give all-zero statistics."""
    assert calculate_tolerance_stats([], 0.2) == ToleranceStats()
    assert calculate_tolerance_stats(make_points([None, None]), 0.2) == ToleranceStats()
    assert max_pairwise_delta([]) == 0.0
    assert max_pairwise_delta([4.0]) == 0.0

    print("  [PASS] Empty statistics")


def test_stats_use_final_values():
    """Technician overrides replace AI values; unmeasured points are skipped."""
    points = make_points([1.0, 5.0, None])
    points[1].measured_user_value = 1.2
    points[1].is_user_overridden = True

    stats = calculate_tolerance_stats(points, 0.5)
    assert stats.total_points == 2
    assert stats.average == pytest.approx(1.1)
    assert stats.max == pytest.approx(1.2)

    print("  [PASS] Stats use final values")


def test_exceedance_and_pass_fail():
    """A point beyond tolerance of the average fails."""
    points = make_points([1.0, 1.0, 1.0, 2.0])

    stats = calculate_tolerance_stats(points, 0.5)
    assert stats.average == pytest.approx(1.25)
    assert stats.exceedance_count == 1
    assert stats.pass_rate == pytest.approx(0.75)
    assert 0.0 <= stats.pass_rate <= 1.0

    updated = calculate_pass_fail(points, 0.5)
    assert [p.pass_fail for p in updated] == [True, True, True, False]

    # Inputs are left untouched
    assert all(p.pass_fail is None for p in points)

    print("  [PASS] Exceedance and pass/fail")


def test_heatmap_classification():
    """Green within tolerance, yellow within 1.5x, red beyond."""
    assert classify_deviation(0.5, 0.5) == HeatmapColor.GREEN
    assert classify_deviation(0.75, 0.5) == HeatmapColor.YELLOW
    assert classify_deviation(0.76, 0.5) == HeatmapColor.RED

    points = make_points([0.0, 0.0, 0.0, 3.0, None])
    cells = generate_heatmap_data(points, 0.5)

    assert len(cells) == 5
    assert [c.color for c in cells[:3]] == [HeatmapColor.YELLOW] * 3
    assert cells[0].normalized_deviation == pytest.approx(1.5)
    assert cells[3].color == HeatmapColor.RED
    assert cells[3].deviation == pytest.approx(2.25)
    assert cells[3].normalized_deviation == 2.0
    assert cells[4].deviation == 0.0
    assert cells[4].color == HeatmapColor.GREEN
    assert cells[3].to_dict()["color"] == "red"

    with pytest.raises(ValidationError):
        generate_heatmap_data(points, 0.0)

    print("  [PASS] Heatmap classification")


def test_uncertainty():
    """Standard error of the mean with the sample deviation."""
    assert calculate_uncertainty(make_points([1.0, 1.1, 0.9])) == pytest.approx(0.1 / 3 ** 0.5)
    assert calculate_uncertainty(make_points([1.0])) == 0.0
    assert calculate_uncertainty([]) == 0.0

    print("  [PASS] Uncertainty")


def test_height_deviation_channel():
    """LiDAR heights get their own pass/fail, separate from values."""
    geometry = make_geometry(3.0, units=Units.METRIC, lidar_available=True)
    points = make_points([10.0, 10.0, 10.0, 10.0], heights=[0.000, 0.002, 0.010, None])

    updated = calculate_height_deviations(points, geometry)

    assert updated[0].deviation_from_avg == pytest.approx(-0.004)
    assert updated[1].deviation_from_avg == pytest.approx(-0.002)
    assert updated[2].deviation_from_avg == pytest.approx(0.006)
    assert [p.lidar_pass_fail for p in updated[:3]] == [False, True, False]
    assert updated[3].deviation_from_avg is None
    assert updated[3].lidar_pass_fail is None

    # Value channel untouched
    assert all(p.pass_fail is None for p in updated)

    no_lidar = make_geometry(3.0, units=Units.METRIC, lidar_available=False)
    unchanged = calculate_height_deviations(points, no_lidar)
    assert all(p.deviation_from_avg is None for p in unchanged)

    print("  [PASS] Height deviation channel")


def test_tolerance_bounds():
    test_cases = [
        ((0.125, Units.IMPERIAL), True),
        ((12.0, Units.IMPERIAL), True),
        ((12.01, Units.IMPERIAL), False),
        ((0.0, Units.IMPERIAL), False),
        ((-1.0, Units.METRIC), False),
        ((300.0, Units.METRIC), True),
        ((301.0, Units.METRIC), False),
        ((1.0, "furlongs"), False),
    ]

    for (tolerance, units), expected in test_cases:
        assert validate_tolerance(tolerance, units) == expected, f"{tolerance} {units}"

    with pytest.raises(ValidationError):
        require_tolerance(13.0, Units.IMPERIAL)

    assert default_tolerances(Units.IMPERIAL)[0] == 0.125
    assert default_tolerances(Units.METRIC)[0] == 3.0

    print(f"  [PASS] Tolerance bounds: {len(test_cases)}/{len(test_cases)}")


def test_quality_tiers():
    assert classify_quality(1.0, 0.0, 0.2) == QualityLevel.EXCELLENT
    assert classify_quality(0.95, 0.019, 0.2) == QualityLevel.EXCELLENT
    assert classify_quality(0.92, 0.019, 0.2) == QualityLevel.GOOD
    assert classify_quality(1.0, 0.03, 0.2) == QualityLevel.GOOD
    assert classify_quality(1.0, 0.05, 0.2) == QualityLevel.ACCEPTABLE
    assert classify_quality(0.80, 0.0, 0.2) == QualityLevel.ACCEPTABLE
    assert classify_quality(0.79, 0.0, 0.2) == QualityLevel.POOR

    print("  [PASS] Quality tiers")


def test_assess_quality_recommendations():
    excellent = assess_quality(make_geometry(0.2), make_points([1.0, 1.0, 1.0, 1.0]))
    assert excellent.quality == QualityLevel.EXCELLENT
    assert excellent.recommendations == ["Excellent measurement quality"]

    acceptable = assess_quality(make_geometry(0.2), make_points([1.0, 1.1, 0.9]))
    assert acceptable.quality == QualityLevel.ACCEPTABLE
    assert acceptable.recommendations == [
        "Consider re-measuring points with high deviations",
        "High variation between measurements - check for systematic errors",
    ]

    good = assess_quality(make_geometry(0.15), make_points([1.0] * 9 + [1.2]))
    assert good.quality == QualityLevel.GOOD
    assert good.recommendations[0] == "Good measurement quality"

    poor = assess_quality(make_geometry(0.5), make_points([0.0, 0.0, 0.0, 3.0]))
    assert poor.quality == QualityLevel.POOR
    assert poor.recommendations[:3] == [
        "Significant quality issues detected",
        "Re-measure all points with high deviations",
        "Check measurement equipment and technique",
    ]
    assert poor.to_dict()["quality"] == "Poor"

    print("  [PASS] Quality assessment recommendations")


def run_all_tests():
    """Run all tolerance engine tests."""
    print("\n" + "=" * 60)
    print("Tolerance Engine Tests")
    print("=" * 60)

    tests = [
        test_tolerance_stats_scenario,
        test_tolerance_stats_empty,
        test_stats_use_final_values,
        test_exceedance_and_pass_fail,
        test_heatmap_classification,
        test_uncertainty,
        test_height_deviation_channel,
        test_tolerance_bounds,
        test_quality_tiers,
        test_assess_quality_recommendations,
    ]

    results = []
    for test in tests:
        try:
            test()
            results.append(True)
        except AssertionError as e:
            print(f"  [FAIL] {test.__name__}: {e}")
            results.append(False)

    passed = sum(results)
    total = len(results)
    print("\n" + "=" * 60)
    print(f"Tolerance Engine Results: {passed}/{total} tests passed")
    print("=" * 60)

    return passed == total


if __name__ == "__main__":
    success = run_all_tests()
    sys.exit(0 if success else 1)
