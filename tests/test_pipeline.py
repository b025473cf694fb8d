"""
Session Pipeline Tests

Tests for session geometry, measurement commits, recomputation, export
and settings loading.
"""

import json
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from levelmap.calibration import RulerMarking
from levelmap.config import SessionSettings, load_settings, settings_from_dict
from levelmap.constants import FractionalResolution, MeasurementMethod, Units
from levelmap.errors import LaserDetectionError, ValidationError
from levelmap.measurement import (
    MeasurementExtractor,
    VisionReading,
    extract_measurement,
    manual_result,
)
from levelmap.pipeline import (
    MeasurementSession,
    load_session_file,
    parse_label,
    session_from_dict,
)
from levelmap.session import SessionGeometry
from levelmap.tolerance import QualityLevel

EIGHTH = FractionalResolution.EIGHTH


def new_session(rows=3, cols=3, tolerance=0.25, lidar_available=False):
    return MeasurementSession.from_corners(
        (0.0, 0.0, 0.0), (2.0, 0.0, 3.0),
        rows=rows, cols=cols, units=Units.IMPERIAL, tolerance=tolerance,
        resolution=EIGHTH, lidar_available=lidar_available,
    )


def vision_result(value):
    """Vision reading of value inches on a 50 px/inch ruler."""
    markings = [
        RulerMarking(value=0, text="0", confidence=0.9, pixel_position=(10, 100)),
        RulerMarking(value=12, text="12", confidence=0.9, pixel_position=(10, 700)),
    ]
    return extract_measurement((10, 100 + value * 50), markings, Units.IMPERIAL, EIGHTH)


def test_session_geometry_validation():
    geometry = SessionGeometry.from_corners(
        (0, 0, 0), (2, 0, 3), 4, 4, Units.IMPERIAL, 0.125, resolution=EIGHTH
    )
    assert geometry.width == pytest.approx(2.0)
    assert geometry.length == pytest.approx(3.0)
    assert geometry.area == pytest.approx(6.0)
    assert geometry.to_export_record() == {
        "units": "imperial", "tolerance": 0.125, "rows": 4, "cols": 4,
        "rectWidth": 2.0, "rectLength": 3.0, "resolution": "1/8", "lidarAvailable": False,
    }

    invalid = [
        dict(rows=1, cols=4, units=Units.IMPERIAL, tolerance=0.125),
        dict(rows=4, cols=4, units="cubits", tolerance=0.125),
        dict(rows=4, cols=4, units=Units.IMPERIAL, tolerance=0.0),
        dict(rows=4, cols=4, units=Units.METRIC, tolerance=301.0),
        dict(rows=4, cols=4, units=Units.METRIC, tolerance=3.0, resolution=EIGHTH),
        dict(rows=4, cols=4, units=Units.IMPERIAL, tolerance=0.125, resolution=0.3),
        dict(rows=4, cols=4, units=Units.IMPERIAL, tolerance=0.125, width=-1.0),
    ]
    for kwargs in invalid:
        with pytest.raises(ValidationError):
            SessionGeometry(**kwargs)

    with pytest.raises(ValidationError):
        SessionGeometry.from_corners((0, 0, 0), (0, 1, 0), 4, 4, Units.IMPERIAL, 0.125)

    print("  [PASS] Session geometry validation")


def test_session_grid():
    session = new_session()

    assert session.labels == ["A1", "A2", "A3", "B1", "B2", "B3", "C1", "C2", "C3"]
    assert all(p.session_id == session.geometry.session_id for p in session.snapshot())

    with pytest.raises(ValidationError):
        session.point("D1")

    smaller = session.regenerate(replace(session.geometry, rows=2, cols=2))
    assert len(smaller.labels) == 4
    assert len(session.labels) == 9

    print("  [PASS] Session grid")


def test_commit_and_override():
    """Manual entries override vision readings until cleared."""
    session = new_session()

    committed = session.commit_measurement("A1", vision_result(1.5))
    assert committed.ai_measured_value == pytest.approx(1.5)
    assert committed.ai_method == MeasurementMethod.VISION
    assert committed.final_value == pytest.approx(1.5)

    session.commit_measurement("A1", manual_result("1 3/8", Units.IMPERIAL, EIGHTH))
    point = session.point("A1")
    assert point.is_user_overridden
    assert point.final_value == pytest.approx(1.375)
    assert point.final_display == "1 3/8 in"
    assert point.ai_measured_value == pytest.approx(1.5)

    session.clear_override("A1")
    assert session.point("A1").final_value == pytest.approx(1.5)

    # Copies handed out do not alias session state
    copy = session.point("A1")
    copy.ai_measured_value = 99.0
    assert session.point("A1").ai_measured_value == pytest.approx(1.5)

    with pytest.raises(ValidationError):
        session.commit_measurement("Z9", vision_result(1.0))

    print("  [PASS] Commit and override")


def test_concurrent_commits():
    """Commits from many threads are never lost."""
    session = new_session(rows=4, cols=5)
    labels = session.labels

    def capture(worker):
        for label in labels:
            session.add_photo(label, f"{worker}-{label}")
            session.commit_measurement(label, manual_result(str(worker), Units.IMPERIAL))

    workers = 8
    with ThreadPoolExecutor(max_workers=workers) as pool:
        list(pool.map(capture, range(workers)))

    for point in session.snapshot():
        assert len(point.photo_ids) == workers
        assert point.is_user_overridden
        assert point.final_value in set(float(w) for w in range(workers))

    print("  [PASS] Concurrent commits")


def test_recompute_and_statistics():
    session = new_session(tolerance=0.5)
    for label, value in zip(["A1", "A2", "A3", "B1"], [1.0, 1.0, 1.0, 2.0]):
        session.commit_measurement(label, vision_result(value))

    stats = session.recompute()
    assert stats.total_points == 4
    assert stats.average == pytest.approx(1.25)
    assert stats.exceedance_count == 1

    assert session.point("A1").pass_fail is True
    assert session.point("B1").pass_fail is False
    assert session.point("C3").pass_fail is None

    assert session.statistics() == stats
    assert session.uncertainty() > 0
    assert session.quality().quality == QualityLevel.POOR
    assert len(session.heatmap()) == 9

    print("  [PASS] Recompute and statistics")


def test_recompute_lidar_channel():
    session = new_session(tolerance=0.25, lidar_available=True)
    for label in session.labels:
        session.commit_lidar_height(label, 0.040 if label == "C3" else 0.001)

    session.recompute()

    # C3 sits well over a quarter inch above the mean height
    assert session.point("C3").lidar_pass_fail is False
    assert session.point("C3").deviation_from_avg == pytest.approx(0.039 * 8 / 9)
    assert session.point("A1").lidar_pass_fail is True
    assert session.point("A1").pass_fail is None

    print("  [PASS] LiDAR recompute")


def test_measure_point_with_analyzer():
    class StubAnalyzer:
        def __init__(self, reading=None, error=None):
            self.reading = reading
            self.error = error

        def analyze(self, image):
            if self.error:
                raise self.error
            return self.reading

    markings = [
        RulerMarking(value=0, text="0", confidence=0.9, pixel_position=(0, 0)),
        RulerMarking(value=1, text="1", confidence=0.9, pixel_position=(0, 80)),
    ]
    analyzer = StubAnalyzer(VisionReading(laser_pixel=(0, 30), markings=markings))
    extractor = MeasurementExtractor(analyzer, Units.IMPERIAL, EIGHTH)

    session = new_session()
    result = session.measure_point("B2", image=None, extractor=extractor)
    assert result.value == pytest.approx(0.375)
    assert session.point("B2").ai_measured_display == "3/8 in"

    failing = MeasurementExtractor(StubAnalyzer(error=LaserDetectionError()), Units.IMPERIAL)
    with pytest.raises(LaserDetectionError):
        session.measure_point("B3", image=None, extractor=failing)
    assert session.point("B3").final_value is None

    print("  [PASS] Measure point")


def test_export_and_reload(tmp_path):
    session = new_session(tolerance=0.5)
    session.commit_measurement("A1", vision_result(1.0))
    session.commit_measurement("A2", vision_result(1.0))
    session.commit_measurement("A2", manual_result("1 1/4", Units.IMPERIAL, EIGHTH))
    session.commit_measurement("B1", vision_result(2.0))
    session.recompute()

    summary = session.export_summary()
    assert set(summary) == {"session", "points", "statistics", "quality", "heatmap"}
    assert len(summary["points"]) == 9
    assert summary["points"][0]["label"] == "A1"

    path = tmp_path / "session.json"
    path.write_text(json.dumps(summary))

    reloaded = load_session_file(str(path))
    assert reloaded.labels == session.labels
    assert reloaded.point("A2").is_user_overridden
    assert reloaded.point("A2").final_value == pytest.approx(1.25)
    assert not reloaded.point("A1").is_user_overridden
    assert reloaded.statistics().average == pytest.approx(session.statistics().average)

    print("  [PASS] Export and reload")


def test_export_and_reload_keeps_lidar(tmp_path):
    """Resolution, LiDAR flag and display strings survive a reload."""
    session = new_session(rows=2, cols=2, tolerance=0.25, lidar_available=True)
    for label, height in [("A1", 0.001), ("A2", 0.002), ("B1", 0.001), ("B2", 0.020)]:
        session.commit_measurement(label, vision_result(1.0))
        session.commit_lidar_height(label, height)
    session.commit_measurement("B2", manual_result("1 3/8", Units.IMPERIAL, EIGHTH))
    session.recompute()

    summary = session.export_summary()
    assert summary["session"]["resolution"] == "1/8"
    assert summary["session"]["lidarAvailable"] is True

    path = tmp_path / "session.json"
    path.write_text(json.dumps(summary))

    reloaded = load_session_file(str(path))
    assert reloaded.geometry.lidar_available
    assert reloaded.geometry.resolution == EIGHTH

    reloaded.recompute()
    for label in reloaded.labels:
        point = reloaded.point(label)
        assert point.deviation_from_avg is not None, label
        assert point.lidar_pass_fail is not None, label
    assert reloaded.point("B2").lidar_pass_fail is False
    assert reloaded.point("A1").lidar_pass_fail is True

    assert reloaded.point("A1").final_display == "1 in"
    assert reloaded.point("B2").final_display == "1 3/8 in"
    assert reloaded.point("B2").ai_measured_display == "1 in"

    print("  [PASS] Export and reload keeps LiDAR")


def test_session_file_errors(tmp_path):
    with pytest.raises(ValidationError):
        load_session_file(str(tmp_path / "missing.json"))

    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    with pytest.raises(ValidationError):
        load_session_file(str(bad))

    outside = {
        "session": {"units": "imperial", "tolerance": 0.25, "rows": 2, "cols": 2},
        "points": [{"label": "C1", "aiValue": 1.0}],
    }
    with pytest.raises(ValidationError):
        session_from_dict(outside)

    listed = tmp_path / "listed.json"
    listed.write_text(json.dumps([1, 2]))
    with pytest.raises(ValidationError):
        load_session_file(str(listed))

    malformed = [
        {"session": [1, 2], "points": []},
        {"session": {"units": "imperial", "tolerance": 0.25, "rows": 2, "cols": 2},
         "points": ["A1"]},
        {"session": {"units": "imperial", "tolerance": 0.25, "rows": 2, "cols": 2},
         "points": {"label": "A1"}},
        {"session": {"units": "imperial", "tolerance": None, "rows": 2, "cols": 2}},
        {"session": {"units": "imperial", "tolerance": 0.25, "rows": "two", "cols": 2}},
        {"session": {"units": "imperial", "tolerance": 0.25, "rows": 2, "cols": 2},
         "points": [{"label": "A1", "aiValue": "high"}]},
    ]
    for data in malformed:
        with pytest.raises(ValidationError):
            session_from_dict(data)

    assert parse_label("b12") == ("B", 12)
    with pytest.raises(ValidationError):
        parse_label("12B")

    print("  [PASS] Session file errors")


def test_settings_defaults():
    """Bundled settings file matches the built-in defaults."""
    settings = load_settings()
    assert settings.units == Units.IMPERIAL
    assert settings.tolerance == 0.125
    assert settings.resolution == EIGHTH
    assert (settings.rows, settings.cols) == (4, 4)
    assert settings.lidar_available is False

    assert settings_from_dict({}) == SessionSettings(resolution=EIGHTH)

    print("  [PASS] Settings defaults")


def test_settings_from_yaml(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("session:\n  units: metric\ngrid:\n  rows: 6\n  cols: 10\nlidar: true\n")

    settings = load_settings(str(path))
    assert settings.units == Units.METRIC
    assert settings.tolerance == 3.0
    assert settings.resolution is None
    assert (settings.rows, settings.cols) == (6, 10)
    assert settings.lidar_available is True

    with pytest.raises(ValidationError):
        load_settings(str(tmp_path / "missing.yaml"))

    bad = tmp_path / "bad.yaml"
    bad.write_text("session: [unclosed\n")
    with pytest.raises(ValidationError):
        load_settings(str(bad))

    scalar = tmp_path / "scalar.yaml"
    scalar.write_text("just a string\n")
    with pytest.raises(ValidationError):
        load_settings(str(scalar))

    with pytest.raises(ValidationError):
        settings_from_dict({"grid": {"rows": 30}})

    with pytest.raises(ValidationError):
        settings_from_dict({"session": {"resolution": "1/32"}})

    print("  [PASS] Settings from YAML")


def run_all_tests():
    """Run all session pipeline tests."""
    import tempfile

    print("\n" + "=" * 60)
    print("Session Pipeline Tests")
    print("=" * 60)

    tests = [
        test_session_geometry_validation,
        test_session_grid,
        test_commit_and_override,
        test_concurrent_commits,
        test_recompute_and_statistics,
        test_recompute_lidar_channel,
        test_measure_point_with_analyzer,
        test_settings_defaults,
    ]
    path_tests = [
        test_export_and_reload,
        test_export_and_reload_keeps_lidar,
        test_session_file_errors,
        test_settings_from_yaml,
    ]

    results = []
    for test in tests + path_tests:
        try:
            if test in path_tests:
                with tempfile.TemporaryDirectory() as tmp:
                    test(Path(tmp))
            else:
                test()
            results.append(True)
        except AssertionError as e:
            print(f"  [FAIL] {test.__name__}: {e}")
            results.append(False)

    passed = sum(results)
    total = len(results)
    print("\n" + "=" * 60)
    print(f"Session Pipeline Results: {passed}/{total} tests passed")
    print("=" * 60)

    return passed == total


if __name__ == "__main__":
    success = run_all_tests()
    sys.exit(0 if success else 1)
