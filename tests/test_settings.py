import json

from GazeProctor.core.settings import SettingsManager


def test_defaults_when_file_missing(tmp_path):
    s = SettingsManager(str(tmp_path / "settings.json"))
    assert s.viewport() == (1920, 1080)
    assert s.heatmap_radius() == 35
    assert s.heatmap_point_weight() == 10
    assert s.heatmap_max_value() == 100
    assert s.report_margin() == 300
    assert s.snapshot_downscale() == 5
    assert s.snapshot_jpeg_quality() == 50
    assert s.archive_name() == "exam_report.zip"
    assert s.show_prediction_points()


def test_round_trip(tmp_path):
    path = tmp_path / "settings.json"
    s = SettingsManager(str(path))
    s.set_viewport(1280, 720)
    s.set_output_dir("reports")
    s.save()
    again = SettingsManager(str(path))
    assert again.viewport() == (1280, 720)
    assert again.output_dir() == "reports"


def test_partial_file_falls_back_per_key(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"heatmap": {"radius": 20}, "viewport": "bad"}), encoding="utf-8")
    s = SettingsManager(str(path))
    assert s.heatmap_radius() == 20
    assert s.heatmap_blur() == 0.85
    assert s.viewport() == (1920, 1080)
    assert s.report_margin() == 300
