"""
Settings manager for GazeProctor.

Loads/saves JSON settings (GazeProctor/settings.json unless a path is given)
and exposes typed accessors that fall back to defaults per key.
"""
from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional, Tuple


def default_settings() -> Dict[str, Any]:
    return {
        "camera_index": 0,
        "viewport": [1920, 1080],
        "estimator": {
            "show_video_preview": True,
            "show_prediction_points": True,
            "apply_kalman_filter": True,
        },
        "heatmap": {
            "radius": 35,
            "max_opacity": 0.7,
            "min_opacity": 0.05,
            "blur": 0.85,
            "point_weight": 10,
            "max_value": 100,
        },
        "report": {
            "margin": 300,
            "render_timeout_s": 0.1,
            "archive_name": "exam_report.zip",
            "output_dir": ".",
        },
        "snapshot": {"downscale": 5, "jpeg_quality": 50},
    }


class SettingsManager:
    def __init__(self, path: Optional[str] = None) -> None:
        if path is None:
            here = os.path.dirname(os.path.abspath(__file__))
            path = os.path.join(os.path.dirname(here), "settings.json")
        self.path = path
        self.data: Dict[str, Any] = {}
        self.load()

    def load(self) -> None:
        if not os.path.exists(self.path):
            self.data = default_settings()
            return
        with open(self.path, "r", encoding="utf-8") as f:
            self.data = json.load(f)

    def save(self) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self.data, f, indent=2)

    def _section(self, name: str) -> dict:
        sec = self.data.get(name, {})
        return sec if isinstance(sec, dict) else {}

    # Camera / viewport -------------------------------------------------
    def camera_index(self) -> int:
        return int(self.data.get("camera_index", 0))

    def viewport(self) -> Tuple[int, int]:
        arr = self.data.get("viewport", [1920, 1080])
        try:
            return int(arr[0]), int(arr[1])
        except (TypeError, ValueError, IndexError):
            return 1920, 1080

    def set_viewport(self, w: int, h: int) -> None:
        self.data["viewport"] = [int(w), int(h)]

    # Estimator startup flags -------------------------------------------
    def show_video_preview(self) -> bool:
        return bool(self._section("estimator").get("show_video_preview", True))

    def show_prediction_points(self) -> bool:
        return bool(self._section("estimator").get("show_prediction_points", True))

    def apply_kalman_filter(self) -> bool:
        return bool(self._section("estimator").get("apply_kalman_filter", True))

    # Heatmap -----------------------------------------------------------
    def heatmap_radius(self) -> int:
        return int(self._section("heatmap").get("radius", 35))

    def heatmap_max_opacity(self) -> float:
        return float(self._section("heatmap").get("max_opacity", 0.7))

    def heatmap_min_opacity(self) -> float:
        return float(self._section("heatmap").get("min_opacity", 0.05))

    def heatmap_blur(self) -> float:
        return float(self._section("heatmap").get("blur", 0.85))

    def heatmap_point_weight(self) -> int:
        return int(self._section("heatmap").get("point_weight", 10))

    def heatmap_max_value(self) -> int:
        return int(self._section("heatmap").get("max_value", 100))

    # Report ------------------------------------------------------------
    def report_margin(self) -> int:
        return int(self._section("report").get("margin", 300))

    def render_timeout(self) -> float:
        return float(self._section("report").get("render_timeout_s", 0.1))

    def archive_name(self) -> str:
        return str(self._section("report").get("archive_name", "exam_report.zip"))

    def output_dir(self) -> str:
        return str(self._section("report").get("output_dir", "."))

    def set_output_dir(self, path: str) -> None:
        self.data.setdefault("report", {})["output_dir"] = str(path)

    # Snapshots ---------------------------------------------------------
    def snapshot_downscale(self) -> int:
        return int(self._section("snapshot").get("downscale", 5))

    def snapshot_jpeg_quality(self) -> int:
        return int(self._section("snapshot").get("jpeg_quality", 50))
