"""
GazeProctor command surface and headless runner.

``ProctorController`` is the one object the presentation layer talks to. It
owns the calibration gate, the exam session and the collaborators (gaze
estimator, snapshot capture, live heatmap renderer, evidence archiver) and
maps each user command onto them. Gaze estimates arrive through
``on_gaze``, which the estimator calls synchronously, one sample at a time.

``main()`` replays a recorded CSV of gaze samples through the whole pipeline
and writes the evidence archive, e.g.::

    python run.py replay samples.csv --viewport 1000x800 --out reports/
"""
from __future__ import annotations

import argparse
import logging
import math
import os
import sys
from typing import List, Optional, Tuple

from GazeProctor.analysis.heatmap import build_live_view, empty_view
from GazeProctor.analysis.renderer import HeatmapRenderer
from GazeProctor.calibration.models import TOTAL_CALIBRATION_POINTS
from GazeProctor.calibration.state_machine import CalibrationSession
from GazeProctor.capture.camera import CameraVideoSource, VideoSource
from GazeProctor.core.session import Session
from GazeProctor.core.settings import SettingsManager
from GazeProctor.report.archive import EvidenceArchive, EvidenceArchiver
from GazeProctor.tracking.classifier import GazeClassifier, ViewportProvider, round_half_up
from GazeProctor.tracking.estimator import (
    EstimatorUnavailable,
    GazeEstimator,
    GazeSample,
    ReplayGazeEstimator,
    load_samples_csv,
)
from GazeProctor.tracking.snapshot import SnapshotCapture

logger = logging.getLogger(__name__)

STATUS_WAITING = "Waiting for webcam..."
STATUS_READY = "Webcam ready."
STATUS_NO_ESTIMATOR = "Error: gaze estimator failed to load."
STATUS_NO_WEBCAM = "Error: Could not start webcam."
STATUS_CALIBRATED = "Calibration Complete!"

INSTRUCTIONS_INITIAL = (
    "Please allow webcam access. Then, click the 9 dots that will appear on the screen "
    "to calibrate the eye tracker. Look at each dot as you click it."
)
INSTRUCTIONS_READY = (
    'Please allow webcam access. Then click "Start 9-Point Calibration". '
    "Look at each dot as you click it."
)
INSTRUCTIONS_RECALIBRATE = 'Please allow webcam access. Then click "Start 9-Point Calibration".'
INSTRUCTIONS_NO_ESTIMATOR = (
    "The gaze estimator is missing or failed to load. Please ensure it is correctly installed."
)
INSTRUCTIONS_NO_WEBCAM = (
    "Webcam access failed. Please check permissions and ensure no other application is using the webcam."
)
INSTRUCTIONS_CALIBRATED = "Calibration Complete! You can now start the exam."


def _click_instruction(n: int) -> str:
    return f"Click the RED dot ({n} of {TOTAL_CALIBRATION_POINTS})."


class ProctorController:
    def __init__(
        self,
        estimator: Optional[GazeEstimator],
        settings: Optional[SettingsManager] = None,
        video: Optional[VideoSource] = None,
        viewport: Optional[ViewportProvider] = None,
        live_renderer: Optional[HeatmapRenderer] = None,
        archiver: Optional[EvidenceArchiver] = None,
    ) -> None:
        self.settings = settings or SettingsManager()
        self.estimator = estimator
        self.viewport: ViewportProvider = viewport or self.settings.viewport
        capture = SnapshotCapture(
            video,
            downscale=self.settings.snapshot_downscale(),
            jpeg_quality=self.settings.snapshot_jpeg_quality(),
        )
        self.classifier = GazeClassifier(self.viewport, capture)
        self.archiver = archiver or EvidenceArchiver(
            margin=self.settings.report_margin(),
            weight=self.settings.heatmap_point_weight(),
            max_value=self.settings.heatmap_max_value(),
            radius=self.settings.heatmap_radius(),
            render_timeout=self.settings.render_timeout(),
        )
        self.live_renderer = live_renderer
        self.calibration = CalibrationSession(on_markers=self._show_markers)
        self.session = Session()

        self.ready = False
        self.status_text = STATUS_WAITING
        self.instructions_text = INSTRUCTIONS_INITIAL
        self.modal_open = True
        self.show_report = False
        self.show_heatmap = False
        self.cursor: Optional[Tuple[int, int]] = None

    # ------------------------------------------------------------------
    # Startup / shutdown
    # ------------------------------------------------------------------
    def initialize(self) -> bool:
        """Hook up the gaze listener and start the estimator."""
        if self.live_renderer is None:
            vw, vh = self.viewport()
            self.live_renderer = HeatmapRenderer(
                vw,
                vh,
                radius=self.settings.heatmap_radius(),
                max_opacity=self.settings.heatmap_max_opacity(),
                min_opacity=self.settings.heatmap_min_opacity(),
                blur=self.settings.heatmap_blur(),
            )
        if self.estimator is None:
            self.status_text = STATUS_NO_ESTIMATOR
            self.instructions_text = INSTRUCTIONS_NO_ESTIMATOR
            logger.error("No gaze estimator available")
            return False
        try:
            self.estimator.set_gaze_listener(self.on_gaze)
            self.estimator.begin()
            self.estimator.show_video_preview(self.settings.show_video_preview())
            self.estimator.show_prediction_points(self.settings.show_prediction_points())
            self.estimator.apply_kalman_filter(self.settings.apply_kalman_filter())
        except (EstimatorUnavailable, OSError) as e:
            logger.error("Gaze estimator initialization failed: %s", e)
            self.status_text = STATUS_NO_WEBCAM
            self.instructions_text = INSTRUCTIONS_NO_WEBCAM
            return False
        self.ready = True
        self.status_text = STATUS_READY
        self.instructions_text = INSTRUCTIONS_READY
        logger.info("Gaze estimator ready")
        return True

    def shutdown(self) -> None:
        if self.estimator is not None:
            self.estimator.end()

    # ------------------------------------------------------------------
    # Gaze input
    # ------------------------------------------------------------------
    def on_gaze(self, x: Optional[float], y: Optional[float], elapsed: float) -> None:
        if x is None or y is None or not self.session.tracking:
            self.cursor = None
            return
        if not (math.isfinite(x) and math.isfinite(y)):
            logger.debug("Discarding non-finite gaze estimate (%s, %s)", x, y)
            self.cursor = None
            return
        self.cursor = (round_half_up(x), round_half_up(y))
        self.classifier.process(GazeSample(float(x), float(y), float(elapsed)), self.session)

    # ------------------------------------------------------------------
    # Calibration commands
    # ------------------------------------------------------------------
    def start_calibration(self) -> bool:
        if not self.ready:
            logger.warning("Calibration requested before the estimator is ready")
            return False
        self.calibration.start()
        self.instructions_text = _click_instruction(1)
        self._log_calibration_target()
        return True

    def click_calibration_point(self, index: int) -> bool:
        if not self.calibration.click(index):
            return False
        if self.calibration.is_complete:
            self.status_text = STATUS_CALIBRATED
            self.instructions_text = INSTRUCTIONS_CALIBRATED
        else:
            self.instructions_text = _click_instruction(index + 2)
            self._log_calibration_target()
        return True

    def calibration_target(self) -> Optional[Tuple[int, int]]:
        """Pixel position of the dot awaiting a click, if any."""
        point = self.calibration.active_point()
        if point is None:
            return None
        return point.to_pixels(self.viewport())

    def _log_calibration_target(self) -> None:
        logger.debug("Calibration target %d at %s", self.calibration.current_index + 1, self.calibration_target())

    def close_calibration_overlay(self) -> bool:
        if not self.calibration.is_complete:
            logger.warning("Calibration overlay cannot close before calibration completes")
            return False
        self.modal_open = False
        return True

    def _show_markers(self, show: bool) -> None:
        if self.ready and self.estimator is not None:
            self.estimator.show_prediction_points(show)

    # ------------------------------------------------------------------
    # Exam commands
    # ------------------------------------------------------------------
    def can_start_exam(self) -> bool:
        return self.ready and self.calibration.is_complete and not self.session.started

    def start_exam(self) -> bool:
        if not self.can_start_exam():
            logger.warning(
                "Start exam rejected (ready=%s calibrated=%s started=%s)",
                self.ready,
                self.calibration.is_complete,
                self.session.started,
            )
            return False
        self.session.reset()
        self.session.tracking = True
        self.session.started = True
        self.show_report = False
        self.show_heatmap = False
        if self.live_renderer is not None:
            self.live_renderer.set_data(empty_view())
        if self.estimator is not None:
            self.estimator.resume()
        logger.info("Exam started")
        return True

    def stop_exam(self) -> bool:
        if not self.session.started:
            logger.warning("Stop exam rejected: no exam in progress")
            return False
        self.session.tracking = False
        self.cursor = None
        if self.ready and self.estimator is not None:
            self.estimator.pause()
        self.show_report = True
        self.show_heatmap = True
        logger.info(
            "Exam stopped: %d samples, %d off-screen",
            len(self.session.events),
            self.session.off_screen_count,
        )
        self.refresh_live_heatmap()
        return True

    def recalibrate(self) -> None:
        if self.ready and self.estimator is not None:
            self.estimator.clear_data()
        self.calibration.reset()
        self.session.tracking = False
        self.session.started = False
        self.session.reset()
        self.cursor = None
        self.modal_open = True
        self.show_report = False
        self.show_heatmap = False
        if self.ready:
            self.status_text = STATUS_READY
        self.instructions_text = INSTRUCTIONS_RECALIBRATE
        logger.info("Recalibration requested; session cleared")

    # ------------------------------------------------------------------
    # Heatmap and report
    # ------------------------------------------------------------------
    def refresh_live_heatmap(self) -> bool:
        if not self.show_heatmap or self.live_renderer is None or not self.session.events:
            return False
        view = build_live_view(
            self.session.events,
            weight=self.settings.heatmap_point_weight(),
            max_value=self.settings.heatmap_max_value(),
        )
        if not view.points:
            return False
        self.live_renderer.set_data(view)
        return True

    def assemble_report(self) -> Optional[EvidenceArchive]:
        if not self.show_report:
            logger.warning("Report requested before the exam was stopped")
            return None
        return self.archiver.assemble(self.session, self.viewport())

    def download_report(self, output_dir: Optional[str] = None) -> Optional[str]:
        archive = self.assemble_report()
        if archive is None:
            return None
        out = output_dir or self.settings.output_dir()
        os.makedirs(out, exist_ok=True)
        path = os.path.join(out, self.settings.archive_name())
        with open(path, "wb") as f:
            f.write(archive.to_zip())
        logger.info("Evidence archive written to %s", path)
        return path


# ----------------------------------------------------------------------
# Headless replay
# ----------------------------------------------------------------------
def parse_viewport(text: str) -> Tuple[int, int]:
    try:
        w, h = (int(v) for v in text.lower().split("x"))
    except ValueError:
        raise argparse.ArgumentTypeError("viewport must be 'WIDTHxHEIGHT'")
    if w <= 0 or h <= 0:
        raise argparse.ArgumentTypeError("viewport dimensions must be positive")
    return w, h


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="GazeProctor headless tools")
    sub = parser.add_subparsers(dest="command", required=True)

    replay = sub.add_parser("replay", help="Replay recorded gaze samples and export the proctoring evidence archive")
    replay.add_argument("samples", help="CSV file with x,y,elapsed columns")
    replay.add_argument("--viewport", type=parse_viewport, default=None, help="Viewport size 'WxH' (default from settings)")
    replay.add_argument(
        "--camera",
        nargs="?",
        type=int,
        const=-1,
        default=None,
        help="Capture snapshots from a webcam (index; the settings' camera_index when no value is given)",
    )
    replay.add_argument("--out", default=None, help="Output directory for the archive")
    replay.add_argument("--settings", default=None, help="Path to a settings JSON file")
    replay.add_argument("--log-level", default="INFO", help="Logging level")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = SettingsManager(args.settings)
    vp = args.viewport or settings.viewport()

    try:
        samples = load_samples_csv(args.samples)
    except OSError as e:
        logger.error("Cannot read samples: %s", e)
        return 2

    video: Optional[CameraVideoSource] = None
    if args.camera is not None:
        idx = settings.camera_index() if args.camera == -1 else args.camera
        cam = CameraVideoSource(index=idx)
        if cam.start():
            video = cam

    estimator = ReplayGazeEstimator(samples)
    ctrl = ProctorController(estimator, settings, video=video, viewport=lambda: vp)
    try:
        if not ctrl.initialize():
            logger.error(ctrl.status_text)
            return 1
        ctrl.start_calibration()
        for i in range(TOTAL_CALIBRATION_POINTS):
            ctrl.click_calibration_point(i)
        ctrl.close_calibration_overlay()
        ctrl.start_exam()
        estimator.pump()
        ctrl.stop_exam()
        try:
            path = ctrl.download_report(args.out)
        except OSError as e:
            logger.error("Cannot write evidence archive: %s", e)
            return 2
        for line in ctrl.session.off_screen_lines():
            logger.info("%s", line)
    finally:
        ctrl.shutdown()
        if video is not None:
            video.stop()
    print(path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
