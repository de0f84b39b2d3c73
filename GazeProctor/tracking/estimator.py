"""
Gaze estimator capability interface.

The proctoring core never talks to an estimation engine directly. It only
needs the lifecycle (begin/pause/resume/end/clear_data), a single push-style
listener receiving ``(x, y, elapsed)`` per estimate, and a few display flags
configured once at startup. ``GazeEstimator`` spells out that surface;
``ReplayGazeEstimator`` implements it over recorded samples.
"""
from __future__ import annotations

import csv
import logging
import math
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

logger = logging.getLogger(__name__)

GazeListener = Callable[[float, float, float], None]


class EstimatorUnavailable(RuntimeError):
    """The estimator is missing or could not start (e.g. webcam access denied)."""


@dataclass(frozen=True)
class GazeSample:
    x: float  # screen px, may lie outside the viewport
    y: float
    elapsed: float  # session-relative, monotonically increasing


class GazeEstimator:
    def set_gaze_listener(self, listener: Optional[GazeListener]) -> None:
        raise NotImplementedError

    def begin(self) -> None:
        raise NotImplementedError

    def pause(self) -> None:
        raise NotImplementedError

    def resume(self) -> None:
        raise NotImplementedError

    def end(self) -> None:
        raise NotImplementedError

    def clear_data(self) -> None:
        raise NotImplementedError

    # Display capabilities; engines without them simply ignore the call
    def show_video_preview(self, show: bool) -> None:
        pass

    def show_prediction_points(self, show: bool) -> None:
        pass

    def apply_kalman_filter(self, apply: bool) -> None:
        pass


class ReplayGazeEstimator(GazeEstimator):
    """Feeds recorded samples to the listener, one per ``pump()`` step."""

    def __init__(self, samples: Iterable[GazeSample]) -> None:
        self._samples: List[GazeSample] = list(samples)
        self._cursor = 0
        self._listener: Optional[GazeListener] = None
        self.running = False
        self.paused = False
        self.prediction_points = False
        self.video_preview = False
        self.kalman = False
        self.clear_count = 0

    def set_gaze_listener(self, listener: Optional[GazeListener]) -> None:
        self._listener = listener

    def begin(self) -> None:
        if self.running:
            return
        self.running = True
        self.paused = False
        logger.info("Replay estimator started with %d samples", len(self._samples))

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def end(self) -> None:
        self.running = False
        self._listener = None

    def clear_data(self) -> None:
        self.clear_count += 1

    def show_video_preview(self, show: bool) -> None:
        self.video_preview = bool(show)

    def show_prediction_points(self, show: bool) -> None:
        self.prediction_points = bool(show)

    def apply_kalman_filter(self, apply: bool) -> None:
        self.kalman = bool(apply)

    def pump(self, count: Optional[int] = None) -> int:
        """Deliver up to ``count`` samples (all remaining if None). Returns delivered count."""
        if not self.running or self.paused:
            return 0
        end = len(self._samples) if count is None else min(len(self._samples), self._cursor + int(count))
        delivered = 0
        while self._cursor < end:
            s = self._samples[self._cursor]
            self._cursor += 1
            if self._listener is not None:
                self._listener(s.x, s.y, s.elapsed)
            delivered += 1
        return delivered


def load_samples_csv(path: str) -> List[GazeSample]:
    """Read ``x,y,elapsed`` rows. Rows that fail to parse or hold NaN/inf are skipped."""
    out: List[GazeSample] = []
    with open(path, newline="", encoding="utf-8") as f:
        r = csv.DictReader(f)
        for lineno, row in enumerate(r, start=2):
            try:
                x, y, t = float(row["x"]), float(row["y"]), float(row["elapsed"])
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed sample on line %d of %s", lineno, path)
                continue
            if not all(math.isfinite(v) for v in (x, y, t)):
                logger.warning("Skipping non-finite sample on line %d of %s", lineno, path)
                continue
            out.append(GazeSample(x, y, t))
    return out
