"""
Per-sample gaze classification.

``is_off_screen`` is the pure decision; ``GazeClassifier`` wraps it with the
snapshot side effect and the append into the session log.
"""
from __future__ import annotations

import logging
import math
from typing import Callable, Optional, Tuple

from GazeProctor.core.session import ClassifiedEvent, Session
from .estimator import GazeSample
from .snapshot import SnapshotCapture

logger = logging.getLogger(__name__)

ViewportProvider = Callable[[], Tuple[int, int]]


def round_half_up(v: float) -> int:
    return int(math.floor(float(v) + 0.5))


def is_off_screen(x: float, y: float, viewport_width: float, viewport_height: float) -> bool:
    return x < 0 or x > viewport_width or y < 0 or y > viewport_height


class GazeClassifier:
    def __init__(self, viewport: ViewportProvider, capture: Optional[SnapshotCapture] = None) -> None:
        # viewport is queried on every sample; a resize only affects later samples
        self.viewport = viewport
        self.capture = capture

    def process(self, sample: GazeSample, session: Session) -> Optional[ClassifiedEvent]:
        """Classify ``sample`` and log it. Returns None when not tracking."""
        if not session.tracking:
            return None
        x = round_half_up(sample.x)
        y = round_half_up(sample.y)
        vw, vh = self.viewport()
        off = is_off_screen(x, y, vw, vh)
        snapshot: Optional[str] = None
        snapshot_id: Optional[str] = None
        if off:
            snapshot = self._snapshot()
            if snapshot is not None:
                snapshot_id = session.next_snapshot_name(self.capture.extension)  # type: ignore[union-attr]
        event = ClassifiedEvent(
            x=x,
            y=y,
            timestamp=float(sample.elapsed),
            off_screen=off,
            snapshot=snapshot,
            snapshot_id=snapshot_id,
        )
        session.events.append(event)
        if off:
            logger.debug("Off-screen gaze (%d, %d) at t=%.3f snapshot=%s", x, y, sample.elapsed, snapshot_id)
        return event

    def _snapshot(self) -> Optional[str]:
        if self.capture is None:
            return None
        return self.capture.capture()
