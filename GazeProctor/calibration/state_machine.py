"""
Nine-point calibration gate.

The subject clicks the nine dots in order while looking at each one. Only the
currently active dot accepts a click; anything else is ignored so fixation
stays in sequence. Once the ninth dot is clicked the points are discarded and
exam tracking is unlocked.

Lifecycle: NOT_STARTED -> IN_PROGRESS(0..8) -> COMPLETE. ``reset()`` returns
to NOT_STARTED.
"""
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from .models import (
    CalibrationPhase,
    CalibrationPoint,
    PointState,
    TOTAL_CALIBRATION_POINTS,
    default_grid,
)

logger = logging.getLogger(__name__)


class CalibrationSession:
    def __init__(self, on_markers: Optional[Callable[[bool], None]] = None) -> None:
        # on_markers(show) toggles the estimator's live prediction markers
        self._on_markers = on_markers
        self.points: List[CalibrationPoint] = []
        self.current_index = 0
        self._started = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def phase(self) -> CalibrationPhase:
        if self.current_index >= TOTAL_CALIBRATION_POINTS:
            return CalibrationPhase.COMPLETE
        if self._started:
            return CalibrationPhase.IN_PROGRESS
        return CalibrationPhase.NOT_STARTED

    @property
    def is_complete(self) -> bool:
        return self.phase is CalibrationPhase.COMPLETE

    def active_point(self) -> Optional[CalibrationPoint]:
        for p in self.points:
            if p.state is PointState.ACTIVE:
                return p
        return None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def start(self) -> None:
        self.points = default_grid()
        self.points[0].state = PointState.ACTIVE
        self.current_index = 0
        self._started = True
        logger.info("Calibration started (%d points)", TOTAL_CALIBRATION_POINTS)
        self._markers(True)

    def click(self, index: int) -> bool:
        """Register a click on point ``index``. Returns False when ignored."""
        if not self._started or index != self.current_index:
            logger.debug("Ignoring calibration click %s (active=%s)", index, self.current_index)
            return False
        self.points[index].state = PointState.CLICKED
        nxt = index + 1
        if nxt < TOTAL_CALIBRATION_POINTS:
            self.points[nxt].state = PointState.ACTIVE
        self.current_index = nxt
        if nxt == TOTAL_CALIBRATION_POINTS:
            self._finish()
        return True

    def reset(self) -> None:
        self.points = []
        self.current_index = 0
        self._started = False

    def _finish(self) -> None:
        self.points = []
        self._started = False
        logger.info("Calibration complete")
        self._markers(False)

    def _markers(self, show: bool) -> None:
        if self._on_markers is not None:
            self._on_markers(show)
