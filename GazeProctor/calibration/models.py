"""
Calibration data models.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple


class PointState(Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"
    CLICKED = "clicked"


class CalibrationPhase(Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


# 3x3 grid in percent of the viewport, row-major: corners, edge midpoints, center
GRID_PERCENTAGES = (5.0, 50.0, 95.0)
TOTAL_CALIBRATION_POINTS = 9


@dataclass
class CalibrationPoint:
    x_pct: float
    y_pct: float
    state: PointState = PointState.INACTIVE

    def to_pixels(self, viewport: Tuple[int, int]) -> Tuple[int, int]:
        w, h = viewport
        return int(w * self.x_pct / 100.0), int(h * self.y_pct / 100.0)


def default_grid() -> List[CalibrationPoint]:
    return [CalibrationPoint(x_pct=px, y_pct=py) for py in GRID_PERCENTAGES for px in GRID_PERCENTAGES]
