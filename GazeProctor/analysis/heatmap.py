"""
Heatmap aggregation: turns the session log into weighted point sets.

Two views are built from the same log:

- the live view keeps on-screen gaze only, in viewport coordinates;
- the report view keeps every sample and shifts it by a margin so that
  off-screen excursions land on an extended canvas around the screen. It also
  carries the dashed outline of the true viewport drawn over the result.

Every sample contributes the same weight; overlapping points add up in the
renderer.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from GazeProctor.core.session import ClassifiedEvent

POINT_WEIGHT = 10
DISPLAY_MAX = 100
REPORT_MARGIN = 300
SCREEN_LABEL = "Screen Area"


@dataclass(frozen=True)
class HeatmapPoint:
    x: int
    y: int
    weight: int


@dataclass
class HeatmapData:
    max: int
    points: List[HeatmapPoint] = field(default_factory=list)


@dataclass(frozen=True)
class ScreenOutline:
    x: int
    y: int
    width: int
    height: int
    stroke_rgba: Tuple[int, int, int, float] = (100, 100, 100, 0.8)
    line_width: int = 3
    dash: Tuple[int, int] = (10, 5)
    label: str = SCREEN_LABEL
    label_rgba: Tuple[int, int, int, float] = (0, 0, 0, 0.7)
    label_offset: int = 20  # baseline below the outline's top edge

    @property
    def label_anchor(self) -> Tuple[int, int]:
        """Centre-aligned baseline position of the label."""
        return self.x + self.width // 2, self.y + self.label_offset


@dataclass
class ReportView:
    data: HeatmapData
    canvas_size: Tuple[int, int]  # (width, height)
    outline: ScreenOutline


def empty_view() -> HeatmapData:
    """Blank data used to clear a live layer."""
    return HeatmapData(max=1, points=[])


def build_live_view(
    events: Iterable[ClassifiedEvent],
    weight: int = POINT_WEIGHT,
    max_value: int = DISPLAY_MAX,
) -> HeatmapData:
    pts = [HeatmapPoint(int(e.x), int(e.y), int(weight)) for e in events if not e.off_screen]
    return HeatmapData(max=int(max_value), points=pts)


def build_report_view(
    events: Iterable[ClassifiedEvent],
    viewport: Tuple[int, int],
    margin: int = REPORT_MARGIN,
    weight: int = POINT_WEIGHT,
    max_value: int = DISPLAY_MAX,
) -> ReportView:
    vw, vh = int(viewport[0]), int(viewport[1])
    m = int(margin)
    pts = [HeatmapPoint(int(e.x) + m, int(e.y) + m, int(weight)) for e in events]
    return ReportView(
        data=HeatmapData(max=int(max_value), points=pts),
        canvas_size=(vw + 2 * m, vh + 2 * m),
        outline=ScreenOutline(x=m, y=m, width=vw, height=vh),
    )
