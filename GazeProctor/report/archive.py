"""
Evidence archive assembly.

From a stopped session this builds:
  - report.txt: header with the off-screen total, then one line per
    off-screen event in arrival order
  - snapshots/: every captured snapshot under its assigned file name
  - heatmap_with_screen_outline.png: all gaze rendered on a canvas extended
    by a margin on every side, with the real screen drawn as a dashed box

A heatmap that cannot be rendered is left out; the text and the snapshots
are still exported.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple

from GazeProctor.analysis.heatmap import (
    DISPLAY_MAX,
    POINT_WEIGHT,
    REPORT_MARGIN,
    build_report_view,
)
from GazeProctor.analysis.renderer import (
    HeatmapRenderer,
    RenderError,
    draw_screen_outline,
    encode_png,
)
from GazeProctor.core.session import Session
from GazeProctor.tracking.snapshot import decode_data_url
from .bundle import ZipBundler

logger = logging.getLogger(__name__)

REPORT_NAME = "report.txt"
SNAPSHOT_FOLDER = "snapshots"
HEATMAP_NAME = "heatmap_with_screen_outline.png"
TIME_FORMAT = "%H:%M:%S"

RendererFactory = Callable[[int, int], HeatmapRenderer]


def build_report_text(session: Session) -> str:
    lines = ["Exam Report", f"Total Off-Screen Events: {session.off_screen_count}", ""]
    for i, e in enumerate(session.events.filter(off_screen=True), start=1):
        detail = f"{i}. Time: {e.observed_at.strftime(TIME_FORMAT)}, Coords: ({e.x}, {e.y})"
        if e.snapshot_id:
            detail += f" (Snapshot: {e.snapshot_id})"
        lines.append(detail)
    return "\n".join(lines) + "\n"


@dataclass
class EvidenceArchive:
    report_text: str
    snapshot_files: Dict[str, bytes] = field(default_factory=dict)
    heatmap_image: Optional[bytes] = None

    def to_zip(self) -> bytes:
        zb = ZipBundler()
        zb.file(REPORT_NAME, self.report_text)
        snaps = zb.folder(SNAPSHOT_FOLDER)
        for name, payload in self.snapshot_files.items():
            snaps.file(name, payload)
        if self.heatmap_image is not None:
            zb.file(HEATMAP_NAME, self.heatmap_image)
        return zb.generate()


class EvidenceArchiver:
    def __init__(
        self,
        margin: int = REPORT_MARGIN,
        weight: int = POINT_WEIGHT,
        max_value: int = DISPLAY_MAX,
        radius: int = 35,
        render_timeout: float = 0.1,
        renderer_factory: Optional[RendererFactory] = None,
    ) -> None:
        self.margin = int(margin)
        self.weight = int(weight)
        self.max_value = int(max_value)
        self.radius = int(radius)
        self.render_timeout = float(render_timeout)
        self._factory = renderer_factory or self._default_renderer

    def _default_renderer(self, width: int, height: int) -> HeatmapRenderer:
        return HeatmapRenderer(width, height, radius=self.radius)

    def assemble(self, session: Session, viewport: Tuple[int, int]) -> EvidenceArchive:
        if session.tracking:
            raise ValueError("cannot assemble evidence while the session is still tracking")
        archive = EvidenceArchive(report_text=build_report_text(session))
        for e in session.events.filter(off_screen=True):
            if e.snapshot and e.snapshot_id:
                archive.snapshot_files[e.snapshot_id] = decode_data_url(e.snapshot)
        if session.events:
            try:
                archive.heatmap_image = self.render_heatmap(session, viewport)
            except Exception:
                logger.exception("Error generating heatmap for report; exporting without it")
        logger.info(
            "Evidence assembled: %d off-screen events, %d snapshots, heatmap=%s",
            session.off_screen_count,
            len(archive.snapshot_files),
            archive.heatmap_image is not None,
        )
        return archive

    def render_heatmap(self, session: Session, viewport: Tuple[int, int]) -> bytes:
        view = build_report_view(session.events, viewport, self.margin, self.weight, self.max_value)
        w, h = view.canvas_size
        renderer = self._factory(w, h)
        renderer.set_data(view.data)
        if not renderer.wait_until_rendered(self.render_timeout):
            raise RenderError("heatmap renderer did not finish in time")
        canvas = renderer.canvas.copy()
        draw_screen_outline(canvas, view.outline)
        return encode_png(canvas)
