"""
Raster heatmap renderer.

Each point stamps a radial blob of ``radius`` pixels onto a grayscale shadow
layer. Inside ``radius * (1 - blur)`` the blob is fully opaque, then it fades
linearly to zero at ``radius``. The blob is scaled by ``weight / max`` and
composited source-over, so overlapping points build up density. The shadow is
then colorized through a blue -> green -> yellow -> red palette and its
opacity clamped into ``[min_opacity, max_opacity]``.

The backing canvas is an RGBA uint8 array (H, W, 4) that can be read back
once ``wait_until_rendered()`` reports completion.
"""
from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Dict, Tuple

import cv2  # type: ignore
import numpy as np
from matplotlib.colors import LinearSegmentedColormap  # type: ignore

from .heatmap import HeatmapData, ScreenOutline

logger = logging.getLogger(__name__)

# (position, rgb) stops of the density palette
GRADIENT_STOPS = (
    (0.0, (0.0, 0.0, 1.0)),
    (0.25, (0.0, 0.0, 1.0)),
    (0.55, (0.0, 1.0, 0.0)),
    (0.85, (1.0, 1.0, 0.0)),
    (1.0, (1.0, 0.0, 0.0)),
)


class RenderError(RuntimeError):
    """Heatmap rendering, readback or encoding failed."""


def _palette() -> np.ndarray:
    cmap = LinearSegmentedColormap.from_list("gaze_density", list(GRADIENT_STOPS))
    rgba = cmap(np.linspace(0.0, 1.0, 256))
    return (rgba[:, :3] * 255.0).round().astype(np.uint8)


def _blob(radius: int, blur: float) -> np.ndarray:
    r = max(1, int(radius))
    inner = r * max(0.0, min(1.0, 1.0 - float(blur)))
    yy, xx = np.mgrid[-r:r + 1, -r:r + 1].astype(np.float32)
    d = np.sqrt(xx * xx + yy * yy)
    if r - inner <= 1e-6:
        return (d <= r).astype(np.float32)
    a = (r - d) / (r - inner)
    return np.clip(a, 0.0, 1.0).astype(np.float32)


class HeatmapRenderer:
    def __init__(
        self,
        width: int,
        height: int,
        radius: int = 35,
        max_opacity: float = 1.0,
        min_opacity: float = 0.0,
        blur: float = 0.85,
    ) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"invalid canvas size {width}x{height}")
        self.width = int(width)
        self.height = int(height)
        self.radius = int(radius)
        self.max_opacity = float(max_opacity)
        self.min_opacity = float(min_opacity)
        self.blur = float(blur)
        self._template = _blob(self.radius, self.blur)
        self._palette = _palette()
        self._shadow = np.zeros((self.height, self.width), dtype=np.float32)
        self.canvas = np.zeros((self.height, self.width, 4), dtype=np.uint8)
        self._rendered = threading.Event()

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------
    def set_data(self, data: HeatmapData) -> None:
        self._rendered.clear()
        self._shadow.fill(0.0)
        max_v = float(data.max) if data.max else 1.0
        for (x, y), value in self._aggregate(data).items():
            alpha = max(0.01, min(1.0, value / max_v))
            self._stamp(x, y, alpha)
        self._colorize()
        self._rendered.set()

    def clear(self) -> None:
        self.set_data(HeatmapData(max=1, points=[]))

    def wait_until_rendered(self, timeout: float | None = None) -> bool:
        return self._rendered.wait(timeout)

    @staticmethod
    def _aggregate(data: HeatmapData) -> Dict[Tuple[int, int], float]:
        acc: Dict[Tuple[int, int], float] = OrderedDict()
        for p in data.points:
            key = (int(p.x), int(p.y))
            acc[key] = acc.get(key, 0.0) + float(p.weight)
        return acc

    # ------------------------------------------------------------------
    # Raster
    # ------------------------------------------------------------------
    def _stamp(self, cx: int, cy: int, alpha: float) -> None:
        r = self.radius
        x0, y0 = cx - r, cy - r
        x1, y1 = cx + r + 1, cy + r + 1
        sx0, sy0 = max(0, x0), max(0, y0)
        sx1, sy1 = min(self.width, x1), min(self.height, y1)
        if sx0 >= sx1 or sy0 >= sy1:
            return
        tpl = self._template[sy0 - y0:sy1 - y0, sx0 - x0:sx1 - x0] * alpha
        dst = self._shadow[sy0:sy1, sx0:sx1]
        dst += tpl * (1.0 - dst)

    def _colorize(self) -> None:
        level = np.clip(self._shadow * 255.0, 0.0, 255.0).round().astype(np.uint8)
        rgb = self._palette[level]
        lo = int(round(self.min_opacity * 255.0))
        hi = int(round(self.max_opacity * 255.0))
        alpha = np.clip(level, lo, hi).astype(np.uint8)
        alpha[level == 0] = 0
        self.canvas[..., :3] = rgb
        self.canvas[..., 3] = alpha
        self.canvas[level == 0, :3] = 0


# ----------------------------------------------------------------------
# Overlay and encoding
# ----------------------------------------------------------------------
def _rgba(color: Tuple[int, int, int, float]) -> Tuple[int, int, int, int]:
    r, g, b, a = color
    return int(r), int(g), int(b), int(round(float(a) * 255.0))


def _dashed_line(img: np.ndarray, p0: Tuple[int, int], p1: Tuple[int, int], color, thickness: int, dash: Tuple[int, int]) -> None:
    on, off = max(1, int(dash[0])), max(0, int(dash[1]))
    x0, y0 = p0
    x1, y1 = p1
    length = float(np.hypot(x1 - x0, y1 - y0))
    if length <= 0:
        return
    ux, uy = (x1 - x0) / length, (y1 - y0) / length
    pos = 0.0
    while pos < length:
        end = min(length, pos + on)
        a = (int(round(x0 + ux * pos)), int(round(y0 + uy * pos)))
        b = (int(round(x0 + ux * end)), int(round(y0 + uy * end)))
        cv2.line(img, a, b, color, thickness)
        pos = end + off


def draw_screen_outline(canvas: np.ndarray, outline: ScreenOutline) -> None:
    """Dashed viewport rectangle plus its centered label, drawn in place."""
    stroke = _rgba(outline.stroke_rgba)
    x, y, w, h = outline.x, outline.y, outline.width, outline.height
    corners = [(x, y), (x + w, y), (x + w, y + h), (x, y + h)]
    for i in range(4):
        _dashed_line(canvas, corners[i], corners[(i + 1) % 4], stroke, outline.line_width, outline.dash)
    font = cv2.FONT_HERSHEY_SIMPLEX
    scale = 0.55
    (tw, _), _ = cv2.getTextSize(outline.label, font, scale, 1)
    cx, baseline = outline.label_anchor
    cv2.putText(canvas, outline.label, (cx - tw // 2, baseline), font, scale, _rgba(outline.label_rgba), 1, cv2.LINE_AA)


def encode_png(canvas: np.ndarray) -> bytes:
    ok, buf = cv2.imencode(".png", cv2.cvtColor(canvas, cv2.COLOR_RGBA2BGRA))
    if not ok:
        raise RenderError("PNG encoding failed")
    return buf.tobytes()
