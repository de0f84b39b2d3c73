from __future__ import annotations

from typing import List, Optional, Tuple

import numpy as np
import pytest

from GazeProctor.capture.camera import VideoSource
from GazeProctor.core.settings import SettingsManager


class FakeVideo(VideoSource):
    def __init__(self, width: int = 640, height: int = 480, available: bool = True) -> None:
        self.width = width
        self.height = height
        self.available = available
        self.reads = 0

    def frame_size(self) -> Optional[Tuple[int, int]]:
        return (self.width, self.height) if self.available else None

    def read_frame(self):
        self.reads += 1
        if not self.available:
            return None
        frame = np.zeros((self.height, self.width, 3), dtype=np.uint8)
        frame[:, : self.width // 2] = (0, 128, 255)
        return frame


class MutableViewport:
    def __init__(self, w: int, h: int) -> None:
        self.size = (w, h)

    def __call__(self) -> Tuple[int, int]:
        return self.size


@pytest.fixture
def settings(tmp_path) -> SettingsManager:
    return SettingsManager(str(tmp_path / "settings.json"))


@pytest.fixture
def video() -> FakeVideo:
    return FakeVideo()


@pytest.fixture
def viewport() -> MutableViewport:
    return MutableViewport(1000, 800)


def write_samples(path, rows: List[Tuple[float, float, float]]) -> str:
    lines = ["x,y,elapsed"] + [f"{x},{y},{t}" for x, y, t in rows]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return str(path)
