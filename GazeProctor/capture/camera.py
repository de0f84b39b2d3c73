"""
Webcam video source for evidence snapshots.

Responsibilities:
- Open a webcam with a best-effort resolution hint
- Hand out the current frame (BGR numpy array) on demand
- Report the current frame size
- Close cleanly

A missing or closed camera is a normal condition: ``read_frame()`` returns
None and the caller proceeds without a snapshot.
"""
from __future__ import annotations

import logging
from typing import Optional, Tuple

import cv2  # type: ignore
import numpy as np

logger = logging.getLogger(__name__)


class VideoSource:
    """Anything that can hand out the current video frame."""

    def frame_size(self) -> Optional[Tuple[int, int]]:
        raise NotImplementedError

    def read_frame(self) -> Optional[np.ndarray]:
        raise NotImplementedError


class CameraVideoSource(VideoSource):
    def __init__(self, index: int = 0, width: int = 1280, height: int = 720) -> None:
        self.index = int(index)
        self.width = int(width)
        self.height = int(height)
        self.cap = None

    def start(self) -> bool:
        cap = cv2.VideoCapture(self.index)
        if cap is None or not cap.isOpened():
            if cap is not None:
                cap.release()
            logger.warning("Camera %d could not be opened", self.index)
            return False
        # Best-effort resolution hint
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        actual_w = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_h = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        if actual_w > 0 and actual_h > 0:
            self.width, self.height = actual_w, actual_h
        self.cap = cap
        logger.info("Camera %d opened at %dx%d", self.index, self.width, self.height)
        return True

    def frame_size(self) -> Optional[Tuple[int, int]]:
        if not self.is_open:
            return None
        return self.width, self.height

    def read_frame(self) -> Optional[np.ndarray]:
        if self.cap is None:
            return None
        ok, frame = self.cap.read()
        if not ok or frame is None:
            return None
        return frame

    def stop(self) -> None:
        if self.cap is not None:
            try:
                self.cap.release()
            finally:
                self.cap = None

    @property
    def is_open(self) -> bool:
        return bool(self.cap is not None and self.cap.isOpened())
