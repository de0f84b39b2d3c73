"""
Evidence snapshot capture.

Grabs the current webcam frame, shrinks it to a fifth of its size and encodes
it as a moderate-quality JPEG. The result travels as a base64 data URL, the
same shape a browser canvas hands out, and is decoded back to bytes only when
the evidence archive is written.
"""
from __future__ import annotations

import base64
import logging
from typing import Optional

import cv2  # type: ignore

from GazeProctor.capture.camera import VideoSource

logger = logging.getLogger(__name__)

SNAPSHOT_EXTENSION = "jpg"
DATA_URL_PREFIX = "data:image/jpeg;base64,"


class SnapshotCapture:
    def __init__(self, source: Optional[VideoSource] = None, downscale: int = 5, jpeg_quality: int = 50) -> None:
        self.source = source
        self.downscale = max(1, int(downscale))
        self.jpeg_quality = int(max(0, min(100, jpeg_quality)))

    @property
    def extension(self) -> str:
        return SNAPSHOT_EXTENSION

    def capture(self) -> Optional[str]:
        """Return a data URL, or None when no frame is available."""
        if self.source is None:
            return None
        frame = self.source.read_frame()
        if frame is None:
            logger.debug("No video frame available for snapshot")
            return None
        h, w = frame.shape[:2]
        tw, th = w // self.downscale, h // self.downscale
        if tw <= 0 or th <= 0:
            return None
        small = cv2.resize(frame, (tw, th), interpolation=cv2.INTER_AREA)
        ok, buf = cv2.imencode(".jpg", small, [int(cv2.IMWRITE_JPEG_QUALITY), self.jpeg_quality])
        if not ok:
            logger.warning("JPEG encoding of snapshot failed")
            return None
        return DATA_URL_PREFIX + base64.b64encode(buf.tobytes()).decode("ascii")


def decode_data_url(payload: str) -> bytes:
    """Strip the data URL header and base64-decode the body."""
    _, _, body = payload.partition(",")
    return base64.b64decode(body if body else payload)
