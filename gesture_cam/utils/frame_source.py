"""Webcam frame acquisition.

A frame source hands out one encoded image (``bytes``) per capture. The
asynchronous ``capture_frame`` runs the blocking device read in the event
loop's default executor, which is the only point where a cycle suspends.
Serializing captures is the scheduler's job, not this module's.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

import cv2

from gesture_cam.utils.errors import CaptureError

logger = logging.getLogger(__name__)


class FrameSource(ABC):
    @abstractmethod
    def read_frame(self) -> bytes:
        """
        Returns:
            One encoded image (e.g. PNG bytes).

        Raises:
            CaptureError: Device unavailable, busy, or returned no data.
        """

    async def capture_frame(self) -> bytes:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.read_frame)

    def close(self) -> None:
        pass

    def __enter__(self) -> "FrameSource":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class OpenCVFrameSource(FrameSource):
    """Default-device webcam read through ``cv2.VideoCapture``.

    Args:
        camera_index: Device index; 0 selects the system default camera.
        width: Requested capture width (the model input size).
        height: Requested capture height.
        encoding: Output image encoding, e.g. ``"png"``.
    """

    def __init__(
        self,
        camera_index: int = 0,
        width: int = 224,
        height: int = 224,
        encoding: str = "png",
    ) -> None:
        self.camera_index = camera_index
        self.width = width
        self.height = height
        self.extension = "." + encoding.lower().lstrip(".")

        self._cap: Optional[cv2.VideoCapture] = cv2.VideoCapture(camera_index)
        if not self._cap.isOpened():
            self._cap.release()
            self._cap = None
            raise CaptureError(f"Could not open camera {camera_index}")

        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        logger.debug(f"Opened camera {camera_index} at requested {width}x{height}")

    def read_frame(self) -> bytes:
        if self._cap is None:
            raise CaptureError("Camera is closed")

        ret, frame = self._cap.read()
        if not ret or frame is None or frame.size == 0:
            raise CaptureError("Failed to read frame from camera")

        ok, buf = cv2.imencode(self.extension, frame)
        if not ok:
            raise CaptureError(f"Failed to encode frame as {self.extension}")
        return buf.tobytes()

    def close(self) -> None:
        """Release the device. Safe to call multiple times."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None
