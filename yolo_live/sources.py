from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Protocol, Union

import numpy as np

from .errors import CaptureError, DecodeError


logger = logging.getLogger(__name__)


class CaptureSource(Protocol):
    async def acquire(self) -> None:
        ...

    def current_frame(self) -> np.ndarray:
        ...

    def release(self) -> None:
        ...


def _cv2():
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for image/capture I/O. Install with `pip install opencv-python`.") from e
    return cv2


class OpenCVCaptureSource:
    """
    Live frame source over `cv2.VideoCapture` (webcam index, video file or RTSP URL).

    Frames come back RGB (H, W, 3) uint8.
    """

    def __init__(self, *, webcam: Optional[int] = None, video: Optional[str] = None, rtsp: Optional[str] = None):
        sources = [webcam is not None, video is not None, rtsp is not None]
        if sum(sources) != 1:
            raise ValueError("Exactly one of webcam/video/rtsp must be provided.")
        self.webcam = webcam
        self.video = video
        self.rtsp = rtsp
        self._cap = None

    @property
    def description(self) -> str:
        if self.webcam is not None:
            return f"webcam:{self.webcam}"
        return str(self.video if self.video is not None else self.rtsp)

    @property
    def is_open(self) -> bool:
        return self._cap is not None

    def _open(self):
        cv2 = _cv2()
        if self.video is not None:
            cap = cv2.VideoCapture(self.video)
        elif self.rtsp is not None:
            cap = cv2.VideoCapture(self.rtsp)
        else:
            cap = cv2.VideoCapture(int(self.webcam))
        if not cap.isOpened():
            cap.release()
            raise CaptureError(f"Failed to open video source: {self.description}")
        return cap

    async def acquire(self) -> None:
        if self._cap is not None:
            return
        self._cap = await asyncio.to_thread(self._open)
        logger.info("Capture source opened: %s", self.description)

    def current_frame(self) -> np.ndarray:
        if self._cap is None:
            raise CaptureError("Capture source is not open; call acquire() first.")
        ok, frame = self._cap.read()
        if not ok or frame is None:
            raise CaptureError(f"Failed to read frame from {self.description}")
        cv2 = _cv2()
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

    def release(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info("Capture source released: %s", self.description)


def decode_image(data: bytes) -> np.ndarray:
    """
    Decode uploaded image bytes (PNG, JPEG, ...) into an RGB frame.
    """

    if not data:
        raise DecodeError("Empty image data.")
    cv2 = _cv2()
    buf = np.frombuffer(data, dtype=np.uint8)
    img = cv2.imdecode(buf, cv2.IMREAD_COLOR)
    if img is None:
        raise DecodeError("Could not decode image data.")
    return cv2.cvtColor(img, cv2.COLOR_BGR2RGB)


def read_image(path: Union[str, Path]) -> np.ndarray:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Could not read image at path: {p}")
    return decode_image(p.read_bytes())
