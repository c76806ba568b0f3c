from __future__ import annotations

from typing import Dict, Optional, Tuple

import numpy as np

from .errors import DegenerateInputError
from .letterbox import GeometryTransform, compute_transform, letterbox_into


class CanvasPool:
    """
    One scratch uint8 canvas per target size, reused across frames.

    The canvas never leaves the preprocessor: `prepare()` copies it into a new
    float32 tensor before returning.
    """

    def __init__(self) -> None:
        self._canvases: Dict[Tuple[int, int], np.ndarray] = {}

    def acquire(self, width: int, height: int) -> np.ndarray:
        key = (int(width), int(height))
        canvas = self._canvases.get(key)
        if canvas is None:
            canvas = np.zeros((key[1], key[0], 3), dtype=np.uint8)
            self._canvases[key] = canvas
        return canvas

    def __len__(self) -> int:
        return len(self._canvases)

    def clear(self) -> None:
        self._canvases.clear()


class Preprocessor:
    """
    Frame -> normalized NHWC tensor, letterboxed into `target_size` (width, height).
    """

    def __init__(self, target_size: Tuple[int, int] = (640, 640), fill: Tuple[int, int, int] = (0, 0, 0)):
        if target_size[0] <= 0 or target_size[1] <= 0:
            raise DegenerateInputError(f"target_size must be positive, got {target_size}")
        self.target_size = (int(target_size[0]), int(target_size[1]))
        self.fill = fill
        self.pool = CanvasPool()

    def prepare(
        self,
        frame: np.ndarray,
        target_w: Optional[int] = None,
        target_h: Optional[int] = None,
    ) -> Tuple[np.ndarray, GeometryTransform]:
        """
        Returns:
            tensor: float32 (1, target_h, target_w, 3) in [0, 1]
            transform: source -> target mapping used for the letterbox
        """

        if frame is None or not hasattr(frame, "shape"):
            raise TypeError("frame must be a NumPy array (H, W, 3).")
        if frame.ndim != 3 or frame.shape[2] != 3:
            raise ValueError(f"Expected frame shape (H, W, 3), got {getattr(frame, 'shape', None)}")

        tw = self.target_size[0] if target_w is None else int(target_w)
        th = self.target_size[1] if target_h is None else int(target_h)

        src_h, src_w = frame.shape[:2]
        transform = compute_transform(src_w, src_h, tw, th)

        if frame.dtype != np.uint8:
            frame = np.clip(frame, 0, 255).astype(np.uint8)

        canvas = self.pool.acquire(tw, th)
        letterbox_into(frame, canvas, transform, color=self.fill)

        tensor = canvas.astype(np.float32)
        tensor /= 255.0
        return tensor[None, ...], transform
