from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple, Union

import numpy as np

from .errors import DegenerateInputError
from .types import Box


Point = Union[Tuple[float, float], Sequence[float], np.ndarray]


@dataclass(frozen=True)
class GeometryTransform:
    """
    Uniform letterbox mapping from source-frame to target-tensor coordinates:

        target = source * scale + offset
    """

    scale: float
    offset_x: float
    offset_y: float

    @property
    def offset(self) -> Tuple[float, float]:
        return self.offset_x, self.offset_y

    def scaled_size(self, src_w: int, src_h: int) -> Tuple[int, int]:
        """Integer size of the source once scaled (what actually lands on the canvas)."""
        return int(round(src_w * self.scale)), int(round(src_h * self.scale))


def compute_transform(src_w: float, src_h: float, target_w: float, target_h: float) -> GeometryTransform:
    """
    Aspect-preserving fit of (src_w, src_h) into (target_w, target_h).

    Never crops: the scaled image is centered and the leftover padding is split
    evenly on both sides.
    """

    if src_w <= 0 or src_h <= 0 or target_w <= 0 or target_h <= 0:
        raise DegenerateInputError(
            f"All dimensions must be > 0 (src={src_w}x{src_h}, target={target_w}x{target_h})."
        )

    scale = min(target_w / src_w, target_h / src_h)
    offset_x = (target_w - src_w * scale) / 2
    offset_y = (target_h - src_h * scale) / 2
    return GeometryTransform(scale=float(scale), offset_x=float(offset_x), offset_y=float(offset_y))


def to_target(p: Point, t: GeometryTransform):
    """Map a point (x, y) or an array (..., 2) from source to target space."""
    if isinstance(p, np.ndarray):
        return p * t.scale + np.asarray(t.offset, dtype=np.float64)
    x, y = p
    return x * t.scale + t.offset_x, y * t.scale + t.offset_y


def to_source(p: Point, t: GeometryTransform):
    """Inverse of `to_target`."""
    if isinstance(p, np.ndarray):
        return (p - np.asarray(t.offset, dtype=np.float64)) / t.scale
    x, y = p
    return (x - t.offset_x) / t.scale, (y - t.offset_y) / t.scale


def box_to_source(box: Box, t: GeometryTransform) -> Box:
    x, y = to_source((box.x, box.y), t)
    return Box(x=x, y=y, w=box.w / t.scale, h=box.h / t.scale)


def boxes_to_source(boxes_xywh: np.ndarray, t: GeometryTransform) -> np.ndarray:
    """
    Vectorized `box_to_source` for an (N, 4) xywh array. Returns a new array.
    """

    boxes = np.asarray(boxes_xywh, dtype=np.float64)
    out = np.empty_like(boxes)
    out[:, 0:2] = to_source(boxes[:, 0:2], t)
    out[:, 2:4] = boxes[:, 2:4] / t.scale
    return out


def letterbox_into(
    image: np.ndarray,
    canvas: np.ndarray,
    t: GeometryTransform,
    color: Tuple[int, int, int] = (0, 0, 0),
) -> np.ndarray:
    """
    Draw `image` scaled by `t.scale` at `t.offset` into `canvas` (in place).

    Everything outside the scaled image is set to `color`. Returns `canvas`.
    """
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for letterbox_into(). Install with `pip install opencv-python`.") from e

    canvas_h, canvas_w = canvas.shape[:2]
    h, w = image.shape[:2]

    resized_w, resized_h = t.scaled_size(w, h)
    resized_w = max(1, min(resized_w, canvas_w))
    resized_h = max(1, min(resized_h, canvas_h))

    # Sub-pixel offsets snap to the nearest pixel; keep the paste inside the canvas.
    left = min(max(int(round(t.offset_x)), 0), canvas_w - resized_w)
    top = min(max(int(round(t.offset_y)), 0), canvas_h - resized_h)

    canvas[...] = color
    if (w, h) != (resized_w, resized_h):
        resized = cv2.resize(image, (resized_w, resized_h), interpolation=cv2.INTER_LINEAR)
    else:
        resized = image
    canvas[top : top + resized_h, left : left + resized_w] = resized
    return canvas
