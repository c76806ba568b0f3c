from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol, Tuple

import numpy as np

from .types import Detection


# Overlay style of the web front end: red boxes, label text 7px above the box.
BOX_COLOR_RGB: Tuple[int, int, int] = (255, 0, 0)
LABEL_OFFSET_Y = 7


class Renderer(Protocol):
    def render(
        self,
        detections: List[Detection],
        canvas_size: Tuple[int, int],
        frame: Optional[np.ndarray] = None,
    ) -> None:
        ...


@dataclass(frozen=True)
class DrawCommand:
    """
    kind="rect": (x1, y1) top-left and (x2, y2) bottom-right, integer pixels.
    kind="text": `text` anchored at its baseline origin (x1, y1).
    """

    kind: str
    x1: int
    y1: int
    x2: int = 0
    y2: int = 0
    text: str = ""


def to_draw_commands(detections: Iterable[Detection], canvas_size: Tuple[int, int]) -> List[DrawCommand]:
    w, h = canvas_size
    commands: List[DrawCommand] = []
    for det in detections:
        x1, y1, x2, y2 = det.box.as_xyxy()
        x1i = int(np.clip(round(x1), 0, max(w - 1, 0)))
        y1i = int(np.clip(round(y1), 0, max(h - 1, 0)))
        x2i = int(np.clip(round(x2), 0, max(w - 1, 0)))
        y2i = int(np.clip(round(y2), 0, max(h - 1, 0)))
        commands.append(DrawCommand("rect", x1i, y1i, x2i, y2i))

        # Label sits above the box; boxes touching the top edge get it inside instead.
        ty = y1i - LABEL_OFFSET_Y
        if ty < 12:
            ty = min(y1i + 12 + LABEL_OFFSET_Y, max(h - 1, 0))
        commands.append(DrawCommand("text", x1i, ty, text=det.label))
    return commands


class RecordingRenderer:
    """Keeps every render call; used headless and in tests."""

    def __init__(self) -> None:
        self.calls: List[Tuple[List[Detection], Tuple[int, int]]] = []

    def render(
        self,
        detections: List[Detection],
        canvas_size: Tuple[int, int],
        frame: Optional[np.ndarray] = None,
    ) -> None:
        self.calls.append((list(detections), tuple(canvas_size)))


class OpenCVRenderer:
    """
    Executes draw commands with OpenCV onto a copy of the frame (or a blank
    canvas when no frame is given). Frames are RGB; the optional preview window
    converts to BGR for display.
    """

    def __init__(
        self,
        *,
        line_width: int = 2,
        font_scale: float = 0.6,
        show: bool = False,
        window_name: str = "detections",
    ):
        self.line_width = line_width
        self.font_scale = font_scale
        self.show = show
        self.window_name = window_name
        self.last_image: Optional[np.ndarray] = None

    def render(
        self,
        detections: List[Detection],
        canvas_size: Tuple[int, int],
        frame: Optional[np.ndarray] = None,
    ) -> None:
        try:
            import cv2  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError("OpenCV is required for OpenCVRenderer. Install with `pip install opencv-python`.") from e

        w, h = canvas_size
        if frame is not None:
            out = frame.copy()
        else:
            out = np.zeros((h, w, 3), dtype=np.uint8)

        for cmd in to_draw_commands(detections, (w, h)):
            if cmd.kind == "rect":
                cv2.rectangle(out, (cmd.x1, cmd.y1), (cmd.x2, cmd.y2), BOX_COLOR_RGB, thickness=self.line_width)
            else:
                cv2.putText(
                    out,
                    cmd.text,
                    (cmd.x1, cmd.y1),
                    cv2.FONT_HERSHEY_SIMPLEX,
                    self.font_scale,
                    BOX_COLOR_RGB,
                    thickness=max(1, self.line_width // 2),
                    lineType=cv2.LINE_AA,
                )

        self.last_image = out
        if self.show:
            cv2.imshow(self.window_name, cv2.cvtColor(out, cv2.COLOR_RGB2BGR))
            cv2.waitKey(1)

    def close(self) -> None:
        if self.show:
            import cv2  # type: ignore

            cv2.destroyWindow(self.window_name)
