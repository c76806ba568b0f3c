from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np


@dataclass(frozen=True)
class Box:
    """
    Axis-aligned rectangle, top-left origin: (x, y, w, h).
    """

    x: float
    y: float
    w: float
    h: float

    @property
    def area(self) -> float:
        return max(0.0, self.w) * max(0.0, self.h)

    def as_xywh(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.w, self.h

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.x + self.w, self.y + self.h


@dataclass(frozen=True)
class Candidate:
    """One decoded anchor slot, in target-tensor pixel space."""

    box: Box
    score: float
    class_id: int


@dataclass(frozen=True)
class CandidateSet:
    """
    Columnar decoder output.

    boxes: (N, 4) float32 as x, y, w, h (top-left)
    scores: (N,) float32
    class_ids: (N,) int64
    """

    boxes: np.ndarray
    scores: np.ndarray
    class_ids: np.ndarray

    def __len__(self) -> int:
        return int(self.scores.shape[0])

    def candidate(self, i: int) -> Candidate:
        x, y, w, h = (float(v) for v in self.boxes[i])
        return Candidate(box=Box(x, y, w, h), score=float(self.scores[i]), class_id=int(self.class_ids[i]))

    def to_candidates(self) -> List[Candidate]:
        return [self.candidate(i) for i in range(len(self))]


@dataclass(frozen=True)
class Detection:
    """
    Final detection in source-frame pixel space.
    """

    box: Box
    label: str
    score: float = 0.0
    class_id: int = -1


@dataclass(frozen=True)
class DetectionResult:
    detections: List[Detection] = field(default_factory=list)
    inference_ms: float = 0.0
    frame_size: Tuple[int, int] = (0, 0)

    def __len__(self) -> int:
        return len(self.detections)
