from __future__ import annotations

from typing import Optional

import numpy as np

from .errors import MalformedOutputError
from .types import CandidateSet


class OutputDecoder:
    """
    Decode a raw YOLOv8-style prediction into per-candidate boxes and scores.

    Expected layout: (1, 4 + C, N), channel-major, e.g. 1 x 84 x 8400 for the
    80-class COCO export. Rows 0..3 are (cx, cy, w, h); rows 4.. are per-class scores.

    No score filtering happens here; every anchor slot becomes a candidate.
    """

    def __init__(self, num_classes: Optional[int] = None):
        if num_classes is not None and num_classes < 1:
            raise ValueError(f"num_classes must be >= 1, got {num_classes}")
        self.num_classes = num_classes

    def decode(self, raw: np.ndarray) -> CandidateSet:
        p = np.asarray(raw)
        if p.ndim != 3:
            raise MalformedOutputError(f"Expected output of rank 3 (1, 4 + C, N), got shape {p.shape}.")
        if p.shape[0] != 1:
            raise MalformedOutputError(f"Batch > 1 is not supported (got shape {p.shape}).")
        p = p[0]

        channels, n = p.shape
        if self.num_classes is not None:
            expected = 4 + self.num_classes
            if channels != expected:
                raise MalformedOutputError(
                    f"Expected {expected} channels (4 box + {self.num_classes} classes), got shape {tuple(np.shape(raw))}."
                )
        elif channels <= 4:
            raise MalformedOutputError(f"Output needs at least one class channel, got shape {tuple(np.shape(raw))}.")

        # (4 + C, N) -> (N, 4 + C)
        per_candidate = p.T.astype(np.float32, copy=False)
        if n == 0:
            return CandidateSet(
                boxes=np.empty((0, 4), dtype=np.float32),
                scores=np.empty((0,), dtype=np.float32),
                class_ids=np.empty((0,), dtype=np.int64),
            )

        cx = per_candidate[:, 0]
        cy = per_candidate[:, 1]
        w = per_candidate[:, 2]
        h = per_candidate[:, 3]
        boxes = np.stack([cx - w / 2, cy - h / 2, w, h], axis=1)

        class_scores = per_candidate[:, 4:]
        # argmax returns the first maximum, so ties go to the lowest class index.
        class_ids = np.argmax(class_scores, axis=1).astype(np.int64)
        scores = class_scores[np.arange(n), class_ids]

        return CandidateSet(boxes=boxes, scores=scores, class_ids=class_ids)
