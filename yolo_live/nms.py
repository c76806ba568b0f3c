from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np


@dataclass(frozen=True)
class NMSConfig:
    score_threshold: float = 0.2
    iou_threshold: float = 0.45
    # None keeps up to one output per candidate.
    max_outputs: Optional[int] = None
    # Suppress across classes (reference behavior). False runs NMS per class.
    class_agnostic: bool = True


def iou(a: Sequence[float], b: Sequence[float]) -> float:
    """
    IoU of two xywh boxes. No overlap (including touching edges) gives 0.
    """

    ax1, ay1, aw, ah = (float(v) for v in a)
    bx1, by1, bw, bh = (float(v) for v in b)
    iw = min(ax1 + aw, bx1 + bw) - max(ax1, bx1)
    ih = min(ay1 + ah, by1 + bh) - max(ay1, by1)
    if iw <= 0 or ih <= 0:
        return 0.0
    inter = iw * ih
    union = aw * ah + bw * bh - inter
    if union <= 0:
        return 0.0
    return inter / union


def _greedy(boxes: np.ndarray, scores: np.ndarray, order: np.ndarray, iou_threshold: float, limit: int) -> List[int]:
    x1 = boxes[:, 0]
    y1 = boxes[:, 1]
    x2 = boxes[:, 0] + boxes[:, 2]
    y2 = boxes[:, 1] + boxes[:, 3]
    areas = np.maximum(boxes[:, 2], 0.0) * np.maximum(boxes[:, 3], 0.0)

    keep: List[int] = []
    while order.size > 0 and len(keep) < limit:
        i = int(order[0])
        keep.append(i)

        rest = order[1:]
        xx1 = np.maximum(x1[i], x1[rest])
        yy1 = np.maximum(y1[i], y1[rest])
        xx2 = np.minimum(x2[i], x2[rest])
        yy2 = np.minimum(y2[i], y2[rest])

        w = np.maximum(0.0, xx2 - xx1)
        h = np.maximum(0.0, yy2 - yy1)
        inter = w * h
        union = areas[i] + areas[rest] - inter
        overlap = np.where(union > 0, inter / np.where(union > 0, union, 1.0), 0.0)

        order = rest[overlap <= iou_threshold]

    return keep


def suppress(
    boxes: np.ndarray,
    scores: np.ndarray,
    score_threshold: float = 0.2,
    iou_threshold: float = 0.45,
    max_outputs: Optional[int] = None,
    class_ids: Optional[np.ndarray] = None,
    class_agnostic: bool = True,
) -> List[int]:
    """
    Greedy NMS over xywh boxes (N, 4) and scores (N,).

    Candidates below `score_threshold` are dropped. The rest are visited by
    descending score, ties in original index order. A kept box removes every
    remaining box whose IoU with it is strictly greater than `iou_threshold`.

    Returns indices into the input, highest score first.
    """

    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    scores = np.asarray(scores, dtype=np.float64).reshape(-1)
    if boxes.shape[0] != scores.shape[0]:
        raise ValueError(f"boxes and scores disagree: {boxes.shape[0]} vs {scores.shape[0]}")

    limit = scores.shape[0] if max_outputs is None else int(max_outputs)
    if scores.size == 0 or limit <= 0:
        return []

    candidates = np.flatnonzero(scores >= score_threshold)
    # Stable sort on the negated scores keeps equal scores in index order.
    order = candidates[np.argsort(-scores[candidates], kind="stable")]

    if class_agnostic or class_ids is None:
        return _greedy(boxes, scores, order, iou_threshold, limit)

    class_ids = np.asarray(class_ids).reshape(-1)
    kept: List[int] = []
    for cls in np.unique(class_ids[order]):
        cls_order = order[class_ids[order] == cls]
        kept.extend(_greedy(boxes, scores, cls_order, iou_threshold, limit))

    kept_arr = np.array(kept, dtype=np.int64)
    # Re-sort merged survivors: score descending, index ascending on ties.
    merged = kept_arr[np.lexsort((kept_arr, -scores[kept_arr]))]
    return [int(i) for i in merged[:limit]]


def nms(boxes: np.ndarray, scores: np.ndarray, cfg: NMSConfig, class_ids: Optional[np.ndarray] = None) -> List[int]:
    return suppress(
        boxes,
        scores,
        score_threshold=cfg.score_threshold,
        iou_threshold=cfg.iou_threshold,
        max_outputs=cfg.max_outputs,
        class_ids=class_ids,
        class_agnostic=cfg.class_agnostic,
    )
