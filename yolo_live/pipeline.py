from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from .backends import GraphModel
from .errors import InferenceError, ModelNotReadyError
from .labels import COCO_CLASS_NAMES, ClassNames, label_for
from .letterbox import boxes_to_source
from .model_cache import ModelCache
from .nms import suppress
from .postprocess import OutputDecoder
from .preprocess import Preprocessor
from .types import Box, Detection, DetectionResult


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineConfig:
    input_size: Tuple[int, int] = (640, 640)
    score_threshold: float = 0.2
    iou_threshold: float = 0.45
    # None keeps up to N outputs (one per anchor slot).
    max_outputs: Optional[int] = None
    class_agnostic_nms: bool = True
    # Class channels the model emits; None takes the size of the label table.
    num_classes: Optional[int] = None


class DetectionPipeline:
    """
    preprocess (letterbox) -> model.predict -> decode -> NMS -> source coordinates.

    Frames are RGB `np.ndarray` (H, W, 3) and are never modified. The only state
    shared between calls is the model handle held by `model_cache`.
    """

    def __init__(
        self,
        model_cache: ModelCache[GraphModel],
        *,
        class_names: ClassNames = COCO_CLASS_NAMES,
        cfg: PipelineConfig = PipelineConfig(),
        preprocessor: Optional[Preprocessor] = None,
        decoder: Optional[OutputDecoder] = None,
    ):
        self.model_cache = model_cache
        self.class_names = class_names
        self.cfg = cfg
        self.preprocessor = preprocessor or Preprocessor(cfg.input_size)
        if decoder is None:
            num_classes = cfg.num_classes if cfg.num_classes is not None else (len(class_names) or None)
            decoder = OutputDecoder(num_classes=num_classes)
        self.decoder = decoder

    @property
    def is_ready(self) -> bool:
        return self.model_cache.is_ready

    async def ensure_ready(self) -> GraphModel:
        return await self.model_cache.get()

    async def detect(self, frame: np.ndarray) -> List[Detection]:
        result = await self.run(frame)
        return result.detections

    async def run(self, frame: np.ndarray) -> DetectionResult:
        model = self.model_cache.handle
        if model is None:
            raise ModelNotReadyError("Model is not loaded yet; await ensure_ready() first.")

        target_w, target_h = self.cfg.input_size
        tensor, transform = self.preprocessor.prepare(frame, target_w, target_h)

        start = time.perf_counter()
        try:
            raw = await model.predict(tensor)
        except Exception as exc:
            raise InferenceError(f"Model prediction failed: {exc}") from exc
        inference_ms = (time.perf_counter() - start) * 1000.0
        del tensor

        candidates = self.decoder.decode(raw)
        del raw

        keep = suppress(
            candidates.boxes,
            candidates.scores,
            score_threshold=self.cfg.score_threshold,
            iou_threshold=self.cfg.iou_threshold,
            max_outputs=self.cfg.max_outputs if self.cfg.max_outputs is not None else len(candidates),
            class_ids=candidates.class_ids,
            class_agnostic=self.cfg.class_agnostic_nms,
        )

        detections: List[Detection] = []
        if keep:
            source_boxes = boxes_to_source(candidates.boxes[keep], transform)
            for (x, y, w, h), i in zip(source_boxes, keep):
                class_id = int(candidates.class_ids[i])
                detections.append(
                    Detection(
                        box=Box(float(x), float(y), float(w), float(h)),
                        label=label_for(self.class_names, class_id),
                        score=float(candidates.scores[i]),
                        class_id=class_id,
                    )
                )
        del candidates

        frame_h, frame_w = frame.shape[:2]
        logger.debug("Detected %d objects in %.2f ms", len(detections), inference_ms)
        return DetectionResult(detections=detections, inference_ms=inference_ms, frame_size=(frame_w, frame_h))


async def detect_image(pipeline: DetectionPipeline, frame: np.ndarray, renderer=None) -> DetectionResult:
    """
    Single-image mode: wait for the model, run the pipeline once and render.
    """

    await pipeline.ensure_ready()
    result = await pipeline.run(frame)
    if renderer is not None:
        renderer.render(result.detections, result.frame_size, frame=frame)
    return result
