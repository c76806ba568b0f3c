"""
Real-time YOLO detection front end.

Letterbox preprocessing, raw-output decoding, greedy NMS and inverse mapping
around an opaque graph model, plus a fixed-period asyncio scheduler for live
sources. Only NumPy and OpenCV are needed for the core; inference runtimes
(onnxruntime, torch) are optional.
"""

from .errors import (
    CaptureError,
    DecodeError,
    DegenerateInputError,
    InferenceError,
    MalformedOutputError,
    ModelLoadError,
    ModelNotReadyError,
    YoloLiveError,
)
from .types import Box, Candidate, CandidateSet, Detection, DetectionResult
from .letterbox import GeometryTransform, compute_transform, to_source, to_target
from .preprocess import Preprocessor
from .postprocess import OutputDecoder
from .nms import NMSConfig, iou, nms, suppress
from .labels import COCO_CLASS_NAMES, load_class_names
from .model_cache import ModelCache
from .pipeline import DetectionPipeline, PipelineConfig, detect_image
from .scheduler import FrameScheduler, SchedulerState
from .render import DrawCommand, OpenCVRenderer, RecordingRenderer, to_draw_commands
from .sources import OpenCVCaptureSource, decode_image, read_image
from .config import DetectorConfig, load_detector_config

__all__ = [
    "CaptureError",
    "DecodeError",
    "DegenerateInputError",
    "InferenceError",
    "MalformedOutputError",
    "ModelLoadError",
    "ModelNotReadyError",
    "YoloLiveError",
    "Box",
    "Candidate",
    "CandidateSet",
    "Detection",
    "DetectionResult",
    "GeometryTransform",
    "compute_transform",
    "to_source",
    "to_target",
    "Preprocessor",
    "OutputDecoder",
    "NMSConfig",
    "iou",
    "nms",
    "suppress",
    "COCO_CLASS_NAMES",
    "load_class_names",
    "ModelCache",
    "DetectionPipeline",
    "PipelineConfig",
    "detect_image",
    "FrameScheduler",
    "SchedulerState",
    "DrawCommand",
    "OpenCVRenderer",
    "RecordingRenderer",
    "to_draw_commands",
    "OpenCVCaptureSource",
    "decode_image",
    "read_image",
    "DetectorConfig",
    "load_detector_config",
]
