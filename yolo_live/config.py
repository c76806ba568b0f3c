from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .logs import LOG_LEVELS
from .pipeline import PipelineConfig


@dataclass(frozen=True)
class DetectorConfig:
    model_path: str
    backend: Optional[str] = None
    input_size: Tuple[int, int] = (640, 640)
    # Observed defaults of the web front end; not tuned per use case.
    score_threshold: float = 0.2
    iou_threshold: float = 0.45
    max_outputs: Optional[int] = None
    class_agnostic_nms: bool = True
    num_classes: Optional[int] = None
    tick_period_s: float = 0.1
    class_names_path: Optional[str] = None
    onnx_providers: Optional[Tuple[str, ...]] = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.model_path:
            raise ValueError("model_path must not be empty")
        if self.backend is not None and self.backend not in ("onnxruntime", "torchscript"):
            raise ValueError("backend must be 'onnxruntime' or 'torchscript'")
        if len(self.input_size) != 2 or any(int(v) <= 0 for v in self.input_size):
            raise ValueError("input_size must be two positive integers")
        if not 0.0 <= self.score_threshold <= 1.0:
            raise ValueError("score_threshold must be in [0, 1]")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in [0, 1]")
        if self.max_outputs is not None and self.max_outputs < 1:
            raise ValueError("max_outputs must be >= 1")
        if self.num_classes is not None and self.num_classes < 1:
            raise ValueError("num_classes must be >= 1")
        if self.tick_period_s <= 0:
            raise ValueError("tick_period_s must be > 0")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}")

    def pipeline_config(self) -> PipelineConfig:
        return PipelineConfig(
            input_size=(int(self.input_size[0]), int(self.input_size[1])),
            score_threshold=self.score_threshold,
            iou_threshold=self.iou_threshold,
            max_outputs=self.max_outputs,
            class_agnostic_nms=self.class_agnostic_nms,
            num_classes=self.num_classes,
        )


def _require_str(payload: Dict[str, Any], key: str) -> str:
    if key not in payload:
        raise ValueError(f"Missing required key: {key}")
    value = payload[key]
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{key} must be a non-empty string")
    return value


def _optional_number(payload: Dict[str, Any], key: str, default: float) -> float:
    if key not in payload:
        return default
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _optional_int(payload: Dict[str, Any], key: str) -> Optional[int]:
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _optional_str(payload: Dict[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string if provided")
    return value


def _input_size(value: Any) -> Tuple[int, int]:
    if isinstance(value, int) and not isinstance(value, bool):
        return (value, value)
    if (
        isinstance(value, list)
        and len(value) == 2
        and all(isinstance(v, int) and not isinstance(v, bool) for v in value)
    ):
        return (int(value[0]), int(value[1]))
    raise ValueError("input_size must be an integer or [width, height]")


def _providers(value: Any) -> Optional[Tuple[str, ...]]:
    if value is None:
        return None
    if isinstance(value, str):
        value = [p for p in value.split(",")]
    if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
        raise ValueError("onnx_providers must be a string or list of strings")
    cleaned: List[str] = [p.strip() for p in value if p.strip()]
    return tuple(cleaned) or None


ALLOWED_KEYS = {
    "model_path",
    "backend",
    "input_size",
    "score_threshold",
    "iou_threshold",
    "max_outputs",
    "class_agnostic_nms",
    "num_classes",
    "tick_period_s",
    "class_names_path",
    "onnx_providers",
    "log_level",
}


def detector_config_from_dict(payload: Dict[str, Any]) -> DetectorConfig:
    unknown = sorted(set(payload.keys()) - ALLOWED_KEYS)
    if unknown:
        raise ValueError(f"Unknown detector config keys: {unknown}")

    class_agnostic = payload.get("class_agnostic_nms", True)
    if not isinstance(class_agnostic, bool):
        raise ValueError("class_agnostic_nms must be a boolean")

    log_level = payload.get("log_level", "INFO")
    if not isinstance(log_level, str):
        raise ValueError("log_level must be a string")

    return DetectorConfig(
        model_path=_require_str(payload, "model_path"),
        backend=_optional_str(payload, "backend"),
        input_size=_input_size(payload.get("input_size", [640, 640])),
        score_threshold=_optional_number(payload, "score_threshold", 0.2),
        iou_threshold=_optional_number(payload, "iou_threshold", 0.45),
        max_outputs=_optional_int(payload, "max_outputs"),
        class_agnostic_nms=class_agnostic,
        num_classes=_optional_int(payload, "num_classes"),
        tick_period_s=_optional_number(payload, "tick_period_s", 0.1),
        class_names_path=_optional_str(payload, "class_names_path"),
        onnx_providers=_providers(payload.get("onnx_providers")),
        log_level=log_level.upper(),
    )


def load_detector_config(path: Path) -> DetectorConfig:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Detector config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid detector config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Detector config must be a JSON object")
    return detector_config_from_dict(payload)
