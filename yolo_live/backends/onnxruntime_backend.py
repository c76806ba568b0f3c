from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np


PathLike = Union[str, Path]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CUDAExecutionProvider", "CPUExecutionProvider"])
    - input_name/output_name: override auto-selected I/O names if needed
    - layout: "nhwc", "nchw", or None to read it from the model's declared input
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    output_name: Optional[str] = None
    layout: Optional[str] = None


def _detect_layout(shape: Sequence[object]) -> str:
    # Symbolic dims come back as strings; only a literal 3 counts.
    if len(shape) == 4 and shape[1] == 3 and shape[3] != 3:
        return "nchw"
    return "nhwc"


class OnnxRuntimeBackend:
    """
    Graph model backed by an ONNX Runtime session.

    Accepts the pipeline's NHWC float32 tensor (1, H, W, 3) and transposes it
    when the exported graph expects NCHW. Returns the primary output.
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        self._ort = ort
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        sess_opts = ort.SessionOptions()
        providers = list(cfg.providers) if cfg.providers is not None else None
        self.session = ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=providers)

        model_input = self.session.get_inputs()[0]
        self.input_name = cfg.input_name or model_input.name
        self.output_name = cfg.output_name or self.session.get_outputs()[0].name

        if cfg.layout is not None and cfg.layout.lower() not in ("nhwc", "nchw"):
            raise ValueError(f"layout must be 'nhwc' or 'nchw', got {cfg.layout!r}")
        self.layout = cfg.layout.lower() if cfg.layout else _detect_layout(list(model_input.shape))

        logger.info(
            "Loaded ONNX model %s (input=%s layout=%s providers=%s)",
            self.model_path,
            self.input_name,
            self.layout,
            ",".join(self.providers_in_use),
        )

    @property
    def providers_in_use(self) -> Sequence[str]:
        return tuple(self.session.get_providers())

    def infer(self, tensor: np.ndarray) -> np.ndarray:
        blob = tensor
        if self.layout == "nchw":
            blob = np.ascontiguousarray(np.transpose(tensor, (0, 3, 1, 2)))
        outputs = self.session.run([self.output_name], {self.input_name: blob})
        return outputs[0]
