from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import numpy as np


PathLike = Union[str, Path]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TorchScriptBackendConfig:
    """
    Configuration for TorchScript inference.

    - device: "cpu" or "cuda" (if available)
    - half: cast input to float16 (only if the model expects it)
    - output_index: if the model returns multiple outputs, select this index
    - layout: "nchw" (ultralytics exports) or "nhwc"
    """

    device: str = "cpu"
    half: bool = False
    output_index: int = 0
    layout: str = "nchw"


class TorchScriptBackend:
    """
    Graph model backed by `torch.jit.load`. Takes the NHWC pipeline tensor.
    """

    def __init__(self, model_path: PathLike, cfg: TorchScriptBackendConfig = TorchScriptBackendConfig()):
        try:
            import torch  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError("torch is required for the TorchScript backend. Install with `pip install torch`.") from e

        if cfg.layout not in ("nchw", "nhwc"):
            raise ValueError(f"layout must be 'nhwc' or 'nchw', got {cfg.layout!r}")

        self._torch = torch
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        self.device = torch.device(cfg.device)
        self.half = cfg.half
        self.output_index = cfg.output_index
        self.layout = cfg.layout

        model = torch.jit.load(str(self.model_path), map_location=self.device)
        model.eval()
        self.model = model
        logger.info("Loaded TorchScript model %s on %s", self.model_path, self.device)

    def infer(self, tensor: np.ndarray) -> np.ndarray:
        torch = self._torch
        x = torch.as_tensor(tensor, device=self.device)
        if self.layout == "nchw":
            x = x.permute(0, 3, 1, 2)
        x = x.half() if self.half else x.float()
        x = x.contiguous()

        with torch.no_grad():
            y = self.model(x)

        if isinstance(y, (tuple, list)):
            y = y[self.output_index]

        if hasattr(y, "detach"):
            y = y.detach()
        return y.float().to("cpu").numpy()
