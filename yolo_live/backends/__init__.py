"""
Graph-model backends for yolo_live.

Every backend is wrapped into a `GraphModel`, the only interface the pipeline
sees: `await model.predict(tensor)` with an NHWC float32 tensor in, the raw
(1, 4 + C, N) prediction out. Runtimes are imported lazily so pre/post-processing
stays usable without any inference runtime installed.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Protocol, Sequence, Union

import numpy as np


PathLike = Union[str, Path]

logger = logging.getLogger(__name__)


class GraphModel(Protocol):
    async def predict(self, tensor: np.ndarray) -> np.ndarray:
        ...


class ExecutorModel:
    """
    Adapts a blocking `infer(ndarray) -> ndarray` into a `GraphModel`.

    The call runs in the loop's default executor so the event loop keeps
    ticking while the runtime works.
    """

    def __init__(self, infer_fn: Callable[[np.ndarray], np.ndarray], *, name: str = "model", backend: Any = None):
        self._infer_fn = infer_fn
        self.name = name
        self.backend = backend

    async def predict(self, tensor: np.ndarray) -> np.ndarray:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._infer_fn, tensor)

    def __repr__(self) -> str:
        return f"ExecutorModel(name={self.name!r})"


def resolve_model_path(model_path: PathLike, root: Optional[PathLike] = None) -> Path:
    p = Path(model_path)
    if root is not None and not p.is_absolute():
        p = Path(root) / p
    return p.resolve()


def infer_backend_name(path: PathLike) -> str:
    suffix = Path(path).suffix.lower()
    if suffix == ".onnx":
        return "onnxruntime"
    if suffix in {".torchscript", ".ts", ".pt"}:
        return "torchscript"
    raise ValueError(f"Could not infer backend from extension '{suffix}'. Pass backend=... explicitly.")


def build_model(
    model_path: PathLike,
    *,
    backend: Optional[str] = None,
    root: Optional[PathLike] = None,
    onnx_providers: Optional[Sequence[str]] = None,
    layout: Optional[str] = None,
    torch_device: str = "cpu",
    torch_half: bool = False,
) -> ExecutorModel:
    """
    Construct a backend for a model on disk (blocking) and wrap it as a `GraphModel`.

    Args:
        model_path: path to the exported model; relative paths resolve against `root` (default: cwd)
        backend: "onnxruntime" or "torchscript"; None infers it from the extension
        layout: input layout the graph expects ("nhwc"/"nchw"); None keeps the backend default
    """

    resolved = resolve_model_path(model_path, root)
    chosen = (backend or infer_backend_name(resolved)).lower()

    if chosen == "onnxruntime":
        from .onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

        ort_backend = OnnxRuntimeBackend(
            resolved,
            OnnxRuntimeBackendConfig(providers=onnx_providers, layout=layout),
        )
        return ExecutorModel(ort_backend.infer, name="onnxruntime", backend=ort_backend)

    if chosen == "torchscript":
        from .torchscript_backend import TorchScriptBackend, TorchScriptBackendConfig

        ts_backend = TorchScriptBackend(
            resolved,
            TorchScriptBackendConfig(device=torch_device, half=torch_half, layout=layout or "nchw"),
        )
        return ExecutorModel(ts_backend.infer, name="torchscript", backend=ts_backend)

    raise ValueError(f"Unsupported backend: {backend!r}")


def model_loader(model_path: PathLike, **kwargs: Any) -> Callable[[], Awaitable[ExecutorModel]]:
    """
    Zero-argument async loader for `ModelCache`. Backend construction (session
    creation, weight loading) runs in a worker thread.
    """

    async def load() -> ExecutorModel:
        logger.info("Loading model from %s", model_path)
        return await asyncio.to_thread(functools.partial(build_model, model_path, **kwargs))

    return load


__all__ = ["GraphModel", "ExecutorModel", "build_model", "infer_backend_name", "model_loader", "resolve_model_path"]
