"""
Error taxonomy for the detection front end.

Every pipeline failure maps onto one of these so the scheduler can report it
as a status update without terminating the running loop.
"""

from __future__ import annotations


class YoloLiveError(Exception):
    """Base class for all yolo_live errors."""


class DegenerateInputError(YoloLiveError, ValueError):
    """Zero or negative image/target dimensions."""


class MalformedOutputError(YoloLiveError):
    """Model output does not have the expected (1, 4 + C, N) layout."""


class ModelLoadError(YoloLiveError):
    """Loading the model failed. Retryable: the next `ModelCache.get()` reloads."""


class ModelNotReadyError(YoloLiveError):
    """`detect()` was called before the model cache finished loading."""


class InferenceError(YoloLiveError):
    """Wraps any exception raised by the external model's `predict()`."""


class DecodeError(YoloLiveError, ValueError):
    """Uploaded bytes could not be decoded into an image."""


class CaptureError(YoloLiveError):
    """The live capture source could not be opened or read."""
