"""
Fixed-period driver for streaming detection.

Everything here runs on one asyncio loop, so the `inflight` flag and the state
need no locks. Invariants:

- at most one `pipeline.run()` is in flight; a tick that finds one running is
  skipped (the frame is dropped, never queued);
- after `stop()` no tick fires, and a result that completes after `stop()` (or
  after a stop/start cycle) is never rendered.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import math
from typing import Callable, Optional

import numpy as np

from .pipeline import DetectionPipeline
from .render import Renderer
from .sources import CaptureSource
from .types import DetectionResult


logger = logging.getLogger(__name__)


class SchedulerState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"


class FrameScheduler:
    def __init__(
        self,
        source: CaptureSource,
        pipeline: DetectionPipeline,
        renderer: Renderer,
        *,
        period_s: float = 0.1,
        on_status: Optional[Callable[[str], None]] = None,
    ):
        if period_s <= 0:
            raise ValueError(f"period_s must be > 0, got {period_s}")
        self.source = source
        self.pipeline = pipeline
        self.renderer = renderer
        self.period_s = float(period_s)
        self._on_status = on_status

        self.state = SchedulerState.IDLE
        self.inflight = False
        self.last_frame: Optional[np.ndarray] = None
        self.last_result: Optional[DetectionResult] = None
        self.status = "Select mode and click start to begin detection"

        self.ticks = 0
        self.skipped_ticks = 0
        self.detect_calls = 0

        # Bumped on every start/stop; results tagged with an older value are stale.
        self._generation = 0
        self._ticker: Optional[asyncio.Task] = None
        self._inference: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self.state is SchedulerState.RUNNING

    def _set_status(self, msg: str) -> None:
        self.status = msg
        logger.info(msg)
        if self._on_status is not None:
            self._on_status(msg)

    def _is_current(self, generation: int) -> bool:
        return self.state is SchedulerState.RUNNING and generation == self._generation

    async def start(self) -> None:
        if self.state is SchedulerState.RUNNING:
            return

        self.state = SchedulerState.RUNNING
        self._generation += 1
        generation = self._generation

        if not self.pipeline.is_ready:
            self._set_status("Loading model...")
            try:
                await self.pipeline.ensure_ready()
            except Exception as exc:
                self._abort_start(generation)
                self._set_status(f"Error loading model: {exc}")
                raise
            self._set_status("Model loaded successfully!")

        try:
            await self.source.acquire()
        except Exception as exc:
            self._abort_start(generation)
            self._set_status(f"Error starting webcam detection: {exc}")
            raise
        if not self._is_current(generation):
            # stop() ran while we were acquiring.
            self.source.release()
            return
        self._set_status("Webcam initialized")

        self._ticker = asyncio.create_task(self._tick_loop(generation))
        self._set_status("Webcam detection started")

    def _abort_start(self, generation: int) -> None:
        if generation == self._generation:
            self.state = SchedulerState.IDLE
            self._generation += 1
        self.source.release()

    async def stop(self) -> None:
        if self.state is SchedulerState.IDLE:
            return

        self.state = SchedulerState.IDLE
        self._generation += 1

        ticker, self._ticker = self._ticker, None
        if ticker is not None and ticker is not asyncio.current_task():
            ticker.cancel()
            try:
                await ticker
            except asyncio.CancelledError:
                pass

        self.source.release()
        self._set_status("Webcam detection stopped")

    async def aclose(self) -> None:
        """Stop and wait for an in-flight inference to settle (its result is discarded)."""
        await self.stop()
        inference = self._inference
        if inference is not None and not inference.done():
            await asyncio.wait([inference])

    async def __aenter__(self) -> "FrameScheduler":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def _tick_loop(self, generation: int) -> None:
        loop = asyncio.get_running_loop()
        t0 = loop.time()
        k = 0
        while self._is_current(generation):
            k += 1
            now = loop.time()
            deadline = t0 + k * self.period_s
            if deadline < now:
                # Overran one or more periods: skip the missed deadlines instead of bursting.
                k = int(math.floor((now - t0) / self.period_s)) + 1
                deadline = t0 + k * self.period_s
            await asyncio.sleep(deadline - now)
            if not self._is_current(generation):
                break
            self._tick(generation)

    def _tick(self, generation: int) -> None:
        self.ticks += 1
        if self.inflight:
            self.skipped_ticks += 1
            logger.debug("Tick %d skipped: inference still in flight", self.ticks)
            return

        try:
            frame = self.source.current_frame()
        except Exception as exc:
            logger.warning("Frame capture failed: %s", exc)
            self._set_status(f"Error processing frame: {exc}")
            return

        self.last_frame = frame
        self.inflight = True
        self.detect_calls += 1
        self._inference = asyncio.create_task(self._infer(frame, generation))

    async def _infer(self, frame: np.ndarray, generation: int) -> None:
        try:
            result = await self.pipeline.run(frame)
            if not self._is_current(generation):
                logger.debug("Discarding stale result (%d objects)", len(result))
                return
            self.renderer.render(result.detections, result.frame_size, frame=frame)
            self.last_result = result
            self._set_status(f"Inference Time: {result.inference_ms:.2f} ms | Objects: {len(result)}")
        except Exception as exc:
            logger.warning("Frame processing failed: %s", exc, exc_info=logger.isEnabledFor(logging.DEBUG))
            self._set_status(f"Error processing frame: {exc}")
        finally:
            self.inflight = False
