"""
Lazy, single-instance model holder shared by every pipeline invocation.

The first `get()` starts exactly one load; callers arriving while it runs await
the same task; afterwards the cached handle is returned immediately. A failed
load is not cached: the next `get()` tries again.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from .errors import ModelLoadError


logger = logging.getLogger(__name__)

M = TypeVar("M")


class ModelCache(Generic[M]):
    def __init__(self, loader: Callable[[], Awaitable[M]]):
        self._loader = loader
        self._handle: Optional[M] = None
        self._loading: Optional["asyncio.Future[M]"] = None
        self.load_count = 0

    @property
    def handle(self) -> Optional[M]:
        return self._handle

    @property
    def is_ready(self) -> bool:
        return self._handle is not None

    @property
    def is_loading(self) -> bool:
        return self._loading is not None and not self._loading.done()

    async def get(self) -> M:
        if self._handle is not None:
            return self._handle

        if self._loading is None:
            self.load_count += 1
            self._loading = asyncio.ensure_future(self._load())

        # shield: one impatient caller being cancelled must not abort the shared load
        return await asyncio.shield(self._loading)

    async def _load(self) -> M:
        try:
            handle = await self._loader()
        except asyncio.CancelledError:
            self._loading = None
            raise
        except Exception as exc:
            self._loading = None
            logger.error("Model load failed: %s", exc)
            raise ModelLoadError(str(exc)) from exc

        self._handle = handle
        self._loading = None
        logger.info("Model loaded successfully")
        return handle

    def clear(self) -> None:
        """Drop the cached handle (session teardown). An in-flight load is left to finish."""
        self._handle = None
