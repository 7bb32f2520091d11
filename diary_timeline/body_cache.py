from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, Optional

from starlette.concurrency import run_in_threadpool

logger = logging.getLogger("diary_timeline.body_cache")

BODY_LOAD_FAILED_PLACEHOLDER = "讀取內容失敗，請稍後再試。"

BodyLoader = Callable[[str], str]


class BodyCache:
    """Session cache for per-document bodies.

    A body is loaded at most once at a time: concurrent ``fetch`` calls for the
    same name await the same pending task. Loader failures are cached as a
    readable placeholder instead of being raised.
    """

    def __init__(
        self,
        loader: Optional[BodyLoader] = None,
        *,
        failure_placeholder: str = BODY_LOAD_FAILED_PLACEHOLDER,
    ):
        self._loader = loader
        self._failure_placeholder = failure_placeholder
        self._bodies: Dict[str, str] = {}
        self._pending: Dict[str, asyncio.Task[str]] = {}

    def get(self, name: str) -> Optional[str]:
        return self._bodies.get(name)

    def set(self, name: str, body: str) -> None:
        self._bodies[name] = body

    def has(self, name: str) -> bool:
        return name in self._bodies

    def has_pending(self, name: str) -> bool:
        return name in self._pending

    def discard(self, name: str) -> None:
        self._bodies.pop(name, None)

    def clear(self) -> None:
        self._bodies.clear()

    async def fetch(self, name: str) -> str:
        cached = self._bodies.get(name)
        if cached is not None:
            return cached

        task = self._pending.get(name)
        if task is None:
            task = asyncio.ensure_future(self._load(name))
            self._pending[name] = task
        return await asyncio.shield(task)

    async def _load(self, name: str) -> str:
        try:
            if self._loader is None:
                raise LookupError("no body loader configured")
            body = await run_in_threadpool(self._loader, name)
        except Exception as exc:  # loader failures must not reach the reader
            logger.warning("Body for '%s' could not be loaded: %s", name, exc)
            body = self._failure_placeholder
        finally:
            self._pending.pop(name, None)

        # a body set while this load was in flight wins
        return self._bodies.setdefault(name, body)


__all__ = ["BODY_LOAD_FAILED_PLACEHOLDER", "BodyCache", "BodyLoader"]
