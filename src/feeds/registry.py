"""
Runtime registry of polling tasks.

Maps a stable key (the feed source id) to the asyncio task polling it.
Every mutation goes through one asyncio.Lock, so API-triggered
create/update/delete calls, startup rehydration and shutdown never
interleave.

A deregistered task is cancelled right away unless it is in the middle
of a tick. A ticking task is only flagged as stopped; it finishes the
tick and then exits instead of sleeping again.
"""

import asyncio
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

TaskFactory = Callable[["TaskHandle"], Coroutine[Any, Any, None]]


@dataclass
class TaskHandle:
    """Cancellation handle and run state of one registered task."""

    key: str
    task: asyncio.Task | None = None
    ticking: bool = False
    stopped: bool = False

    def stop(self) -> None:
        """Flag the task as stopped; cancel it unless a tick is in flight."""
        self.stopped = True
        if self.task is not None and not self.ticking:
            self.task.cancel()


class TaskRegistry:
    """Key -> TaskHandle map with idempotent registration."""

    def __init__(self, name_prefix: str = "task") -> None:
        self._handles: dict[str, TaskHandle] = {}
        self._lock = asyncio.Lock()
        self._name_prefix = name_prefix

    async def register(self, key: str, factory: TaskFactory) -> bool:
        """
        Start ``factory(handle)`` as the task for ``key``.

        Returns:
            False if ``key`` already has a live task (nothing is started).
        """
        async with self._lock:
            if key in self._handles:
                return False
            handle = TaskHandle(key=key)
            handle.task = asyncio.create_task(factory(handle), name=f"{self._name_prefix}:{key}")
            handle.task.add_done_callback(lambda _t, h=handle: self._discard(h))
            self._handles[key] = handle
            logger.debug(f"Registered task {key}")
            return True

    async def deregister(self, key: str) -> bool:
        """Stop and forget the task for ``key``; False if there was none."""
        async with self._lock:
            handle = self._handles.pop(key, None)
            if handle is None:
                return False
            handle.stop()
            logger.debug(f"Deregistered task {key} (in flight: {handle.ticking})")
            return True

    async def clear(self) -> list[TaskHandle]:
        """Stop and forget every task; returns the handles so callers can await them."""
        async with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
            for handle in handles:
                handle.stop()
            return handles

    def keys(self) -> list[str]:
        return list(self._handles)

    def get(self, key: str) -> TaskHandle | None:
        return self._handles.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._handles

    def __len__(self) -> int:
        return len(self._handles)

    def _discard(self, handle: TaskHandle) -> None:
        # A re-registration may already have replaced this handle
        if self._handles.get(handle.key) is handle:
            del self._handles[handle.key]
            logger.debug(f"Task {handle.key} finished and was discarded")
