# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
Thread executor for blocking I/O.

Purpose
=======
ThreadExecutor wraps ThreadPoolExecutor to run blocking functions (file
reads, LDAP round trips) without freezing the event loop.

Features:
- Backpressure: at most ``max_pending`` calls queued or running; further
  submissions wait up to ``acquire_timeout`` seconds, then raise
  ExecutorOverloadError
- Bypass mode (pool=None) runs calls inline, for tests
- Orphan handler: when the awaiting task is cancelled, the worker thread
  still finishes; its eventual result is passed to ``orphan_handler`` so
  resources it carries can be released

Bypass Mode::

    executor = ThreadExecutor(name="test", bypass=True)

    # or globally
    os.environ["GENRO_EXECUTOR_BYPASS"] = "1"

Design Notes
============
- The semaphore is created lazily inside the running loop
- Worker exceptions propagate unchanged to the awaiting task
"""

from __future__ import annotations

import asyncio
import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from typing import Any, Callable

from .base import BaseExecutor, ExecutorOverloadError

__all__ = ["ThreadExecutor"]

logger = logging.getLogger("genro_basicauth.executors")


class ThreadExecutor(BaseExecutor):
    """
    Executor backed by a local ThreadPoolExecutor.

    Attributes:
        name: Identifier used in thread names and logs.
        pool: The ThreadPoolExecutor, or None in bypass mode.
        max_pending: Maximum concurrent submissions before backpressure.
        acquire_timeout: Seconds to wait for a free slot, None waits forever.
        orphan_handler: Called with the result of calls whose awaiter was
            cancelled.
    """

    __slots__ = (
        "name",
        "pool",
        "max_pending",
        "acquire_timeout",
        "orphan_handler",
        "_semaphore",
    )

    def __init__(
        self,
        name: str = "default",
        max_workers: int | None = None,
        max_pending: int = 100,
        acquire_timeout: float | None = None,
        orphan_handler: Callable[[Any], None] | None = None,
        bypass: bool = False,
    ) -> None:
        """
        Args:
            name: Identifier for thread names and logging.
            max_workers: Worker threads (default: ThreadPoolExecutor default).
            max_pending: Maximum concurrent submissions.
            acquire_timeout: Seconds to wait for a slot before overload.
            orphan_handler: Receives results nobody awaits anymore.
            bypass: If True, run synchronously without pool (for testing).
        """
        self.name = name
        self.max_pending = max_pending
        self.acquire_timeout = acquire_timeout
        self.orphan_handler = orphan_handler
        self._semaphore: asyncio.Semaphore | None = None

        env_bypass = os.environ.get("GENRO_EXECUTOR_BYPASS") == "1"
        if bypass or env_bypass:
            self.pool: ThreadPoolExecutor | None = None
        else:
            self.pool = ThreadPoolExecutor(
                max_workers=max_workers, thread_name_prefix=f"genro-{name}"
            )

    @property
    def bypass(self) -> bool:
        return self.pool is None

    async def submit(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """
        Run ``func(*args, **kwargs)`` in a worker thread.

        Raises:
            ExecutorOverloadError: No slot freed within ``acquire_timeout``.
        """
        if self.pool is None:
            return func(*args, **kwargs)

        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.max_pending)
        try:
            await asyncio.wait_for(self._semaphore.acquire(), self.acquire_timeout)
        except asyncio.TimeoutError:
            raise ExecutorOverloadError(
                f"Executor '{self.name}' has {self.max_pending} pending calls"
            ) from None
        try:
            return await self._execute(partial(func, *args, **kwargs))
        finally:
            self._semaphore.release()

    async def _execute(self, call: Callable[[], Any]) -> Any:
        assert self.pool is not None
        future: Future[Any] = self.pool.submit(call)
        try:
            return await asyncio.wrap_future(future)
        except asyncio.CancelledError:
            if self.orphan_handler is not None:
                future.add_done_callback(self._release_orphan)
            raise

    def _release_orphan(self, future: Future[Any]) -> None:
        if future.cancelled() or future.exception() is not None:
            return
        try:
            self.orphan_handler(future.result())  # type: ignore[misc]
        except Exception:
            logger.exception(f"Executor '{self.name}': orphan handler failed")

    def shutdown(self, wait: bool = True) -> None:
        if self.pool is not None:
            self.pool.shutdown(wait=wait)

    def __repr__(self) -> str:
        mode = "bypass" if self.pool is None else "thread"
        return f"ThreadExecutor(name={self.name!r}, mode={mode})"
