# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
Executor contract used by ``BasicAuthenticator.authenticate_async``.

An executor turns a blocking verification (file read, directory round
trips) into an awaitable. Implementations decide where the call runs;
callers only ``await executor.submit(func, *args)``.

Errors::

    ExecutorError
    └── ExecutorOverloadError   no capacity within the acquire timeout

Executors are also decorators and context managers::

    with ThreadExecutor(name="auth") as executor:

        @executor
        def lookup(path):
            return read_passwd_file(path)

        passwd = await lookup("/etc/app/passwd")
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from functools import wraps
from typing import Any, Callable, TypeVar

__all__ = ["BaseExecutor", "ExecutorError", "ExecutorOverloadError"]

F = TypeVar("F", bound=Callable[..., Any])


class ExecutorError(Exception):
    """Executor failure unrelated to the submitted function."""


class ExecutorOverloadError(ExecutorError):
    """Too many verifications in flight."""


class BaseExecutor(ABC):
    """Runs blocking callables on behalf of async code.

    Attributes:
        name: Identifier used in logs and worker names.
    """

    name: str

    @abstractmethod
    async def submit(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Await ``func(*args, **kwargs)``; its exceptions propagate unchanged.

        Raises:
            ExecutorOverloadError: No capacity left.
        """

    @abstractmethod
    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work; with ``wait`` block until running calls end."""

    def __call__(self, func: F) -> F:
        @wraps(func)
        async def submitted(*args: Any, **kwargs: Any) -> Any:
            return await self.submit(func, *args, **kwargs)

        return submitted  # type: ignore[return-value]

    def __enter__(self) -> BaseExecutor:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown(wait=True)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
