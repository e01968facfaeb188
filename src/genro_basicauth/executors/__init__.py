# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
Executors for running blocking verification off the event loop.

Passwd-file reads and ldap3 network operations block. Async hosts run them
through a ``ThreadExecutor`` so one slow directory server does not stall
other requests.

Usage::

    from genro_basicauth.executors import ThreadExecutor

    executor = ThreadExecutor(name="auth", max_workers=8)

    @executor
    def verify(user, password):
        return backend.verify(realm, Credentials(user, password))

    verdict = await verify("alice", "secret")
"""

from .base import BaseExecutor, ExecutorError, ExecutorOverloadError
from .thread import ThreadExecutor

__all__ = [
    "BaseExecutor",
    "ExecutorError",
    "ExecutorOverloadError",
    "ThreadExecutor",
]
