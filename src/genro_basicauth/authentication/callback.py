# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Caller-supplied predicate.

The predicate receives ``(username, password)``; its return value is read for
truthiness. Exceptions are wrapped in ``CallbackError`` (fatal) with the
original kept as ``__cause__``.

``verify_async`` goes through ``smartasync``: coroutine predicates are
awaited, plain ones run in a worker thread so a blocking lookup does not
stall the event loop. The synchronous ``verify`` only accepts plain
predicates.
"""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any

from smartasync import smartasync

from ..exceptions import CallbackError, ConfigurationError
from .base import AuthBackend, Verdict

if TYPE_CHECKING:
    from ..credentials import Credentials
    from ..realms import CallbackRealm

__all__ = ["CallbackBackend"]


def _failure(e: Exception) -> CallbackError:
    return CallbackError(f"Callback raised {e.__class__.__name__}: {e}")


class CallbackBackend(AuthBackend):
    realm_kind = "callback"

    def verify(self, realm: CallbackRealm, credentials: Credentials) -> Verdict:
        try:
            outcome = realm.check(credentials.username, credentials.password)
        except Exception as e:
            raise _failure(e) from e
        if inspect.isawaitable(outcome):
            if inspect.iscoroutine(outcome):
                outcome.close()
            raise ConfigurationError("Async callback realms require authenticate_async()")
        return Verdict(authenticated=bool(outcome))

    async def verify_async(self, realm: CallbackRealm, credentials: Credentials) -> Verdict:
        try:
            outcome = await smartasync(realm.check)(credentials.username, credentials.password)
        except Exception as e:
            raise _failure(e) from e
        return Verdict(authenticated=bool(outcome))
