# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Type aliases for genro-basicauth.

ASGI aliases are used by the middleware layer, the callback alias by the
callback realm.

Definition::

    Scope = MutableMapping[str, Any]
    Message = MutableMapping[str, Any]
    Receive = Callable[[], Awaitable[Message]]
    Send = Callable[[Message], Awaitable[None]]
    ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]
    PasswordCheck = Callable[[str, str], Any]

A ``PasswordCheck`` receives ``(username, password)`` and returns a value
interpreted for truthiness.
"""

from typing import Any, Awaitable, Callable, MutableMapping

__all__ = ["Scope", "Message", "Receive", "Send", "ASGIApp", "PasswordCheck"]

# connection scope
Scope = MutableMapping[str, Any]

# event exchanged with the server
Message = MutableMapping[str, Any]

Receive = Callable[[], Awaitable[Message]]

Send = Callable[[Message], Awaitable[None]]

ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]

# Caller-supplied credential predicate
PasswordCheck = Callable[[str, str], Any]
