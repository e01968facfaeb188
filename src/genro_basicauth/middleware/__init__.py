# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""ASGI middleware for genro-basicauth.

Every ``BaseMiddleware`` subclass registers itself under ``middleware_name``
when its module is imported; the modules of this package are imported at
package import. ``middleware_chain`` then builds a stack from a config::

    [middleware]
    basicauth = "on"            # errors is on by default

    [basicauth_middleware.routes]
    "/admin" = "Admin area"

    [basicauth_middleware.realms."Admin area"]
    path = "/etc/app/passwd"

Order (lower wraps outer)::

    100  errors      ErrorMiddleware
    400  basicauth   BasicAuthMiddleware
"""

from __future__ import annotations

import functools
import importlib
import pkgutil
from abc import ABC, abstractmethod
from collections.abc import Callable, Coroutine, Mapping
from typing import TYPE_CHECKING, Any

from ..datastructures import headers_from_scope

if TYPE_CHECKING:
    from ..types import ASGIApp, Receive, Scope, Send

MIDDLEWARE_REGISTRY: dict[str, type[BaseMiddleware]] = {}

_ON = frozenset({"on", "true", "yes", "1"})


def with_headers(
    func: Callable[..., Coroutine[Any, Any, None]],
) -> Callable[..., Coroutine[Any, Any, None]]:
    """Parse scope headers once into ``scope["_headers"]`` (a ``Headers``)."""

    @functools.wraps(func)
    async def wrapper(self: BaseMiddleware, scope: Scope, receive: Receive, send: Send) -> None:
        if "_headers" not in scope:
            scope["_headers"] = headers_from_scope(scope)
        await func(self, scope, receive, send)

    return wrapper


class BaseMiddleware(ABC):
    """Middleware base; subclasses land in MIDDLEWARE_REGISTRY on definition.

    Class attributes:
        middleware_name: Registry key and config prefix (default: class name).
        middleware_order: Position in the stack, lower is outer.
        middleware_default: Enabled when the config does not mention it.
    """

    middleware_name: str = ""
    middleware_order: int = 500
    middleware_default: bool = False

    __slots__ = ("app",)

    def __init__(self, app: ASGIApp, **kwargs: Any) -> None:
        self.app = app

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        name = cls.middleware_name or cls.__name__
        if name in MIDDLEWARE_REGISTRY:
            raise ValueError(f"Middleware name '{name}' already registered")
        cls.middleware_name = name
        MIDDLEWARE_REGISTRY[name] = cls

    @abstractmethod
    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None: ...


def _is_on(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _ON
    return bool(value)


def _switches(middleware_config: str | list[str] | Mapping[str, Any] | None) -> dict[str, bool]:
    """Normalize ``"a, b"``, ``["a", "b"]`` or ``{"a": "on"}`` to name -> on."""
    if not middleware_config:
        return {}
    if isinstance(middleware_config, str):
        names = (n.strip() for n in middleware_config.split(","))
        return {name: True for name in names if name}
    if isinstance(middleware_config, Mapping):
        return {name: _is_on(value) for name, value in middleware_config.items()}
    return {name: True for name in middleware_config}


def enabled_middleware(
    middleware_config: str | list[str] | Mapping[str, Any] | None,
) -> list[type[BaseMiddleware]]:
    """Registered middleware classes switched on, outermost first."""
    switches = _switches(middleware_config)
    enabled = [
        cls
        for name, cls in MIDDLEWARE_REGISTRY.items()
        if switches.get(name, cls.middleware_default)
    ]
    return sorted(enabled, key=lambda cls: cls.middleware_order)


def middleware_chain(
    middleware_config: str | list[str] | Mapping[str, Any] | None,
    app: ASGIApp,
    full_config: Mapping[str, Any] | None = None,
) -> ASGIApp:
    """Wrap ``app`` in every enabled middleware.

    Args:
        middleware_config: Switches, as a mapping, comma-separated string or list.
        app: Innermost ASGI app.
        full_config: Mapping holding ``<name>_middleware`` option tables.

    Returns:
        The outermost middleware (or ``app`` when none is enabled).
    """
    for cls in reversed(enabled_middleware(middleware_config)):
        options: Any = (full_config or {}).get(f"{cls.middleware_name}_middleware") or {}
        if hasattr(options, "as_dict"):
            options = options.as_dict()
        app = cls(app, **options)
    return app


def _autodiscover() -> None:
    for module in pkgutil.iter_modules(__path__):
        if not module.name.startswith("_"):
            importlib.import_module(f"{__name__}.{module.name}")


_autodiscover()

__all__ = [
    "BaseMiddleware",
    "MIDDLEWARE_REGISTRY",
    "enabled_middleware",
    "middleware_chain",
    "with_headers",
]
