"""Request-scoped values and cancellation shared by executors."""

from __future__ import annotations

import logging
import threading
from typing import Any

__all__ = [
    "Cancelled",
    "Context",
    "background",
    "dryrun",
    "with_dryrun",
    "job_error",
    "set_job_error",
    "with_job_error_container",
    "logger",
    "with_logger",
]

_MISSING = object()
_DRYRUN_KEY = object()
_JOB_ERROR_KEY = object()
_LOGGER_KEY = object()

_DEFAULT_LOGGER_NAME = "actlocal"


class Cancelled(Exception):
    """The context was cancelled."""

    def __init__(self, message: str = "context canceled") -> None:
        super().__init__(message)


class _CancelScope:
    """A cancellation signal that cascades to the scopes derived from it."""

    def __init__(self, parent: _CancelScope | None) -> None:
        self.event = threading.Event()
        self._children: list[_CancelScope] = []
        self._lock = threading.Lock()
        if parent is not None:
            parent._adopt(self)

    def _adopt(self, child: _CancelScope) -> None:
        with self._lock:
            if not self.event.is_set():
                self._children.append(child)
                return
        child.cancel()

    def cancel(self) -> None:
        with self._lock:
            if self.event.is_set():
                return
            self.event.set()
            children, self._children = self._children, []
        for child in children:
            child.cancel()

    @property
    def cancelled(self) -> bool:
        return self.event.is_set()


class Context:
    """An immutable chain of key/value pairs with optional cancellation."""

    __slots__ = ("_parent", "_key", "_value", "_scope")

    def __init__(
        self,
        parent: Context | None = None,
        key: Any = _MISSING,
        value: Any = None,
        scope: _CancelScope | None = None,
    ) -> None:
        self._parent = parent
        self._key = key
        self._value = value
        self._scope = scope

    def value(self, key: Any) -> Any:
        """Return the value stored under ``key`` here or in an ancestor, else None."""
        ctx: Context | None = self
        while ctx is not None:
            if ctx._key is not _MISSING and ctx._key == key:
                return ctx._value
            ctx = ctx._parent
        return None

    def with_value(self, key: Any, value: Any) -> Context:
        """Return a child context that carries ``value`` under ``key``."""
        return Context(self, key, value, self._scope)

    def with_cancel(self) -> Context:
        """Return a child context that can be cancelled on its own."""
        return Context(self, scope=_CancelScope(self._scope))

    def cancel(self) -> None:
        """Cancel this context and every context derived from it."""
        if self._scope is None:
            raise RuntimeError("context is not cancellable")
        self._scope.cancel()

    def err(self) -> Cancelled | None:
        """Return a Cancelled error once the context is cancelled, else None."""
        if self._scope is not None and self._scope.cancelled:
            return Cancelled()
        return None

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or until ``timeout``; return whether it was cancelled."""
        if self._scope is None:
            threading.Event().wait(timeout)
            return False
        return self._scope.event.wait(timeout)


def background() -> Context:
    """Return an empty root context that is never cancelled."""
    return Context()


def dryrun(ctx: Context) -> bool:
    """Return True if the context is in dry-run mode."""
    val = ctx.value(_DRYRUN_KEY)
    return val if isinstance(val, bool) else False


def with_dryrun(ctx: Context, dryrun: bool) -> Context:
    """Return a context with the dry-run flag set."""
    return ctx.with_value(_DRYRUN_KEY, dryrun)


def job_error(ctx: Context) -> BaseException | None:
    """Return the job error recorded in the context, if any."""
    container = ctx.value(_JOB_ERROR_KEY)
    if isinstance(container, dict):
        return container.get("error")
    return None


def set_job_error(ctx: Context, err: BaseException | None) -> None:
    """Record ``err`` in the context's job error container."""
    container = ctx.value(_JOB_ERROR_KEY)
    if not isinstance(container, dict):
        raise LookupError("context has no job error container")
    container["error"] = err


def with_job_error_container(ctx: Context) -> Context:
    """Return a context holding a fresh, empty job error container."""
    return ctx.with_value(_JOB_ERROR_KEY, {})


def logger(ctx: Context) -> logging.Logger | logging.LoggerAdapter:
    """Return the logger stored in the context, or the package logger."""
    val = ctx.value(_LOGGER_KEY)
    if isinstance(val, (logging.Logger, logging.LoggerAdapter)):
        return val
    return logging.getLogger(_DEFAULT_LOGGER_NAME)


def with_logger(ctx: Context, logger: logging.Logger | logging.LoggerAdapter) -> Context:
    """Return a context carrying ``logger``."""
    return ctx.with_value(_LOGGER_KEY, logger)