"""Composable units of work run against a context."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Union

from .context import Context, logger

__all__ = [
    "ExecutorWarning",
    "FinallyError",
    "Conditional",
    "Executor",
    "warningf",
    "info_executor",
    "debug_executor",
    "pipeline",
    "conditional_executor",
    "error_executor",
    "parallel_executor",
]

ExecutorFn = Callable[[Context], None]
ConditionFn = Callable[[Context], bool]


class ExecutorWarning(Exception):
    """An error that is logged as a warning and does not stop a chain."""


class FinallyError(Exception):
    """Raised when the cleanup step of ``Executor.finally_`` fails."""

    def __init__(self, error: BaseException, original: BaseException | None) -> None:
        self.error = error
        self.original = original
        super().__init__(
            f"Error occurred running finally: {error} (original error: {original})"
        )


def warningf(fmt: str, *args: Any) -> ExecutorWarning:
    """Build an ExecutorWarning from a %-style format."""
    return ExecutorWarning(fmt % args if args else fmt)


class Conditional:
    """A predicate over a context."""

    __slots__ = ("_fn",)

    def __init__(self, fn: ConditionFn) -> None:
        self._fn = fn

    def __call__(self, ctx: Context) -> bool:
        return bool(self._fn(ctx))

    def negate(self) -> Conditional:
        """Return the inverted predicate."""
        return Conditional(lambda ctx: not self(ctx))


class Executor:
    """A step of work; calling it runs the step and raises on failure."""

    __slots__ = ("_fn",)

    def __init__(self, fn: ExecutorFn) -> None:
        self._fn = fn

    def __call__(self, ctx: Context) -> None:
        self._fn(ctx)

    def then(self, then: Union[Executor, ExecutorFn]) -> Executor:
        """Run ``then`` after this one succeeds; warnings are logged and skipped."""
        following = _as_executor(then)

        def run(ctx: Context) -> None:
            try:
                self(ctx)
            except ExecutorWarning as warning:
                logger(ctx).warning(str(warning))
            err = ctx.err()
            if err is not None:
                raise err
            following(ctx)

        return Executor(run)

    def if_(self, conditional: ConditionFn) -> Executor:
        """Run only when ``conditional`` holds."""

        def run(ctx: Context) -> None:
            if conditional(ctx):
                self(ctx)

        return Executor(run)

    def if_not(self, conditional: ConditionFn) -> Executor:
        """Run only when ``conditional`` does not hold."""

        def run(ctx: Context) -> None:
            if not conditional(ctx):
                self(ctx)

        return Executor(run)

    def if_bool(self, conditional: bool) -> Executor:
        """Run only when ``conditional`` is true."""
        return self.if_(lambda ctx: conditional)

    def finally_(self, finally_executor: Union[Executor, ExecutorFn]) -> Executor:
        """Always run ``finally_executor`` after this one."""
        cleanup = _as_executor(finally_executor)

        def run(ctx: Context) -> None:
            original: Exception | None = None
            try:
                self(ctx)
            except Exception as exc:
                original = exc
            try:
                cleanup(ctx)
            except Exception as exc:
                raise FinallyError(exc, original) from exc
            if original is not None:
                raise original

        return Executor(run)


def _as_executor(executor: Union[Executor, ExecutorFn]) -> Executor:
    return executor if isinstance(executor, Executor) else Executor(executor)


def info_executor(fmt: str, *args: Any) -> Executor:
    """An executor that logs a message at info level."""
    return Executor(lambda ctx: logger(ctx).info(fmt, *args))


def debug_executor(fmt: str, *args: Any) -> Executor:
    """An executor that logs a message at debug level."""
    return Executor(lambda ctx: logger(ctx).debug(fmt, *args))


def pipeline(*args: Union[Executor, ExecutorFn]) -> Executor:
    """Chain executors so each runs after the previous one succeeds."""
    if not args:
        return Executor(lambda ctx: None)
    result = _as_executor(args[0])
    for executor in args[1:]:
        result = result.then(executor)
    return result


def conditional_executor(
    conditional: ConditionFn,
    true_executor: Union[Executor, ExecutorFn, None],
    false_executor: Union[Executor, ExecutorFn, None],
) -> Executor:
    """Run one of two executors depending on ``conditional``."""

    def run(ctx: Context) -> None:
        chosen = true_executor if conditional(ctx) else false_executor
        if chosen is not None:
            chosen(ctx)

    return Executor(run)


def error_executor(err: BaseException) -> Executor:
    """An executor that always raises ``err``."""

    def run(ctx: Context) -> None:
        raise err

    return Executor(run)


def parallel_executor(parallel: int, *args: Union[Executor, ExecutorFn]) -> Executor:
    """Run executors with at most ``parallel`` at a time, waiting for all of them.

    A cancelled context takes precedence; otherwise the first error reported is raised.
    """
    if parallel < 1:
        raise ValueError("parallel must be at least 1")
    executors = [_as_executor(e) for e in args]

    def run(ctx: Context) -> None:
        first_error: BaseException | None = None
        if executors:
            with ThreadPoolExecutor(max_workers=parallel) as pool:
                futures = [pool.submit(executor, ctx) for executor in executors]
                for future in as_completed(futures):
                    exc = future.exception()
                    if first_error is None and exc is not None:
                        first_error = exc
        err = ctx.err()
        if err is not None:
            raise err
        if first_error is not None:
            raise first_error

    return Executor(run)