"""Per-call timing spans for service operations.

Tracing is off by default, and then ``@traced`` and ``trace_span`` only
read a ContextVar. ``mercury -v`` turns it on: every traced service call
returns its span tree under ``ServiceResult.meta["telemetry"]`` and logs
a ``span.complete`` event.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, ParamSpec, TypeVar

import structlog

from mercury.services.result import ServiceResult

log = structlog.get_logger("mercury.telemetry")

_tracing: ContextVar[bool] = ContextVar("mercury_tracing", default=False)
_current_span: ContextVar[Span | None] = ContextVar("mercury_span", default=None)


@dataclass
class Span:
    """One timed step; ``children`` are the steps nested inside it."""

    name: str
    started: float = field(default_factory=time.perf_counter)
    finished: float | None = None
    annotations: dict[str, Any] = field(default_factory=dict)
    children: list[Span] = field(default_factory=list)

    @property
    def duration_ms(self) -> float:
        """Elapsed milliseconds, 0.0 while the span is still open."""
        return 0.0 if self.finished is None else (self.finished - self.started) * 1000

    def end(self) -> None:
        self.finished = time.perf_counter()

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = value

    def to_dict(self) -> dict[str, Any]:
        """Nested plain-dict form; empty annotations and children are left out."""
        tree: dict[str, Any] = {"name": self.name, "duration_ms": round(self.duration_ms, 2)}
        if self.annotations:
            tree["annotations"] = {**self.annotations}
        if self.children:
            tree["children"] = list(map(Span.to_dict, self.children))
        return tree


@contextmanager
def _activate(span: Span) -> Generator[Span]:
    token = _current_span.set(span)
    try:
        yield span
    finally:
        span.end()
        _current_span.reset(token)


@contextmanager
def trace_span(name: str) -> Generator[Span | None]:
    """Time a step inside the running traced call.

    Yields None when tracing is off or nothing is being traced, so callers
    write ``if span:`` before annotating.
    """
    parent = get_current_span()
    if parent is None:
        yield None
        return
    step = Span(name)
    parent.children.append(step)
    with _activate(step):
        yield step


def _with_span(result: ServiceResult, span: Span) -> ServiceResult:
    span.annotate("op", result.op)
    if result.error is not None:
        span.annotate("error", result.error.code)
    return result.model_copy(
        update={"meta": {**(result.meta or {}), "telemetry": span.to_dict()}}
    )


_P = ParamSpec("_P")
_R = TypeVar("_R")


def traced(func: Callable[_P, _R]) -> Callable[_P, _R]:  # noqa: UP047
    """Time a service method; a ServiceResult it returns carries the span tree."""

    @functools.wraps(func)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _R:
        if not _tracing.get():
            return func(*args, **kwargs)

        root = Span(func.__qualname__)
        outcome: _R | None = None
        try:
            with _activate(root):
                outcome = func(*args, **kwargs)
        finally:
            log.debug(
                "span.complete",
                span_name=root.name,
                duration_ms=round(root.duration_ms, 2),
                ok=getattr(outcome, "ok", outcome is not None),
                children=len(root.children),
            )
        if isinstance(outcome, ServiceResult):
            return _with_span(outcome, root)  # type: ignore[return-value]
        return outcome  # type: ignore[return-value]

    return wrapper


def enable_telemetry() -> None:
    """Collect spans in the current context (``--verbose``)."""
    _tracing.set(True)


def disable_telemetry() -> None:
    _tracing.set(False)


def get_current_span() -> Span | None:
    """Innermost open span while tracing, for manual annotation."""
    return _current_span.get() if _tracing.get() else None
