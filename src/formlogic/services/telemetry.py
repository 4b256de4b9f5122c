"""Telemetry for service calls: Span, @traced, trace_span.

Off by default; each call then costs one ContextVar lookup. ``--verbose``
turns it on: every ``@traced`` service method opens a root span, nested
``trace_span`` blocks hang timed children off it (the engine run, rule
validation), and the finished tree lands in ``ServiceResult.meta``.
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

from formlogic.services.result import ServiceResult

log = structlog.get_logger("formlogic.telemetry")

_tracing: ContextVar[bool] = ContextVar("formlogic_tracing", default=False)
_active_span: ContextVar[Span | None] = ContextVar("formlogic_active_span", default=None)


@dataclass
class Span:
    """One timed step. Annotations carry counts such as passes or matched rules."""

    name: str
    children: list[Span] = field(default_factory=list)
    annotations: dict[str, Any] = field(default_factory=dict)
    started: float = field(default_factory=time.perf_counter)
    finished: float | None = None

    @property
    def duration_ms(self) -> float:
        if self.finished is None:
            return 0.0
        return (self.finished - self.started) * 1000

    def child(self, name: str) -> Span:
        span = Span(name=name)
        self.children.append(span)
        return span

    def annotate(self, **values: Any) -> None:
        self.annotations.update(values)

    def finish(self) -> None:
        self.finished = time.perf_counter()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "duration_ms": round(self.duration_ms, 2)}
        if self.annotations:
            data["annotations"] = dict(self.annotations)
        if self.children:
            data["children"] = [c.to_dict() for c in self.children]
        return data


@contextmanager
def _activate(span: Span) -> Generator[Span]:
    token = _active_span.set(span)
    try:
        yield span
    finally:
        span.finish()
        _active_span.reset(token)
        log.debug(
            "span.finished",
            span_name=span.name,
            duration_ms=round(span.duration_ms, 2),
            children=len(span.children),
            **span.annotations,
        )


@contextmanager
def trace_span(name: str) -> Generator[Span | None]:
    """Time a block as a child of the active span.

    Yields None when tracing is off or no ``@traced`` call is running,
    so callers guard annotations with ``if span:``.
    """
    parent = _active_span.get() if _tracing.get() else None
    if parent is None:
        yield None
        return
    with _activate(parent.child(name)) as span:
        yield span


_P = ParamSpec("_P")
_R = TypeVar("_R")


def traced(func: Callable[_P, _R]) -> Callable[_P, _R]:  # noqa: UP047
    """Run a service method inside a root span and attach the tree to its result."""

    @functools.wraps(func)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _R:
        if not _tracing.get():
            return func(*args, **kwargs)

        with _activate(Span(name=func.__qualname__)) as span:
            result = func(*args, **kwargs)
        if isinstance(result, ServiceResult):
            meta = {**(result.meta or {}), "telemetry": span.to_dict()}
            result = result.model_copy(update={"meta": meta})  # type: ignore[assignment]
        return result

    return wrapper


def enable_telemetry() -> None:
    """Turn tracing on for the current context (AppContext does this for -v)."""
    _tracing.set(True)


def disable_telemetry() -> None:
    _tracing.set(False)


def get_current_span() -> Span | None:
    """The span currently open, or None when tracing is off."""
    return _active_span.get() if _tracing.get() else None
