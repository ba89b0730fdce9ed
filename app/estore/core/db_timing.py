"""Per-request accumulation of time spent inside database cursor calls.

The context variable holds a mutable accumulator rather than a float: sync
endpoints run in a worker thread with a copy of the request context, and only a
shared object lets their queries reach the middleware's total.
"""

from __future__ import annotations

from contextvars import ContextVar, Token


class _DbTime:
    __slots__ = ("total_ms",)

    def __init__(self) -> None:
        self.total_ms = 0.0


_request_db_time: ContextVar[_DbTime | None] = ContextVar("request_db_time", default=None)


def begin_request_timing() -> Token:
    return _request_db_time.set(_DbTime())


def end_request_timing(token: Token) -> None:
    _request_db_time.reset(token)


def record_query_duration(delta_ms: float) -> None:
    current = _request_db_time.get()
    if current is None:
        return
    current.total_ms += delta_ms


def current_db_time_ms() -> float | None:
    current = _request_db_time.get()
    return None if current is None else current.total_ms
