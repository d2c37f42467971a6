"""Timeouts, wall-clock helpers and a minimal thread-backed async runtime."""

from __future__ import annotations

import asyncio
import concurrent.futures
import threading
import time as _time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Generator, Optional, Union

__all__ = [
    "Timeout",
    "millis_to_epoch",
    "current_time_millis",
    "NaiveRuntime",
]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)

DurationLike = Union[timedelta, int, float]


def _to_timedelta(duration: DurationLike) -> timedelta:
    """Accept a timedelta or a number of seconds; reject negative durations."""
    if isinstance(duration, timedelta):
        result = duration
    elif isinstance(duration, (int, float)) and not isinstance(duration, bool):
        result = timedelta(seconds=duration)
    else:
        raise TypeError(f"expected a timedelta or a number of seconds, got {duration!r}")
    if result < timedelta(0):
        raise ValueError("durations cannot be negative")
    return result


def _wrap_i32(value: int) -> int:
    return ((value + 2**31) % 2**32) - 2**31


@dataclass(frozen=True, eq=True, order=False)
class Timeout:
    """A timeout for an operation: either a finite duration or never.

    ``duration`` is ``None`` for a timeout that never expires.
    Finite timeouts order before the never-expiring one.
    """

    duration: Optional[timedelta] = None

    def __post_init__(self) -> None:
        if self.duration is not None:
            object.__setattr__(self, "duration", _to_timedelta(self.duration))

    @classmethod
    def after(cls, duration: DurationLike) -> "Timeout":
        """A timeout that expires once ``duration`` has elapsed."""
        return cls(_to_timedelta(duration))

    @classmethod
    def never(cls) -> "Timeout":
        """A timeout that blocks forever."""
        return cls(None)

    @classmethod
    def from_value(cls, value: Union["Timeout", DurationLike, None]) -> "Timeout":
        """Build a timeout from a Timeout, a duration, or ``None`` (never)."""
        if isinstance(value, Timeout):
            return value
        if value is None:
            return cls.never()
        return cls.after(value)

    @property
    def is_never(self) -> bool:
        return self.duration is None

    def as_millis(self) -> int:
        """The timeout in whole milliseconds as a signed 32-bit value; -1 for never."""
        if self.duration is None:
            return -1
        return _wrap_i32(self.duration // _ONE_MS)

    def __sub__(self, other: "Timeout") -> "Timeout":
        if not isinstance(other, Timeout):
            return NotImplemented
        if other.duration is None:
            raise ValueError("subtraction of a never-expiring timeout is ill-defined")
        if self.duration is None:
            return self
        remaining = self.duration - other.duration
        if remaining < timedelta(0):
            raise ValueError("overflow when subtracting durations")
        return Timeout(remaining)

    def _key(self) -> tuple:
        if self.duration is None:
            return (1, timedelta(0))
        return (0, self.duration)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Timeout):
            return NotImplemented
        return self._key() < other._key()

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Timeout):
            return NotImplemented
        return self._key() <= other._key()

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Timeout):
            return NotImplemented
        return self._key() > other._key()

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Timeout):
            return NotImplemented
        return self._key() >= other._key()

    def __repr__(self) -> str:
        if self.duration is None:
            return "Timeout.never()"
        return f"Timeout.after({self.duration!r})"


def millis_to_epoch(time: datetime) -> int:
    """Milliseconds from the Unix epoch to ``time``; 0 for earlier times.

    Naive datetimes are taken to be in UTC.
    """
    if time.tzinfo is None:
        time = time.replace(tzinfo=timezone.utc)
    elapsed = time - _EPOCH
    if elapsed < timedelta(0):
        return 0
    return elapsed // _ONE_MS


def current_time_millis() -> int:
    """The current time in milliseconds since the Unix epoch."""
    return _time.time_ns() // 1_000_000


class _Delay:
    """An awaitable that completes when a background timer thread finishes."""

    def __init__(self, future: "concurrent.futures.Future[None]") -> None:
        self._future = future

    def done(self) -> bool:
        return self._future.done()

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block the calling thread until the delay has elapsed."""
        self._future.result(timeout)

    def __await__(self) -> Generator[Any, None, None]:
        return asyncio.wrap_future(self._future).__await__()


async def _await(awaitable: Awaitable[Any]) -> Any:
    return await awaitable


class NaiveRuntime:
    """An async runtime that uses a fresh thread per task and per timer.

    Not meant for performance-sensitive use: every spawned task and every
    delay occupies its own thread.
    """

    def spawn(self, task: Awaitable[Any]) -> threading.Thread:
        """Run ``task`` to completion on a new thread with its own event loop."""
        thread = threading.Thread(target=asyncio.run, args=(_await(task),))
        thread.start()
        return thread

    def delay_for(self, duration: DurationLike) -> _Delay:
        """An awaitable that resolves once ``duration`` has elapsed from now."""
        seconds = _to_timedelta(duration).total_seconds()
        future: "concurrent.futures.Future[None]" = concurrent.futures.Future()

        def _sleep() -> None:
            _time.sleep(seconds)
            future.set_result(None)

        threading.Thread(target=_sleep, daemon=True).start()
        return _Delay(future)