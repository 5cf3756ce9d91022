"""Drift-corrected interval timer and sample timestamps.

A naive `sleep(interval)` loop drifts by however long each iteration's work
takes (nvidia-smi alone can take a sizeable fraction of a second). DriftTimer
subtracts the work already done since its offset and carries a correction for
the sleep primitive's own over/undershoot into the next call.

Usage:
    timer = DriftTimer()
    for tick in timer.ticks(5.0):
        poll_sensors()
"""

import time
from collections.abc import Callable, Iterator
from datetime import datetime
from enum import Enum

from hwsense.telemetry import TIMER_BEHIND_SCHEDULE, get_logger

log = get_logger(__name__)

MAX_DRIFT_ADJUST = 0.5

_NANOS_PER_SECOND = 1_000_000_000


def _clamp(value: float, limit: float) -> float:
    return max(-limit, min(limit, value))


class DriftTimer:
    """Offset-based sleep that converges on the requested cadence.

    Args:
        clock: Monotonic clock in nanoseconds.
        sleeper: Blocks for a number of seconds.
    """

    def __init__(
        self,
        clock: Callable[[], int] = time.monotonic_ns,
        sleeper: Callable[[float], None] = time.sleep,
    ) -> None:  # noqa: D107
        self._clock = clock
        self._sleeper = sleeper
        self.offset_ns: int = clock()
        self.drift_adjust: float = 0.0

    def reset(self) -> None:
        """Move the offset to now."""
        self.offset_ns = self._clock()

    def elapsed(self) -> float:
        """Seconds since the offset."""
        return (self._clock() - self.offset_ns) / _NANOS_PER_SECOND

    def sleep(self, seconds: float) -> float:
        """Sleep until `seconds` after the offset, corrected for past drift.

        The offset is not moved; call reset() (or use ticks()) to measure
        each cycle on its own.

        Args:
            seconds: Requested interval measured from the offset.

        Returns:
            The duration actually requested from the sleeper, or 0.0 when
            already behind schedule.
        """
        elapsed = self.elapsed()
        remaining = seconds - elapsed + self.drift_adjust
        if remaining <= 0:
            log.debug(
                TIMER_BEHIND_SCHEDULE,
                requested_seconds=seconds,
                elapsed_seconds=round(elapsed, 6),
            )
            return 0.0

        self._sleeper(remaining)
        slept = self.elapsed() - elapsed
        self.drift_adjust = _clamp(remaining - slept, MAX_DRIFT_ADJUST)
        return remaining

    def ticks(self, interval: float, count: int | None = None) -> Iterator[int]:
        """Yield tick numbers every `interval` seconds.

        The offset is reset at the start of every cycle, so the work done by
        the consumer between ticks is what gets subtracted from the sleep.

        Args:
            interval: Seconds between the starts of consecutive ticks.
            count: Number of ticks to yield; None runs forever.

        Yields:
            0, 1, 2, ...
        """
        tick = 0
        while count is None or tick < count:
            self.reset()
            yield tick
            tick += 1
            if count is None or tick < count:
                self.sleep(interval)


class TimestampFormat(str, Enum):
    """Timestamp styles for logged samples."""

    SECONDS = "seconds"
    MILLIS = "millis"
    MICROS = "micros"
    NANOS = "nanos"
    ISO8601 = "iso8601"
    ISO8601_MILLIS = "iso8601-millis"


Timestamp = float | int | str


class OffsetStamper:
    """Time since the stamper was created, in a fixed unit.

    Args:
        unit: One of the offset formats (seconds, millis, micros, nanos).
        clock: Monotonic clock in nanoseconds.
    """

    _DIVISORS = {
        TimestampFormat.SECONDS: _NANOS_PER_SECOND,
        TimestampFormat.MILLIS: 1_000_000,
        TimestampFormat.MICROS: 1_000,
    }

    def __init__(
        self,
        unit: TimestampFormat = TimestampFormat.SECONDS,
        clock: Callable[[], int] = time.monotonic_ns,
    ) -> None:  # noqa: D107
        if unit not in self._DIVISORS and unit is not TimestampFormat.NANOS:
            raise ValueError(f"Not an offset timestamp format: {unit.value}")
        self.unit = unit
        self._clock = clock
        self._base = clock()

    def __call__(self) -> Timestamp:
        nanos = self._clock() - self._base
        if self.unit is TimestampFormat.NANOS:
            return nanos
        return nanos / self._DIVISORS[self.unit]


class AbsoluteStamper:
    """Local wall-clock time as ISO-8601 with a UTC offset.

    Args:
        millis: Include milliseconds.
        now: Returns the current aware datetime.
    """

    def __init__(
        self,
        millis: bool = False,
        now: Callable[[], datetime] = lambda: datetime.now().astimezone(),
    ) -> None:  # noqa: D107
        self.millis = millis
        self._now = now

    def __call__(self) -> Timestamp:
        return self._now().isoformat(timespec="milliseconds" if self.millis else "seconds")


def make_stamper(fmt: TimestampFormat | str) -> Callable[[], Timestamp]:
    """Build the stamper for a timestamp format name."""
    fmt = TimestampFormat(fmt)
    if fmt is TimestampFormat.ISO8601:
        return AbsoluteStamper(millis=False)
    if fmt is TimestampFormat.ISO8601_MILLIS:
        return AbsoluteStamper(millis=True)
    return OffsetStamper(fmt)
