"""Periodic polling of sensors.

This module provides:
- DriftTimer for precisely paced polling
- Timestamp stampers for logged samples
- SensorRecorder for CSV/JSON output
"""

from hwsense.polling.recorder import LogFormat, SensorRecorder
from hwsense.polling.timer import (
    AbsoluteStamper,
    DriftTimer,
    OffsetStamper,
    TimestampFormat,
    make_stamper,
)

__all__ = [
    "DriftTimer",
    "OffsetStamper",
    "AbsoluteStamper",
    "TimestampFormat",
    "make_stamper",
    "LogFormat",
    "SensorRecorder",
]
