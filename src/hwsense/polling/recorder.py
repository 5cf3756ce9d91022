"""Periodic sensor logging as CSV or JSON lines.

Each poll re-reads every sensor's value attribute and emits one line. A
sensor whose source is unreadable contributes an empty CSV cell or a JSON
null for that poll; the run continues.
"""

import csv
import io
from collections.abc import Callable, Iterator, Sequence
from enum import Enum
from typing import Any, TextIO

import orjson

from hwsense.polling.timer import DriftTimer, Timestamp
from hwsense.sensors.attribute import AttributeValue
from hwsense.sensors.errors import AttributeParseError
from hwsense.sensors.sensor import Sensor
from hwsense.telemetry import SENSOR_POLL, SENSOR_READ_FAILED, get_logger

log = get_logger(__name__)


class LogFormat(str, Enum):
    """Output format of the periodic logger."""

    CSV = "csv"
    JSON = "json"


def _csv_line(cells: Sequence[Any]) -> str:
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="").writerow(cells)
    return buffer.getvalue()


def _json_value(value: AttributeValue) -> Any:
    if isinstance(value, Enum):
        return value.name.lower()
    return value


class SensorRecorder:
    """Formats polls of a fixed sensor list.

    Args:
        sensors: Sensors to poll, in column order.
        fmt: Output format.
        include_units: Add units to the CSV header or JSON objects.
        stamper: Produces the timestamp of each poll; None omits timestamps.
    """

    def __init__(
        self,
        sensors: Sequence[Sensor],
        fmt: LogFormat = LogFormat.CSV,
        include_units: bool = False,
        stamper: Callable[[], Timestamp] | None = None,
    ) -> None:  # noqa: D107
        self.sensors = list(sensors)
        self.fmt = LogFormat(fmt)
        self.include_units = include_units
        self.stamper = stamper

    def header(self) -> str | None:
        """Column header line; JSON output has none."""
        if self.fmt is not LogFormat.CSV:
            return None
        columns = ["timestamp"] if self.stamper is not None else []
        for sensor in self.sensors:
            if self.include_units and sensor.unit:
                columns.append(f"{sensor.name} ({sensor.unit})")
            else:
                columns.append(sensor.name)
        return _csv_line(columns)

    def sample(self) -> list[AttributeValue]:
        """Fetch every sensor once; unreadable sensors yield None."""
        values: list[AttributeValue] = []
        for sensor in self.sensors:
            try:
                values.append(sensor.fetch())
            except (AttributeParseError, OSError) as e:
                log.warning(SENSOR_READ_FAILED, sensor=sensor.name, error=str(e))
                values.append(None)
        return values

    def row(self) -> str:
        """Poll all sensors and format one output line."""
        timestamp = self.stamper() if self.stamper is not None else None
        values = self.sample()
        log.debug(SENSOR_POLL, sensors=len(values))

        if self.fmt is LogFormat.CSV:
            cells: list[Any] = [timestamp] if self.stamper is not None else []
            cells.extend("" if v is None else _json_value(v) for v in values)
            return _csv_line(cells)

        record: dict[str, Any] = {}
        if self.stamper is not None:
            record["timestamp"] = timestamp
        sensors: dict[str, Any] = {}
        for sensor, value in zip(self.sensors, values):
            if self.include_units:
                sensors[sensor.name] = {"value": _json_value(value), "unit": sensor.unit}
            else:
                sensors[sensor.name] = _json_value(value)
        record["sensors"] = sensors
        return orjson.dumps(record).decode()

    def lines(
        self,
        interval: float,
        count: int | None = None,
        timer: DriftTimer | None = None,
    ) -> Iterator[str]:
        """Yield the header (if any) and then one row per tick."""
        header = self.header()
        if header is not None:
            yield header
        for _ in (timer or DriftTimer()).ticks(interval, count):
            yield self.row()

    def run(
        self,
        interval: float,
        out: TextIO,
        count: int | None = None,
        timer: DriftTimer | None = None,
    ) -> None:
        """Write polls to `out` every `interval` seconds, flushing each line."""
        for line in self.lines(interval, count, timer):
            out.write(line + "\n")
            out.flush()
