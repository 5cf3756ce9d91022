"""Typed, lazily-fetched sensor attributes.

An Attribute is one raw reading (a sysfs file or an nvidia-smi query key)
tagged with the quantity it measures (SensorKind) and its role within a
sensor (AttributeRole). Backends build attributes through their classifiers;
the converter attached at classification time turns raw text into a value.
"""

import errno
import re
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from pathlib import Path
from typing import Callable, Union

from hwsense.sensors.errors import AttributeParseError


class SensorKind(str, Enum):
    """Physical quantity an attribute belongs to."""

    TEMPERATURE = "temperature"
    VOLTAGE = "voltage"
    CURRENT = "current"
    FAN = "fan"
    PWM = "pwm"
    FREQUENCY = "frequency"
    SHADER_CLOCK = "shader_clock"
    MEM_CLOCK = "mem_clock"
    VIDEO_CLOCK = "video_clock"
    PCIE_GEN = "pcie_gen"
    PCIE_WIDTH = "pcie_width"
    POWER = "power"


class AttributeRole(str, Enum):
    """Role an attribute plays within its sensor."""

    VALUE = "value"
    MIN = "min"
    MAX = "max"
    CRITICAL_MIN = "critical_min"
    CRITICAL_MAX = "critical_max"
    EMERGENCY = "emergency"
    MAX_HYSTERESIS = "max_hysteresis"
    MIN_HYSTERESIS = "min_hysteresis"
    CRITICAL_MAX_HYSTERESIS = "critical_max_hysteresis"
    CRITICAL_MIN_HYSTERESIS = "critical_min_hysteresis"
    EMERGENCY_HYSTERESIS = "emergency_hysteresis"
    LABEL = "label"
    AVERAGE = "average"
    LOWEST = "lowest"
    HIGHEST = "highest"
    DIVISOR = "divisor"
    PULSES = "pulses"
    TARGET = "target"
    ENABLE = "enable"
    TYPE_CODE = "type_code"
    GOVERNOR = "governor"
    BOOST = "boost"
    SUPPORTED_MAX = "supported_max"

    @property
    def is_hysteresis(self) -> bool:
        """True for the *_hyst threshold variants."""
        return self.value.endswith("_hysteresis")


class TemperatureSensorType(IntEnum):
    """Probe type reported by hwmon temp*_type files."""

    CPU_DIODE = 1
    TRANSISTOR_3904 = 2
    THERMAL_DIODE = 3
    THERMISTOR = 4
    AMDSI = 5
    PECI = 6


AttributeValue = Union[float, int, str, bool, TemperatureSensorType, None]
Reader = Callable[[], Union[str, None]]
Converter = Callable[[str], AttributeValue]

# Errors a sysfs read raises while the backing device has nothing to report.
_NO_DATA_ERRNOS = frozenset({errno.ENODATA, errno.ENXIO})


def read_sysfs_text(path: Path) -> str | None:
    """Read one sysfs attribute file.

    Args:
        path: Attribute file path.

    Returns:
        The file contents, or None when the device currently has no data
        (ENODATA/ENXIO, or an empty file).

    Raises:
        OSError: For any other read failure.
    """
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        if e.errno in _NO_DATA_ERRNOS:
            return None
        raise
    if not text.strip():
        return None
    return text


def parse_decimal(raw: str) -> float:
    return float(raw.strip())


def parse_integer(raw: str) -> int:
    return int(raw.strip())


def parse_millidegrees(raw: str) -> float:
    # hwmon reports temperatures in millidegrees Celsius
    return float(raw.strip()) / 1000.0


def parse_kilohertz(raw: str) -> float:
    # cpufreq reports kHz; sensors report MHz
    return float(raw.strip()) / 1000.0


def parse_pwm(raw: str) -> float:
    return float(raw.strip()) / 255.0


def parse_enabled(raw: str) -> bool:
    return raw.strip() != "0"


def parse_text(raw: str) -> str:
    return raw.strip()


def parse_collapsed_label(raw: str) -> str:
    return re.sub(r"\s+", "_", raw.strip())


_TEMPERATURE_TYPES = {str(t.value): t for t in TemperatureSensorType}


def parse_temperature_type(raw: str) -> TemperatureSensorType | None:
    return _TEMPERATURE_TYPES.get(raw.strip())


def _suffixed_number(unit: str, description: str, scale: float = 1.0) -> Converter:
    """Build a converter for "<number> <unit>" text as printed by nvidia-smi."""
    pattern = re.compile(r"([0-9.]+) +" + re.escape(unit))

    def convert(raw: str) -> float:
        match = pattern.search(raw)
        if match is None:
            raise AttributeParseError(f"Invalid nvidia-smi {description} string: {raw!r}")
        return float(match.group(1)) * scale

    return convert


parse_megahertz_text = _suffixed_number("MHz", "frequency")
parse_watts_text = _suffixed_number("W", "power")
parse_percentage_text = _suffixed_number("%", "percentage", scale=0.01)


@dataclass(eq=False)
class Attribute:
    """A single typed reading.

    Attributes:
        name: Raw identifier (file name or query key) the attribute was classified from.
        source: Where the value is read from (file path or query key).
        kind: Quantity this attribute belongs to.
        role: Role within the sensor (value, min, max, label, ...).
        reader: Returns raw text, or None when no data is available.
        converter: Turns raw text into the attribute's value.
        channel: Channel number for multi-channel devices.
        unit: Display unit of the converted value, if any.
    """

    name: str
    source: str
    kind: SensorKind
    role: AttributeRole
    reader: Reader = field(repr=False)
    converter: Converter = field(repr=False)
    channel: int | None = None
    unit: str | None = None
    _value: AttributeValue = field(default=None, init=False, repr=False)
    _fetched: bool = field(default=False, init=False, repr=False)

    @property
    def fetched(self) -> bool:
        """Whether fetch() has completed at least once."""
        return self._fetched

    def fetch(self) -> AttributeValue:
        """Read the backing source and memoize the converted value.

        Returns:
            The converted value, or None when the source has no data.

        Raises:
            AttributeParseError: If the source content cannot be converted.
        """
        raw = self.reader()
        if raw is None:
            value: AttributeValue = None
        else:
            try:
                value = self.converter(raw)
            except AttributeParseError:
                raise
            except ValueError as e:
                raise AttributeParseError(
                    f"Cannot parse {self.role.value} of {self.source}: {raw.strip()!r}"
                ) from e
        self._value = value
        self._fetched = True
        return value

    def value(self, force_fetch: bool = False) -> AttributeValue:
        """Return the memoized value, fetching first if forced or never fetched.

        Args:
            force_fetch: Re-read the backing source even if a value is cached.

        Returns:
            The attribute value, or None when the source has no data.
        """
        if force_fetch or not self._fetched:
            return self.fetch()
        return self._value
