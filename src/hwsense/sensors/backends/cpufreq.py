"""cpufreq backend.

Each /sys/devices/system/cpu/cpu*/cpufreq directory is one scaling domain
(policy). The whole directory is a single frequency sensor.
"""

import functools
from pathlib import Path

from hwsense.sensors.attribute import (
    Attribute,
    AttributeRole,
    SensorKind,
    parse_kilohertz,
    parse_text,
    read_sysfs_text,
)
from hwsense.sensors.device import SysfsDevice
from hwsense.sensors.sensor import Sensor

_FILES = {
    "scaling_cur_freq": (AttributeRole.VALUE, parse_kilohertz, "MHz"),
    "scaling_min_freq": (AttributeRole.MIN, parse_kilohertz, "MHz"),
    "scaling_max_freq": (AttributeRole.MAX, parse_kilohertz, "MHz"),
    "scaling_governor": (AttributeRole.GOVERNOR, parse_text, None),
}


def classify_cpufreq(path: Path | str) -> Attribute | None:
    """Classify one cpufreq policy file by name.

    Args:
        path: Path to the file; only the final component is inspected.

    Returns:
        The attribute, or None for files that are not modelled.
    """
    path = Path(path)
    entry = _FILES.get(path.name)
    if entry is None:
        return None
    role, converter, unit = entry
    return Attribute(
        name=path.name,
        source=str(path),
        kind=SensorKind.FREQUENCY,
        role=role,
        reader=functools.partial(read_sysfs_text, path),
        converter=converter,
        unit=unit,
    )


class CpufreqDevice(SysfsDevice):
    """One CPU frequency scaling domain."""

    backend = "cpufreq"
    classify = staticmethod(classify_cpufreq)

    def _resolve_name(self) -> str | None:
        try:
            related_cpus = (self.path / "related_cpus").read_text(encoding="utf-8").split()
        except FileNotFoundError:
            return None
        return "cpu" + "_".join(related_cpus)

    def sensor_summary(self, sensor: Sensor) -> str:
        return f"CPU Frequency (cpufreq/{self.path.name})"
