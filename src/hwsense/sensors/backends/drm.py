"""DRM GPU frequency backend.

Integrated GPUs driven by i915/xe expose gt_*_freq_mhz files directly in
their /sys/class/drm/card* directory. The directory is a single sensor.
"""

import functools
from pathlib import Path

from hwsense.sensors.attribute import (
    Attribute,
    AttributeRole,
    SensorKind,
    parse_decimal,
    read_sysfs_text,
)
from hwsense.sensors.device import SysfsDevice
from hwsense.sensors.sensor import Sensor

_FILES = {
    "gt_cur_freq_mhz": AttributeRole.VALUE,
    "gt_min_freq_mhz": AttributeRole.MIN,
    "gt_max_freq_mhz": AttributeRole.MAX,
    "gt_boost_freq_mhz": AttributeRole.BOOST,
}


def classify_drm(path: Path | str) -> Attribute | None:
    """Classify one DRM frequency file by name.

    Args:
        path: Path to the file; only the final component is inspected.

    Returns:
        The attribute, or None for files that are not modelled.
    """
    path = Path(path)
    role = _FILES.get(path.name)
    if role is None:
        return None
    return Attribute(
        name=path.name,
        source=str(path),
        kind=SensorKind.FREQUENCY,
        role=role,
        reader=functools.partial(read_sysfs_text, path),
        converter=parse_decimal,
        unit="MHz",
    )


def has_frequency_controls(path: Path) -> bool:
    """True if a DRM card directory carries a `gt` subdirectory."""
    return (path / "gt").is_dir()


class DrmDevice(SysfsDevice):
    """Frequency controls of one DRM card."""

    backend = "drm"
    classify = staticmethod(classify_drm)

    def _resolve_name(self) -> str | None:
        return self.path.name

    def sensor_summary(self, sensor: Sensor) -> str:
        return f"Graphics Frequency (drm/{self.path.name})"
