"""hwmon backend.

Each /sys/class/hwmon/hwmon* directory holds one file per attribute, named
`{in|curr|fan|pwm|temp}{channel}[_{suffix}]`. Attributes sharing a channel
and kind form one sensor (e.g. temp1_input, temp1_max, temp1_label).

See https://www.kernel.org/doc/html/latest/hwmon/sysfs-interface.html
"""

import functools
import re
from collections.abc import Hashable
from pathlib import Path
from typing import NamedTuple

from hwsense.sensors.attribute import (
    Attribute,
    AttributeRole,
    Converter,
    SensorKind,
    parse_collapsed_label,
    parse_decimal,
    parse_enabled,
    parse_integer,
    parse_millidegrees,
    parse_pwm,
    parse_temperature_type,
    parse_text,
    read_sysfs_text,
)
from hwsense.sensors.device import SysfsDevice
from hwsense.sensors.sensor import Sensor
from hwsense.telemetry import SENSOR_READ_FAILED, get_logger

log = get_logger(__name__)

_ATTRIBUTE_NAME = re.compile(r"^(in|curr|fan|pwm|temp)([0-9]+)(?:_([a-z_]+))?$")

_PREFIX_KINDS = {
    "in": SensorKind.VOLTAGE,
    "curr": SensorKind.CURRENT,
    "fan": SensorKind.FAN,
    "pwm": SensorKind.PWM,
    "temp": SensorKind.TEMPERATURE,
}


class _RoleSpec(NamedTuple):
    role: AttributeRole
    converter: Converter
    unit: str | None


def _limits(unit: str, converter: Converter) -> dict[str, _RoleSpec]:
    """Suffixes shared by voltage and current channels."""
    return {
        "min": _RoleSpec(AttributeRole.MIN, converter, unit),
        "lcrit": _RoleSpec(AttributeRole.CRITICAL_MIN, converter, unit),
        "max": _RoleSpec(AttributeRole.MAX, converter, unit),
        "crit": _RoleSpec(AttributeRole.CRITICAL_MAX, converter, unit),
        "input": _RoleSpec(AttributeRole.VALUE, converter, unit),
        "average": _RoleSpec(AttributeRole.AVERAGE, converter, unit),
        "lowest": _RoleSpec(AttributeRole.LOWEST, converter, unit),
        "highest": _RoleSpec(AttributeRole.HIGHEST, converter, unit),
    }


def _temperature(role: AttributeRole) -> _RoleSpec:
    return _RoleSpec(role, parse_millidegrees, "°C")


# Suffix vocabulary per kind. The None key is the bare `{prefix}{n}` file.
_SUFFIXES: dict[SensorKind, dict[str | None, _RoleSpec]] = {
    SensorKind.VOLTAGE: {
        **_limits("mV", parse_decimal),
        "label": _RoleSpec(AttributeRole.LABEL, parse_collapsed_label, None),
    },
    SensorKind.CURRENT: _limits("mA", parse_decimal),
    SensorKind.FAN: {
        "min": _RoleSpec(AttributeRole.MIN, parse_decimal, "RPM"),
        "max": _RoleSpec(AttributeRole.MAX, parse_decimal, "RPM"),
        "input": _RoleSpec(AttributeRole.VALUE, parse_decimal, "RPM"),
        "div": _RoleSpec(AttributeRole.DIVISOR, parse_integer, None),
        "pulses": _RoleSpec(AttributeRole.PULSES, parse_integer, None),
        "target": _RoleSpec(AttributeRole.TARGET, parse_decimal, "RPM"),
        "label": _RoleSpec(AttributeRole.LABEL, parse_text, None),
        "enable": _RoleSpec(AttributeRole.ENABLE, parse_enabled, None),
    },
    SensorKind.PWM: {
        None: _RoleSpec(AttributeRole.VALUE, parse_pwm, None),
        "enable": _RoleSpec(AttributeRole.ENABLE, parse_enabled, None),
    },
    SensorKind.TEMPERATURE: {
        "type": _RoleSpec(AttributeRole.TYPE_CODE, parse_temperature_type, None),
        "max": _temperature(AttributeRole.MAX),
        "min": _temperature(AttributeRole.MIN),
        "max_hyst": _temperature(AttributeRole.MAX_HYSTERESIS),
        "min_hyst": _temperature(AttributeRole.MIN_HYSTERESIS),
        "input": _temperature(AttributeRole.VALUE),
        "crit": _temperature(AttributeRole.CRITICAL_MAX),
        "crit_hyst": _temperature(AttributeRole.CRITICAL_MAX_HYSTERESIS),
        "lcrit": _temperature(AttributeRole.CRITICAL_MIN),
        "lcrit_hyst": _temperature(AttributeRole.CRITICAL_MIN_HYSTERESIS),
        "emergency": _temperature(AttributeRole.EMERGENCY),
        "emergency_hyst": _temperature(AttributeRole.EMERGENCY_HYSTERESIS),
        "lowest": _temperature(AttributeRole.LOWEST),
        "highest": _temperature(AttributeRole.HIGHEST),
        "label": _RoleSpec(AttributeRole.LABEL, parse_text, None),
        "enable": _RoleSpec(AttributeRole.ENABLE, parse_enabled, None),
    },
}

_SUMMARY_TITLES = {
    SensorKind.VOLTAGE: ("Voltage Sensor", "in"),
    SensorKind.CURRENT: ("Current Sensor", "curr"),
    SensorKind.FAN: ("Fan", "fan"),
    SensorKind.PWM: ("PWM", "pwm"),
    SensorKind.TEMPERATURE: ("Temperature Sensor", "temp"),
}


def classify_hwmon(path: Path | str) -> Attribute | None:
    """Classify one hwmon attribute file by name.

    Args:
        path: Path to the attribute file. Only the final component is
            inspected; nothing is read.

    Returns:
        The attribute, or None if the name is not a modelled hwmon attribute.
    """
    path = Path(path)
    match = _ATTRIBUTE_NAME.match(path.name)
    if match is None:
        return None
    prefix, channel, suffix = match.groups()
    kind = _PREFIX_KINDS[prefix]
    spec = _SUFFIXES[kind].get(suffix)
    if spec is None:
        return None
    return Attribute(
        name=path.name,
        source=str(path),
        kind=kind,
        role=spec.role,
        reader=functools.partial(read_sysfs_text, path),
        converter=spec.converter,
        channel=int(channel),
        unit=spec.unit,
    )


class HwmonDevice(SysfsDevice):
    """One hwmon chip, exposing many channels of several kinds."""

    backend = "hwmon"
    classify = staticmethod(classify_hwmon)

    def _discover_attributes(self) -> list[Attribute]:
        attributes = super()._discover_attributes()
        attributes.sort(key=lambda a: (a.channel, a.name))
        return attributes

    def _resolve_name(self) -> str | None:
        try:
            return (self.path / "name").read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None

    def equivalence_key(self, attribute: Attribute) -> Hashable:
        return (attribute.channel, attribute.kind)

    def sensor_name(self, sensor: Sensor) -> str:
        if sensor.label_attr is not None:
            try:
                label = sensor.label_attr.value()
            except OSError as e:
                log.debug(SENSOR_READ_FAILED, source=sensor.label_attr.source, error=str(e))
                label = None
            if label:
                return f"{self.display_name}/{label}"
        return f"{self.display_name}/{sensor.kind.value}_{sensor.channel}"

    def sensor_summary(self, sensor: Sensor) -> str:
        title, prefix = _SUMMARY_TITLES[sensor.kind]
        return f"{title} ({self.path.name}/{prefix}{sensor.channel})"
