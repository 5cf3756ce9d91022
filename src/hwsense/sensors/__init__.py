"""Sensor model and discovery.

This module provides:
- Attribute, Sensor and Device types
- Backend classifiers (hwmon, cpufreq, drm, nvidia-smi)
- Discovery across all enabled backends
"""

from hwsense.sensors.attribute import (
    Attribute,
    AttributeRole,
    AttributeValue,
    SensorKind,
    TemperatureSensorType,
)
from hwsense.sensors.device import Device, DiscoveryState, SysfsDevice
from hwsense.sensors.discovery import (
    DiscoveryResult,
    discover_devices,
    discover_sensors,
    iter_discovery,
)
from hwsense.sensors.errors import AttributeParseError, DeviceConstructionError, HwsenseError
from hwsense.sensors.sensor import Sensor, group_into_sensors

__all__ = [
    # Model
    "Attribute",
    "AttributeRole",
    "AttributeValue",
    "SensorKind",
    "TemperatureSensorType",
    "Device",
    "DiscoveryState",
    "SysfsDevice",
    "Sensor",
    "group_into_sensors",
    # Discovery
    "DiscoveryResult",
    "iter_discovery",
    "discover_devices",
    "discover_sensors",
    # Errors
    "HwsenseError",
    "AttributeParseError",
    "DeviceConstructionError",
]
