"""Device base classes.

A Device owns a location (a sysfs directory or an nvidia-smi GPU), discovers
its attributes once, and regroups them into sensors on demand.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Hashable, Iterable
from enum import Enum
from pathlib import Path
from typing import ClassVar

from hwsense.sensors.attribute import Attribute
from hwsense.sensors.errors import DeviceConstructionError
from hwsense.sensors.sensor import Sensor, group_into_sensors
from hwsense.telemetry import ATTRIBUTES_DISCOVERED, get_logger

log = get_logger(__name__)


class DiscoveryState(Enum):
    """Attribute discovery state of a device. Moves forward at most once."""

    NOT_DISCOVERED = "not_discovered"
    DISCOVERED = "discovered"


class Device(ABC):
    """Base class for all sensor devices.

    Subclasses implement `_discover_attributes` and `_resolve_name`. The
    default equivalence key treats every attribute as belonging to the same
    sensor, which suits single-sensor backends.
    """

    backend: ClassVar[str] = "unknown"

    def __init__(self) -> None:  # noqa: D107
        self._state = DiscoveryState.NOT_DISCOVERED
        self._attributes: tuple[Attribute, ...] = ()
        self._name: str | None = None
        self._name_resolved = False

    @property
    @abstractmethod
    def location(self) -> str:
        """Where this device lives (directory path or tool target)."""

    @abstractmethod
    def _discover_attributes(self) -> Iterable[Attribute]:
        """Scan the backing source and classify every entry."""

    @abstractmethod
    def _resolve_name(self) -> str | None:
        """Look up the device's display name; None if it has none."""

    @abstractmethod
    def sensor_summary(self, sensor: Sensor) -> str:
        """One-line description of a sensor on this device."""

    @property
    def state(self) -> DiscoveryState:
        return self._state

    @property
    def name(self) -> str | None:
        """Device name, resolved at most once.

        A failed lookup is remembered as "no name" and never retried.
        """
        if not self._name_resolved:
            try:
                self._name = self._resolve_name()
            except OSError as e:
                log.debug("device_name_unavailable", location=self.location, error=str(e))
                self._name = None
            self._name_resolved = True
        return self._name

    @property
    def display_name(self) -> str:
        """Name used as the prefix of sensor names."""
        return self.name or Path(self.location).name

    @property
    def attributes(self) -> tuple[Attribute, ...]:
        """All classified attributes, discovered on first access only."""
        if self._state is DiscoveryState.NOT_DISCOVERED:
            self._attributes = tuple(self._discover_attributes())
            self._state = DiscoveryState.DISCOVERED
            log.debug(
                ATTRIBUTES_DISCOVERED,
                backend=self.backend,
                location=self.location,
                count=len(self._attributes),
            )
        return self._attributes

    def equivalence_key(self, attribute: Attribute) -> Hashable:
        return None

    def create_sensor(self, attributes: list[Attribute]) -> Sensor:
        return Sensor.from_attributes(self, attributes)

    def sensors(self) -> list[Sensor]:
        """Group the cached attributes into sensors.

        Grouping is recomputed on every call; discovery is not.
        """
        return group_into_sensors(self.attributes, self.equivalence_key, self.create_sensor)

    def find_sensor(self, name: str) -> Sensor | None:
        for sensor in self.sensors():
            if sensor.name == name:
                return sensor
        return None

    def sensor_name(self, sensor: Sensor) -> str:
        return f"{self.display_name}/{sensor.kind.value}"

    def device_details(self) -> list[str]:
        """Extra lines shown before attribute sources in sensor details."""
        return []

    def __repr__(self) -> str:  # noqa: D105
        return f"{type(self).__name__}(location={self.location!r})"


class SysfsDevice(Device):
    """A device backed by one sysfs directory, one attribute per file."""

    classify: ClassVar[Callable[[Path], Attribute | None]]

    def __init__(self, path: Path | str) -> None:  # noqa: D107
        super().__init__()
        try:
            resolved = Path(path).resolve(strict=True)
        except OSError as e:
            raise DeviceConstructionError(f"Cannot resolve device path {str(path)!r}: {e}") from e
        if not resolved.is_dir():
            raise DeviceConstructionError(f"Not a directory: {str(resolved)!r}")
        self.path = resolved

    @property
    def location(self) -> str:
        return str(self.path)

    def _discover_attributes(self) -> list[Attribute]:
        attributes = []
        for child in sorted(self.path.iterdir()):
            if not child.is_file():
                continue
            attribute = type(self).classify(child)
            if attribute is not None:
                attributes.append(attribute)
        return attributes
