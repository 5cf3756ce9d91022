"""Sensors: groups of related attributes exposed as one named reading."""

from collections.abc import Callable, Hashable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

from hwsense.sensors.attribute import Attribute, AttributeRole, AttributeValue, SensorKind

if TYPE_CHECKING:
    from hwsense.sensors.device import Device

T = TypeVar("T")

# Roles that fill a dedicated slot; everything else lands in other_attrs.
_ROLE_SLOTS = {
    AttributeRole.VALUE: "value_attr",
    AttributeRole.MIN: "min_attr",
    AttributeRole.MAX: "max_attr",
    AttributeRole.LABEL: "label_attr",
}


@dataclass(eq=False)
class Sensor:
    """A named reading built from the attributes of one channel.

    A sensor without a value attribute is valid; it just never yields a
    reading. Naming and summaries are delegated to the owning device, since
    each backend has its own naming scheme.
    """

    device: "Device" = field(repr=False)
    kind: SensorKind
    channel: int | None = None
    value_attr: Attribute | None = None
    min_attr: Attribute | None = None
    max_attr: Attribute | None = None
    label_attr: Attribute | None = None
    other_attrs: list[Attribute] = field(default_factory=list)

    @classmethod
    def from_attributes(cls, device: "Device", attributes: Sequence[Attribute]) -> "Sensor":
        """Build a sensor from one equivalence group of attributes.

        Args:
            device: Device the attributes were discovered on.
            attributes: Non-empty group sharing an equivalence key.

        Returns:
            Sensor with value/min/max/label slots filled by role.
        """
        first = attributes[0]
        sensor = cls(device=device, kind=first.kind, channel=first.channel)
        for attr in attributes:
            slot = _ROLE_SLOTS.get(attr.role)
            if slot is not None and getattr(sensor, slot) is None:
                setattr(sensor, slot, attr)
            else:
                sensor.other_attrs.append(attr)
        return sensor

    @property
    def attributes(self) -> list[Attribute]:
        """All attributes of this sensor, slotted ones first."""
        slotted = [self.value_attr, self.label_attr, self.min_attr, self.max_attr]
        return [a for a in slotted if a is not None] + self.other_attrs

    @property
    def name(self) -> str:
        return self.device.sensor_name(self)

    @property
    def unit(self) -> str | None:
        return self.value_attr.unit if self.value_attr is not None else None

    @property
    def summary(self) -> str:
        return self.device.sensor_summary(self)

    def detail(self) -> str:
        """Describe where each attribute of this sensor is read from."""
        lines = list(self.device.device_details())
        for attr in self.attributes:
            lines.append(f"{attr.role.value.replace('_', ' ')}: {attr.source}")
        return "\n".join(lines)

    def fetch(self) -> AttributeValue:
        """Re-read the value attribute.

        Returns:
            The fresh value, or None if the sensor has no value attribute or
            the source has no data.

        Raises:
            AttributeParseError: If the value source is malformed.
        """
        if self.value_attr is None:
            return None
        return self.value_attr.fetch()

    def value(self, force_fetch: bool = False) -> AttributeValue:
        if self.value_attr is None:
            return None
        return self.value_attr.value(force_fetch=force_fetch)

    def minimum(self) -> AttributeValue:
        return self.min_attr.value() if self.min_attr is not None else None

    def maximum(self) -> AttributeValue:
        return self.max_attr.value() if self.max_attr is not None else None

    def limits(self) -> tuple[AttributeValue, AttributeValue]:
        return self.minimum(), self.maximum()


def group_into_sensors(
    attributes: Sequence[Attribute],
    key: Callable[[Attribute], Hashable],
    build: Callable[[list[Attribute]], T],
) -> list[T]:
    """Partition attributes by equivalence key and build one item per group.

    Takes the first unconsumed attribute, collects every remaining attribute
    whose key equals its key, builds the group, and repeats on the rest.
    Groups come out in first-occurrence order and every attribute lands in
    exactly one group. The input sequence is not modified.

    Args:
        attributes: Attributes discovered on one device.
        key: Equivalence key function.
        build: Called once per group; the group's first attribute is first.

    Returns:
        One built item per equivalence class.
    """
    remaining = list(attributes)
    groups: list[T] = []
    while remaining:
        first = remaining[0]
        first_key = key(first)
        group = [first]
        rest = []
        for attr in remaining[1:]:
            if key(attr) == first_key:
                group.append(attr)
            else:
                rest.append(attr)
        groups.append(build(group))
        remaining = rest
    return groups
