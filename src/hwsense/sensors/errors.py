"""Exceptions raised by sensor discovery and reads."""


class HwsenseError(Exception):
    """Base exception for hwsense errors."""


class AttributeParseError(HwsenseError, ValueError):
    """Raised when an attribute source holds data in an unexpected format.

    An empty source is not an error (the attribute simply has no value);
    this is raised only when content is present but unparseable.
    """


class DeviceConstructionError(HwsenseError):
    """Raised when a candidate location does not describe a usable device."""
