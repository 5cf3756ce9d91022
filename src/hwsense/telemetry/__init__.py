"""Telemetry module for structured logging.

This module provides:
- Structured logging via structlog
- Semantic event constants
"""

from hwsense.telemetry.events import (
    ATTRIBUTES_DISCOVERED,
    BACKEND_ENUMERATION_FAILED,
    DEVICE_CONSTRUCTION_FAILED,
    DEVICE_DISCOVERED,
    DISCOVERY_COMPLETED,
    DISCOVERY_STARTED,
    SENSOR_POLL,
    SENSOR_READ_FAILED,
    SERVICE_STARTING,
    SMI_CACHE_HIT,
    SMI_CACHE_MISS,
    SMI_PROBE_FAILED,
    SMI_QUERY_FAILED,
    SMI_TIMEOUT,
    SMI_UNAVAILABLE,
    SNAPSHOT_RENDERED,
    TIMER_BEHIND_SCHEDULE,
)
from hwsense.telemetry.logger import configure_logging, get_logger

__all__ = [
    # Core exports
    "get_logger",
    "configure_logging",
    # Event constants
    "DISCOVERY_STARTED",
    "DISCOVERY_COMPLETED",
    "DEVICE_DISCOVERED",
    "DEVICE_CONSTRUCTION_FAILED",
    "BACKEND_ENUMERATION_FAILED",
    "ATTRIBUTES_DISCOVERED",
    "SMI_UNAVAILABLE",
    "SMI_PROBE_FAILED",
    "SMI_QUERY_FAILED",
    "SMI_CACHE_HIT",
    "SMI_CACHE_MISS",
    "SMI_TIMEOUT",
    "SENSOR_POLL",
    "SENSOR_READ_FAILED",
    "TIMER_BEHIND_SCHEDULE",
    "SERVICE_STARTING",
    "SNAPSHOT_RENDERED",
]
