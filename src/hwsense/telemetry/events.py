"""Semantic event constants for structured logging.

All log events should use these constants rather than magic strings to ensure
consistency and enable reliable querying and analysis.
"""

# Discovery events
DISCOVERY_STARTED = "discovery_started"
DISCOVERY_COMPLETED = "discovery_completed"
DEVICE_DISCOVERED = "device_discovered"
DEVICE_CONSTRUCTION_FAILED = "device_construction_failed"
BACKEND_ENUMERATION_FAILED = "backend_enumeration_failed"
ATTRIBUTES_DISCOVERED = "attributes_discovered"

# GPU tool events
SMI_UNAVAILABLE = "smi_unavailable"
SMI_PROBE_FAILED = "smi_probe_failed"
SMI_QUERY_FAILED = "smi_query_failed"
SMI_CACHE_HIT = "smi_cache_hit"
SMI_CACHE_MISS = "smi_cache_miss"
SMI_TIMEOUT = "smi_timeout"

# Polling events
SENSOR_POLL = "sensor_poll"
SENSOR_READ_FAILED = "sensor_read_failed"
TIMER_BEHIND_SCHEDULE = "timer_behind_schedule"

# Service events
SERVICE_STARTING = "service_starting"
SNAPSHOT_RENDERED = "snapshot_rendered"
