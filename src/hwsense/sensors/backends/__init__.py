"""Per-backend classifiers and device types.

Backends:
- hwmon: multi-channel hardware monitor chips
- cpufreq: CPU frequency scaling domains
- drm: integrated GPU frequency controls
- nvidia_smi: NVIDIA GPUs through the nvidia-smi tool
"""

from hwsense.sensors.backends.cpufreq import CpufreqDevice, classify_cpufreq
from hwsense.sensors.backends.drm import DrmDevice, classify_drm, has_frequency_controls
from hwsense.sensors.backends.hwmon import HwmonDevice, classify_hwmon
from hwsense.sensors.backends.nvidia_smi import (
    GpuListing,
    SmiClient,
    SmiDevice,
    classify_smi_key,
    parse_gpu_list,
)

__all__ = [
    "HwmonDevice",
    "classify_hwmon",
    "CpufreqDevice",
    "classify_cpufreq",
    "DrmDevice",
    "classify_drm",
    "has_frequency_controls",
    "SmiDevice",
    "SmiClient",
    "GpuListing",
    "classify_smi_key",
    "parse_gpu_list",
]
