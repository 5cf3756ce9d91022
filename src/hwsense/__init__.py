"""hwsense: uniform discovery and reading of Linux hardware sensors.

hwmon channels, cpufreq scaling domains, DRM GPU frequency controls and
nvidia-smi GPUs are all exposed as named, typed, unit-bearing sensors.
"""

__version__ = "0.1.0"
