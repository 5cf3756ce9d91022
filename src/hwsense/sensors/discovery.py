"""Device discovery across all backends.

Candidates are enumerated per backend from the configured roots and turned
into devices one at a time. A candidate that fails construction produces a
failure result and is logged; it never stops enumeration of its siblings.
A backend whose enumeration fails (an unreadable root, for instance) is
logged and skipped in the same way.

Backends (in enumeration order):
- hwmon: every entry under `hwmon_root`
- cpufreq: every `cpu*/cpufreq` policy under `cpu_root`, once per policy
- drm: every card under `drm_root` that has a `gt` directory
- nvidia: every GPU listed by `nvidia-smi -L`
"""

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path

from hwsense.config import AppConfig, get_settings
from hwsense.sensors.backends.cpufreq import CpufreqDevice
from hwsense.sensors.backends.drm import DrmDevice, has_frequency_controls
from hwsense.sensors.backends.hwmon import HwmonDevice
from hwsense.sensors.backends.nvidia_smi import SmiClient, SmiDevice
from hwsense.sensors.device import Device
from hwsense.sensors.sensor import Sensor
from hwsense.telemetry import (
    BACKEND_ENUMERATION_FAILED,
    DEVICE_CONSTRUCTION_FAILED,
    DEVICE_DISCOVERED,
    DISCOVERY_COMPLETED,
    DISCOVERY_STARTED,
    get_logger,
)

log = get_logger(__name__)


@dataclass(frozen=True)
class DiscoveryResult:
    """Outcome of constructing one candidate device.

    Exactly one of `device` and `error` is set.
    """

    backend: str
    location: str
    device: Device | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.device is not None


# A candidate is a location plus a deferred constructor for it.
Candidate = tuple[str, Callable[[], Device]]


def _sorted_entries(root: Path) -> list[Path]:
    if not root.is_dir():
        log.debug("discovery_root_missing", root=str(root))
        return []
    return sorted(root.iterdir())


def hwmon_candidates(root: Path) -> Iterator[Candidate]:
    for path in _sorted_entries(root):
        yield str(path), lambda path=path: HwmonDevice(path)


def cpufreq_candidates(root: Path) -> Iterator[Candidate]:
    """CPUs sharing a scaling policy link to the same directory; yield it once."""
    seen: set[Path] = set()
    for cpu in _sorted_entries(root):
        policy = cpu / "cpufreq"
        if not policy.exists():
            continue
        resolved = policy.resolve()
        if resolved in seen:
            continue
        seen.add(resolved)
        yield str(policy), lambda policy=policy: CpufreqDevice(policy)


def drm_candidates(root: Path) -> Iterator[Candidate]:
    for card in _sorted_entries(root):
        if not has_frequency_controls(card):
            continue
        yield str(card), lambda card=card: DrmDevice(card.resolve())


def nvidia_candidates(client: SmiClient, cache_ttl_seconds: float) -> Iterator[Candidate]:
    for gpu in client.list_gpus():
        yield (
            f"nvidia-smi:{gpu.uuid}",
            lambda gpu=gpu: SmiDevice(
                gpu.name,
                gpu.uuid,
                gpu.index,
                client=client,
                cache_ttl_seconds=cache_ttl_seconds,
            ),
        )


def _backend_candidates(
    settings: AppConfig, smi_client: SmiClient | None
) -> Iterator[tuple[str, Iterator[Candidate]]]:
    if settings.enable_hwmon:
        yield HwmonDevice.backend, hwmon_candidates(settings.hwmon_root)
    if settings.enable_cpufreq:
        yield CpufreqDevice.backend, cpufreq_candidates(settings.cpu_root)
    if settings.enable_drm:
        yield DrmDevice.backend, drm_candidates(settings.drm_root)
    if settings.enable_nvidia:
        client = smi_client or SmiClient(
            settings.smi_command, timeout_seconds=settings.smi_timeout_seconds
        )
        yield SmiDevice.backend, nvidia_candidates(client, settings.smi_cache_ttl_seconds)


def _guarded(backend: str, candidates: Iterator[Candidate]) -> Iterator[Candidate]:
    """Stop a backend's enumeration on error without affecting the others."""
    try:
        yield from candidates
    except Exception as e:
        log.warning(BACKEND_ENUMERATION_FAILED, backend=backend, error=str(e), exc_info=True)


def _construct(backend: str, location: str, build: Callable[[], Device]) -> DiscoveryResult:
    try:
        device = build()
    except Exception as e:
        log.warning(
            DEVICE_CONSTRUCTION_FAILED,
            backend=backend,
            location=location,
            error=str(e),
            exc_info=True,
        )
        return DiscoveryResult(backend=backend, location=location, error=e)
    log.debug(DEVICE_DISCOVERED, backend=backend, location=location, name=device.name)
    return DiscoveryResult(backend=backend, location=location, device=device)


def iter_discovery(
    settings: AppConfig | None = None,
    smi_client: SmiClient | None = None,
) -> Iterator[DiscoveryResult]:
    """Yield one result per candidate location, across all enabled backends.

    Args:
        settings: Configuration with backend roots and toggles. Defaults to
            the global settings.
        smi_client: nvidia-smi client override (used by tests).

    Yields:
        A DiscoveryResult carrying either the device or the construction error.
    """
    settings = settings or get_settings()
    log.debug(DISCOVERY_STARTED)
    found = failed = 0
    for backend, candidates in _backend_candidates(settings, smi_client):
        for location, build in _guarded(backend, candidates):
            result = _construct(backend, location, build)
            if result.ok:
                found += 1
            else:
                failed += 1
            yield result
    log.debug(DISCOVERY_COMPLETED, devices=found, failures=failed)


def discover_devices(
    callback: Callable[[DiscoveryResult], None],
    settings: AppConfig | None = None,
    smi_client: SmiClient | None = None,
) -> None:
    """Invoke `callback` for every discovery result, failures included."""
    for result in iter_discovery(settings, smi_client):
        callback(result)


def discover_sensors(
    settings: AppConfig | None = None,
    smi_client: SmiClient | None = None,
) -> list[Sensor]:
    """Discover every device and flatten the successful ones into sensors."""
    sensors: list[Sensor] = []
    for result in iter_discovery(settings, smi_client):
        if result.device is not None:
            sensors.extend(result.device.sensors())
    return sensors
