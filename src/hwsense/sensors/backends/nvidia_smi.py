"""NVIDIA GPU backend via the nvidia-smi command-line tool.

Which query keys a GPU supports is not known up front, so each candidate key
is probed with a single-key query when attributes are first discovered.
Reads go through one batched query per device whose response is cached
briefly, because every nvidia-smi invocation costs a process spawn and the
tool itself can take a noticeable fraction of a second to answer.

Caching:
- Per-device cache of the last response with a configurable TTL (default 1s)
- Protected by a lock, so the web service's worker threads share it safely
- A failed query is cached too: reads resolve to "no data" until it expires
"""

import csv
import functools
import io
import re
import subprocess
import threading
import time
from collections.abc import Callable, Hashable, Sequence
from dataclasses import dataclass

from hwsense.sensors.attribute import (
    Attribute,
    AttributeRole,
    Converter,
    Reader,
    SensorKind,
    parse_decimal,
    parse_integer,
    parse_megahertz_text,
    parse_percentage_text,
    parse_watts_text,
)
from hwsense.sensors.device import Device
from hwsense.sensors.errors import DeviceConstructionError
from hwsense.sensors.sensor import Sensor
from hwsense.telemetry import (
    SMI_CACHE_HIT,
    SMI_CACHE_MISS,
    SMI_PROBE_FAILED,
    SMI_QUERY_FAILED,
    SMI_TIMEOUT,
    SMI_UNAVAILABLE,
    get_logger,
)

log = get_logger(__name__)

Runner = Callable[[list[str], float | None], subprocess.CompletedProcess[str]]


@dataclass(frozen=True)
class SmiKey:
    """A candidate nvidia-smi query key and how to interpret its value."""

    key: str
    kind: SensorKind
    role: AttributeRole
    converter: Converter
    unit: str | None = None


_MHZ = parse_megahertz_text

SMI_KEYS: tuple[SmiKey, ...] = (
    SmiKey("temperature.gpu", SensorKind.TEMPERATURE, AttributeRole.VALUE, parse_decimal, "°C"),
    SmiKey("clocks.current.graphics", SensorKind.SHADER_CLOCK, AttributeRole.VALUE, _MHZ, "MHz"),
    SmiKey("clocks.max.graphics", SensorKind.SHADER_CLOCK, AttributeRole.MAX, _MHZ, "MHz"),
    SmiKey("clocks.current.memory", SensorKind.MEM_CLOCK, AttributeRole.VALUE, _MHZ, "MHz"),
    SmiKey("clocks.max.memory", SensorKind.MEM_CLOCK, AttributeRole.MAX, _MHZ, "MHz"),
    SmiKey("clocks.current.video", SensorKind.VIDEO_CLOCK, AttributeRole.VALUE, _MHZ, "MHz"),
    SmiKey("clocks.max.video", SensorKind.VIDEO_CLOCK, AttributeRole.MAX, _MHZ, "MHz"),
    SmiKey("pcie.link.gen.gpucurrent", SensorKind.PCIE_GEN, AttributeRole.VALUE, parse_integer),
    SmiKey("pcie.link.gen.max", SensorKind.PCIE_GEN, AttributeRole.MAX, parse_integer),
    SmiKey("pcie.link.gen.gpumax", SensorKind.PCIE_GEN, AttributeRole.SUPPORTED_MAX, parse_integer),
    SmiKey("pcie.link.width.current", SensorKind.PCIE_WIDTH, AttributeRole.VALUE, parse_integer),
    SmiKey("pcie.link.width.max", SensorKind.PCIE_WIDTH, AttributeRole.MAX, parse_integer),
    SmiKey("power.draw", SensorKind.POWER, AttributeRole.VALUE, parse_watts_text, "W"),
    SmiKey("power.limit", SensorKind.POWER, AttributeRole.MAX, parse_watts_text, "W"),
    SmiKey("fan.speed", SensorKind.FAN, AttributeRole.VALUE, parse_percentage_text),
)

_KEYS_BY_NAME = {k.key: k for k in SMI_KEYS}

_SENSOR_NAMES = {
    SensorKind.TEMPERATURE: ("temperature", "Temperature Sensor"),
    SensorKind.SHADER_CLOCK: ("shader_frequency", "Shader Frequency"),
    SensorKind.MEM_CLOCK: ("mem_frequency", "Memory Frequency"),
    SensorKind.VIDEO_CLOCK: ("video_frequency", "Video Frequency"),
    SensorKind.PCIE_GEN: ("pcie_gen", "PCIe Link Generation"),
    SensorKind.PCIE_WIDTH: ("pcie_width", "PCIe Link Width"),
    SensorKind.POWER: ("power", "Power Sensor"),
    SensorKind.FAN: ("fan", "Fan"),
}

_GPU_LINE = re.compile(r"^GPU ([0-9]+): ([a-zA-Z0-9\- ]+) \(UUID: ([a-zA-Z0-9-]+)\)")


@dataclass(frozen=True)
class GpuListing:
    """One GPU as reported by `nvidia-smi -L`."""

    index: int
    name: str
    uuid: str


def parse_gpu_list(text: str) -> list[GpuListing]:
    """Parse `nvidia-smi -L` output.

    Args:
        text: Tool output, one GPU per line.

    Returns:
        Listings for every line of the form `GPU <index>: <name> (UUID: <uuid>)`.
    """
    listings = []
    for line in text.splitlines():
        match = _GPU_LINE.match(line.strip())
        if match is not None:
            index, name, uuid = match.groups()
            listings.append(GpuListing(index=int(index), name=name, uuid=uuid))
    return listings


def parse_query_table(text: str) -> dict[str, str] | None:
    """Parse a `--format=csv` query response (header row + one data row).

    Header cells carry a unit suffix (`power.draw [W]`) which is dropped so
    values can be looked up by query key.

    Args:
        text: Tool output.

    Returns:
        Mapping of query key to raw value text, or None if there is no data row.
    """
    rows = list(csv.reader(io.StringIO(text.strip()), skipinitialspace=True))
    if len(rows) < 2:
        return None
    header, data = rows[0], rows[1]
    return {
        column.split(" [", 1)[0].strip(): value.strip() for column, value in zip(header, data)
    }


def classify_smi_key(key: str, reader: Reader) -> Attribute | None:
    """Classify an nvidia-smi query key.

    Args:
        key: Query key, e.g. "clocks.current.graphics".
        reader: Returns the key's raw value from the latest response.

    Returns:
        The attribute, or None if the key is not modelled.
    """
    spec = _KEYS_BY_NAME.get(key)
    if spec is None:
        return None
    return Attribute(
        name=key,
        source=key,
        kind=spec.kind,
        role=spec.role,
        reader=reader,
        converter=spec.converter,
        unit=spec.unit,
    )


def _run_subprocess(args: list[str], timeout: float | None) -> subprocess.CompletedProcess[str]:
    return subprocess.run(args, capture_output=True, text=True, timeout=timeout, check=False)


class SmiClient:
    """Issues nvidia-smi invocations.

    Args:
        command: Command prefix used to invoke the tool.
        timeout_seconds: Bounded wait per invocation; None waits indefinitely.
        runner: Executes a command line; defaults to subprocess.run.
    """

    def __init__(
        self,
        command: Sequence[str] = ("nvidia-smi",),
        timeout_seconds: float | None = None,
        runner: Runner | None = None,
    ) -> None:  # noqa: D107
        self.command = list(command)
        self.timeout_seconds = timeout_seconds
        self._runner = runner or _run_subprocess

    def run(self, *args: str) -> subprocess.CompletedProcess[str] | None:
        """Run the tool with extra arguments.

        Returns:
            The completed process, or None if the tool is missing, cannot be
            executed, or timed out.
        """
        argv = [*self.command, *args]
        try:
            return self._runner(argv, self.timeout_seconds)
        except FileNotFoundError:
            log.debug(SMI_UNAVAILABLE, command=self.command[0])
            return None
        except subprocess.TimeoutExpired:
            log.warning(SMI_TIMEOUT, argv=argv, timeout_seconds=self.timeout_seconds)
            return None
        except OSError as e:
            log.warning(SMI_UNAVAILABLE, command=self.command[0], error=str(e))
            return None

    def list_gpus(self) -> list[GpuListing]:
        result = self.run("-L")
        if result is None or result.returncode != 0:
            return []
        return parse_gpu_list(result.stdout)

    def probe(self, uuid: str, key: str) -> bool:
        """Check whether a GPU answers a single-key query successfully."""
        result = self.run(f"--id={uuid}", f"--query-gpu={key}", "--format=csv,noheader")
        return result is not None and result.returncode == 0

    def query(self, uuid: str, keys: Sequence[str]) -> dict[str, str] | None:
        """Query several keys at once.

        Returns:
            Mapping of key to raw value text, or None if the query failed.
        """
        result = self.run(f"--id={uuid}", f"--query-gpu={','.join(keys)}", "--format=csv")
        if result is None or result.returncode != 0:
            return None
        return parse_query_table(result.stdout)


class SmiDevice(Device):
    """One NVIDIA GPU as seen through nvidia-smi.

    Args:
        name: Marketing name from the GPU listing.
        uuid: GPU UUID; used to address the GPU in queries.
        index: GPU index; used in sensor names.
        client: nvidia-smi client shared between devices.
        cache_ttl_seconds: How long a query response is reused.
        clock: Monotonic clock in seconds.
    """

    backend = "nvidia"

    def __init__(
        self,
        name: str,
        uuid: str,
        index: int | str,
        client: SmiClient | None = None,
        cache_ttl_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:  # noqa: D107
        super().__init__()
        if not uuid:
            raise DeviceConstructionError(f"GPU {name!r} has no UUID")
        try:
            self.index = int(index)
        except ValueError as e:
            raise DeviceConstructionError(f"Invalid GPU index {index!r}") from e
        self.listed_name = name
        self.uuid = uuid
        self.client = client or SmiClient()
        self.cache_ttl_seconds = cache_ttl_seconds
        self._clock = clock
        self._cache_lock = threading.Lock()
        self._cached_response: dict[str, str] | None = None
        self._cache_time: float | None = None

    @property
    def location(self) -> str:
        return f"nvidia-smi:{self.uuid}"

    @property
    def display_name(self) -> str:
        return f"nvidia{self.index}"

    @property
    def active_keys(self) -> tuple[str, ...]:
        """Query keys this GPU answered during probing."""
        return tuple(a.name for a in self.attributes)

    def _resolve_name(self) -> str | None:
        return self.listed_name

    def _discover_attributes(self) -> list[Attribute]:
        attributes = []
        for spec in SMI_KEYS:
            if not self.client.probe(self.uuid, spec.key):
                log.debug(SMI_PROBE_FAILED, gpu=self.uuid, key=spec.key)
                continue
            attribute = classify_smi_key(spec.key, functools.partial(self._read_key, spec.key))
            if attribute is not None:
                attributes.append(attribute)
        return attributes

    def _read_key(self, key: str) -> str | None:
        response = self.cached_response()
        if response is None:
            return None
        return response.get(key) or None

    def cached_response(self) -> dict[str, str] | None:
        """Return the latest query response, re-querying once the TTL has passed."""
        with self._cache_lock:
            now = self._clock()
            if self._cache_time is not None:
                age = now - self._cache_time
                if age < self.cache_ttl_seconds:
                    log.debug(SMI_CACHE_HIT, gpu=self.uuid, age_seconds=round(age, 3))
                    return self._cached_response

            log.debug(SMI_CACHE_MISS, gpu=self.uuid, ttl_seconds=self.cache_ttl_seconds)
            self._cache_time = now
            self._cached_response = self.client.query(self.uuid, self.active_keys)
            if self._cached_response is None:
                log.warning(SMI_QUERY_FAILED, gpu=self.uuid, keys=len(self._attributes))
            return self._cached_response

    def equivalence_key(self, attribute: Attribute) -> Hashable:
        return attribute.kind

    def sensor_name(self, sensor: Sensor) -> str:
        suffix, _ = _SENSOR_NAMES[sensor.kind]
        return f"{self.display_name}/{suffix}"

    def sensor_summary(self, sensor: Sensor) -> str:
        _, title = _SENSOR_NAMES[sensor.kind]
        return f"{title} ({self.display_name})"

    def device_details(self) -> list[str]:
        return [f"gpu: {self.listed_name}", f"gpuid: {self.uuid}"]
