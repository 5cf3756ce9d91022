"""Tests for the nvidia-smi backend: listing, probing and response caching."""

import subprocess
import threading

import pytest
from conftest import FakeSmi

from hwsense.sensors.attribute import AttributeRole, SensorKind
from hwsense.sensors.backends.nvidia_smi import (
    SmiClient,
    SmiDevice,
    classify_smi_key,
    parse_gpu_list,
    parse_query_table,
)
from hwsense.sensors.errors import AttributeParseError, DeviceConstructionError


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def _device(fake_smi: FakeSmi, clock: FakeClock | None = None, ttl: float = 1.0) -> SmiDevice:
    client = SmiClient(runner=fake_smi)
    kwargs = {"clock": clock} if clock is not None else {}
    return SmiDevice(
        "NVIDIA GeForce RTX 3080", "GPU-1234", 0, client=client, cache_ttl_seconds=ttl, **kwargs
    )


class TestParsing:
    """Tool output parsing."""

    def test_parse_gpu_list(self) -> None:
        gpus = parse_gpu_list("GPU 0: NVIDIA GeForce RTX 3080 (UUID: GPU-1234)\n")
        assert len(gpus) == 1
        assert gpus[0].index == 0
        assert gpus[0].name == "NVIDIA GeForce RTX 3080"
        assert gpus[0].uuid == "GPU-1234"

    def test_parse_gpu_list_skips_other_lines(self) -> None:
        text = (
            "GPU 0: NVIDIA A100-SXM4-40GB (UUID: GPU-aaaa-bbbb)\n"
            "  MIG 1g.5gb Device 0: (UUID: MIG-cccc)\n"
            "GPU 1: Tesla T4 (UUID: GPU-dddd)\n"
        )
        assert [(g.index, g.uuid) for g in parse_gpu_list(text)] == [
            (0, "GPU-aaaa-bbbb"),
            (1, "GPU-dddd"),
        ]

    def test_parse_query_table_strips_units(self) -> None:
        text = "temperature.gpu, clocks.current.graphics [MHz]\n45, 1500 MHz\n"
        assert parse_query_table(text) == {
            "temperature.gpu": "45",
            "clocks.current.graphics": "1500 MHz",
        }

    def test_parse_query_table_without_data_row(self) -> None:
        assert parse_query_table("temperature.gpu\n") is None

    def test_classify_known_and_unknown_keys(self) -> None:
        attr = classify_smi_key("pcie.link.gen.gpumax", lambda: "4")
        assert attr is not None
        assert attr.kind is SensorKind.PCIE_GEN
        assert attr.role is AttributeRole.SUPPORTED_MAX
        assert attr.value() == 4
        assert classify_smi_key("memory.used", lambda: "1 MiB") is None


class TestSmiClient:
    """Process invocation failures."""

    def test_missing_executable_means_no_gpus(self) -> None:
        def runner(argv, timeout):
            raise FileNotFoundError(argv[0])

        assert SmiClient(runner=runner).list_gpus() == []

    def test_unexecutable_tool_means_no_gpus(self) -> None:
        def runner(argv, timeout):
            raise PermissionError(13, "Permission denied", argv[0])

        client = SmiClient(runner=runner)
        assert client.list_gpus() == []
        assert client.query("GPU-1234", ["temperature.gpu"]) is None

    def test_timeout_counts_as_failure(self) -> None:
        def runner(argv, timeout):
            raise subprocess.TimeoutExpired(argv, timeout)

        client = SmiClient(timeout_seconds=2.0, runner=runner)
        assert client.query("GPU-1234", ["temperature.gpu"]) is None
        assert not client.probe("GPU-1234", "temperature.gpu")

    def test_timeout_passed_to_runner(self, fake_smi: FakeSmi) -> None:
        seen = []

        def runner(argv, timeout):
            seen.append(timeout)
            return fake_smi(argv, timeout)

        SmiClient(command=["/opt/nvidia-smi"], timeout_seconds=3.5, runner=runner).list_gpus()
        assert seen == [3.5]
        assert fake_smi.calls[0][0] == "/opt/nvidia-smi"


class TestSmiDevice:
    """Capability probing, grouping and the response cache."""

    def test_requires_uuid(self) -> None:
        with pytest.raises(DeviceConstructionError):
            SmiDevice("GPU", "", 0)

    def test_rejects_bad_index(self) -> None:
        with pytest.raises(DeviceConstructionError):
            SmiDevice("GPU", "GPU-1", "zero")

    def test_probing_keeps_supported_keys(self, fake_smi: FakeSmi) -> None:
        device = _device(fake_smi)
        assert device.active_keys == (
            "temperature.gpu",
            "clocks.current.graphics",
            "clocks.max.graphics",
            "power.draw",
            "power.limit",
            "fan.speed",
        )
        assert fake_smi.count("csv") == 0

    def test_probing_happens_once(self, fake_smi: FakeSmi) -> None:
        device = _device(fake_smi)
        device.attributes
        probes = fake_smi.count("csv,noheader")
        device.attributes
        device.sensors()
        assert fake_smi.count("csv,noheader") == probes

    def test_sensors_grouped_by_kind(self, fake_smi: FakeSmi) -> None:
        sensors = _device(fake_smi).sensors()
        assert [s.name for s in sensors] == [
            "nvidia0/temperature",
            "nvidia0/shader_frequency",
            "nvidia0/power",
            "nvidia0/fan",
        ]
        shader = sensors[1]
        assert shader.value() == 1500.0
        assert shader.maximum() == 2100.0
        assert shader.unit == "MHz"
        assert shader.summary == "Shader Frequency (nvidia0)"
        assert sensors[3].value() == pytest.approx(0.45)
        assert sensors[2].limits() == (None, 320.0)

    def test_detail_names_gpu(self, fake_smi: FakeSmi) -> None:
        sensor = _device(fake_smi).sensors()[0]
        lines = sensor.detail().splitlines()
        assert lines[:2] == ["gpu: NVIDIA GeForce RTX 3080", "gpuid: GPU-1234"]
        assert "value: temperature.gpu" in lines

    def test_one_query_serves_all_reads_within_ttl(self, fake_smi: FakeSmi) -> None:
        clock = FakeClock()
        device = _device(fake_smi, clock)
        for sensor in device.sensors():
            sensor.fetch()
        assert fake_smi.count("csv") == 1

    def test_cache_expires_after_ttl(self, fake_smi: FakeSmi) -> None:
        clock = FakeClock()
        device = _device(fake_smi, clock)
        temperature = device.sensors()[0]
        assert temperature.fetch() == 45.0

        clock.now += 0.5
        fake_smi.gpus["GPU-1234"][2]["temperature.gpu"] = "50"
        assert temperature.fetch() == 45.0
        assert fake_smi.count("csv") == 1

        clock.now += 0.6
        assert temperature.fetch() == 50.0
        assert fake_smi.count("csv") == 2

    def test_failed_query_is_cached_as_no_data(self, fake_smi: FakeSmi) -> None:
        clock = FakeClock()
        device = _device(fake_smi, clock)
        sensors = device.sensors()
        fake_smi.fail_queries = True

        assert [s.fetch() for s in sensors] == [None, None, None, None]
        assert fake_smi.count("csv") == 1

        fake_smi.fail_queries = False
        clock.now += 1.0
        assert sensors[0].fetch() == 45.0

    def test_empty_value_is_no_data(self, fake_smi: FakeSmi) -> None:
        device = _device(fake_smi)
        shader = device.sensors()[1]
        fake_smi.gpus["GPU-1234"][2]["clocks.current.graphics"] = ""
        assert shader.fetch() is None

    def test_malformed_value_raises(self, fake_smi: FakeSmi) -> None:
        device = _device(fake_smi)
        shader = device.sensors()[1]
        fake_smi.gpus["GPU-1234"][2]["clocks.current.graphics"] = "[N/A]"
        with pytest.raises(AttributeParseError):
            shader.fetch()

    def test_cache_shared_across_threads(self, fake_smi: FakeSmi) -> None:
        device = _device(fake_smi, FakeClock())
        sensors = device.sensors()
        threads = [threading.Thread(target=s.fetch) for s in sensors * 5]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert fake_smi.count("csv") == 1
