"""Tests for discovery across backends and per-candidate failure isolation."""

from pathlib import Path
from unittest.mock import patch

from conftest import FakeSmi, write_files

from hwsense.config import AppConfig
from hwsense.sensors.backends.cpufreq import CpufreqDevice
from hwsense.sensors.backends.drm import DrmDevice
from hwsense.sensors.backends.hwmon import HwmonDevice
from hwsense.sensors.backends.nvidia_smi import SmiClient, SmiDevice
from hwsense.sensors.discovery import (
    DiscoveryResult,
    cpufreq_candidates,
    discover_devices,
    discover_sensors,
    iter_discovery,
)
from hwsense.sensors.errors import DeviceConstructionError


class TestIterDiscovery:
    """Enumeration over the fake sysfs tree."""

    def test_one_result_per_candidate(self, settings: AppConfig) -> None:
        results = list(iter_discovery(settings))
        assert [r.backend for r in results] == ["hwmon", "cpufreq", "drm"]
        assert all(r.ok and r.error is None for r in results)
        assert isinstance(results[0].device, HwmonDevice)
        assert isinstance(results[1].device, CpufreqDevice)
        assert isinstance(results[2].device, DrmDevice)

    def test_cpufreq_policies_deduplicated(self, sysfs: dict[str, Path]) -> None:
        candidates = list(cpufreq_candidates(sysfs["cpu"]))
        assert len(candidates) == 1
        assert candidates[0][0] == str(sysfs["cpu"] / "cpu0" / "cpufreq")

    def test_separate_policies_kept(self, sysfs: dict[str, Path]) -> None:
        write_files(sysfs["cpu"] / "cpu2" / "cpufreq", {"scaling_cur_freq": "1000000"})
        assert len(list(cpufreq_candidates(sysfs["cpu"]))) == 2

    def test_missing_roots_yield_nothing(self, tmp_path: Path) -> None:
        settings = AppConfig(
            hwmon_root=tmp_path / "a",
            cpu_root=tmp_path / "b",
            drm_root=tmp_path / "c",
            enable_nvidia=False,
        )
        assert list(iter_discovery(settings)) == []

    def test_disabled_backends_skipped(self, settings: AppConfig) -> None:
        settings.enable_hwmon = False
        settings.enable_drm = False
        assert [r.backend for r in iter_discovery(settings)] == ["cpufreq"]

    def test_failing_candidate_isolated(self, settings: AppConfig, sysfs: dict[str, Path]) -> None:
        write_files(sysfs["hwmon"] / "hwmon1", {"name": "nct6775", "fan1_input": "900"})
        write_files(sysfs["hwmon"] / "hwmon2", {"name": "acpitz", "temp1_input": "30000"})
        real_init = HwmonDevice.__init__

        def flaky_init(self, path):
            if Path(path).name == "hwmon1":
                raise DeviceConstructionError("broken chip")
            real_init(self, path)

        with patch.object(HwmonDevice, "__init__", flaky_init):
            results = [r for r in iter_discovery(settings) if r.backend == "hwmon"]

        failures = [r for r in results if not r.ok]
        assert len(results) == 3
        assert len(failures) == 1
        assert failures[0].location.endswith("hwmon1")
        assert isinstance(failures[0].error, DeviceConstructionError)
        assert [r.device.name for r in results if r.ok] == ["coretemp", "acpitz"]

    def test_unexpected_errors_also_isolated(self, settings: AppConfig) -> None:
        with patch.object(DrmDevice, "__init__", side_effect=RuntimeError("boom")):
            results = list(iter_discovery(settings))
        assert [r.ok for r in results] == [True, True, False]
        assert isinstance(results[2].error, RuntimeError)

    def test_nvidia_gpus_discovered(self, settings: AppConfig, fake_smi: FakeSmi) -> None:
        settings.enable_nvidia = True
        settings.smi_cache_ttl_seconds = 2.5
        results = list(iter_discovery(settings, smi_client=SmiClient(runner=fake_smi)))
        gpu = results[-1]
        assert gpu.backend == "nvidia"
        assert gpu.location == "nvidia-smi:GPU-1234"
        assert isinstance(gpu.device, SmiDevice)
        assert gpu.device.cache_ttl_seconds == 2.5

    def test_unexecutable_smi_keeps_sysfs_devices(self, settings: AppConfig) -> None:
        def runner(argv, timeout):
            raise PermissionError(13, "Permission denied", argv[0])

        settings.enable_nvidia = True
        results = list(iter_discovery(settings, smi_client=SmiClient(runner=runner)))
        assert [r.backend for r in results] == ["hwmon", "cpufreq", "drm"]
        assert all(r.ok for r in results)

    def test_failing_enumeration_skips_only_that_backend(self, settings: AppConfig) -> None:
        def broken_gpu_list():
            raise RuntimeError("listing failed")

        client = SmiClient(runner=lambda argv, timeout: None)
        client.list_gpus = broken_gpu_list
        settings.enable_nvidia = True
        with patch.object(Path, "iterdir", side_effect=PermissionError(13, "Permission denied")):
            assert list(iter_discovery(settings, smi_client=client)) == []

        results = list(iter_discovery(settings, smi_client=client))
        assert [r.backend for r in results] == ["hwmon", "cpufreq", "drm"]

    def test_nvidia_missing_tool(self, settings: AppConfig) -> None:
        settings.enable_nvidia = True
        settings.smi_command = ["/nonexistent/nvidia-smi"]
        results = list(iter_discovery(settings))
        assert [r.backend for r in results] == ["hwmon", "cpufreq", "drm"]


class TestDiscoverHelpers:
    """Callback and flattening conveniences."""

    def test_discover_devices_reports_failures_too(self, settings: AppConfig) -> None:
        seen: list[DiscoveryResult] = []
        with patch.object(CpufreqDevice, "__init__", side_effect=OSError("gone")):
            discover_devices(seen.append, settings)
        assert [r.ok for r in seen] == [True, False, True]

    def test_discover_sensors_flattens(self, settings: AppConfig) -> None:
        names = [s.name for s in discover_sensors(settings)]
        assert names == [
            "coretemp/Package id 0",
            "coretemp/temperature_2",
            "cpu0_1/frequency",
            "card0/frequency",
        ]

    def test_defaults_to_global_settings(self, settings: AppConfig) -> None:
        with patch("hwsense.sensors.discovery.get_settings", return_value=settings):
            assert len(list(iter_discovery())) == 3
