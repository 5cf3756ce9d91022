"""Shared fixtures: fake sysfs trees and a scripted nvidia-smi."""

import subprocess
from pathlib import Path

import pytest

from hwsense.config import AppConfig, reset_settings


def write_files(directory: Path, files: dict[str, str]) -> Path:
    """Create `directory` and one newline-terminated file per entry."""
    directory.mkdir(parents=True, exist_ok=True)
    for name, content in files.items():
        (directory / name).write_text(content + "\n", encoding="utf-8")
    return directory


class FakeSmi:
    """Scripted stand-in for the nvidia-smi executable.

    Args:
        gpus: uuid -> (index, name, {query key: value text}).
        units: query key -> unit shown in the CSV header.
    """

    def __init__(
        self,
        gpus: dict[str, tuple[int, str, dict[str, str]]],
        units: dict[str, str] | None = None,
    ) -> None:
        self.gpus = gpus
        self.units = units or {}
        self.calls: list[list[str]] = []
        self.fail_queries = False

    def _result(self, argv: list[str], code: int, stdout: str = "") -> subprocess.CompletedProcess:
        return subprocess.CompletedProcess(argv, code, stdout=stdout, stderr="")

    def __call__(self, argv: list[str], timeout: float | None) -> subprocess.CompletedProcess:
        self.calls.append(argv)
        args = argv[1:]
        if args == ["-L"]:
            lines = [
                f"GPU {index}: {name} (UUID: {uuid})"
                for uuid, (index, name, _) in self.gpus.items()
            ]
            return self._result(argv, 0, "\n".join(lines) + "\n")

        options = dict(arg.lstrip("-").split("=", 1) for arg in args)
        gpu = self.gpus.get(options["id"])
        if gpu is None:
            return self._result(argv, 6)
        values = gpu[2]
        keys = options["query-gpu"].split(",")
        if any(key not in values for key in keys):
            return self._result(argv, 2, "Field is not a valid field to query.\n")
        if options["format"] == "csv,noheader":
            return self._result(argv, 0, ", ".join(values[k] for k in keys) + "\n")
        if self.fail_queries:
            return self._result(argv, 15)
        header = ", ".join(
            f"{k} [{self.units[k]}]" if k in self.units else k for k in keys
        )
        return self._result(argv, 0, header + "\n" + ", ".join(values[k] for k in keys) + "\n")

    def count(self, fmt: str) -> int:
        """Number of calls made with a given --format value."""
        return sum(1 for argv in self.calls if f"--format={fmt}" in argv)


@pytest.fixture
def fake_smi() -> FakeSmi:
    """One GPU answering a subset of the candidate keys."""
    return FakeSmi(
        {
            "GPU-1234": (
                0,
                "NVIDIA GeForce RTX 3080",
                {
                    "temperature.gpu": "45",
                    "clocks.current.graphics": "1500 MHz",
                    "clocks.max.graphics": "2100 MHz",
                    "power.draw": "120.50 W",
                    "power.limit": "320.00 W",
                    "fan.speed": "45 %",
                },
            )
        },
        units={
            "clocks.current.graphics": "MHz",
            "clocks.max.graphics": "MHz",
            "power.draw": "W",
            "power.limit": "W",
            "fan.speed": "%",
        },
    )


@pytest.fixture
def sysfs(tmp_path: Path) -> dict[str, Path]:
    """A small sysfs tree with one hwmon chip, two CPUs in one policy and a DRM card."""
    hwmon_root = tmp_path / "class" / "hwmon"
    write_files(
        hwmon_root / "hwmon0",
        {
            "name": "coretemp",
            "temp1_input": "42500",
            "temp1_max": "100000",
            "temp1_crit": "105000",
            "temp1_label": "Package id 0",
            "temp2_input": "40000",
            "uevent": "",
        },
    )

    cpu_root = tmp_path / "devices" / "system" / "cpu"
    policy = write_files(
        cpu_root / "cpufreq" / "policy0",
        {
            "scaling_cur_freq": "2400000",
            "scaling_min_freq": "800000",
            "scaling_max_freq": "4200000",
            "scaling_governor": "powersave",
            "related_cpus": "0 1",
        },
    )
    for cpu in ("cpu0", "cpu1"):
        (cpu_root / cpu).mkdir(parents=True)
        (cpu_root / cpu / "cpufreq").symlink_to(policy)

    drm_root = tmp_path / "class" / "drm"
    card = write_files(
        drm_root / "card0",
        {
            "gt_cur_freq_mhz": "350",
            "gt_min_freq_mhz": "300",
            "gt_max_freq_mhz": "1300",
            "gt_boost_freq_mhz": "1300",
        },
    )
    (card / "gt").mkdir()
    write_files(drm_root / "card0-HDMI-A-1", {"status": "disconnected"})

    return {"hwmon": hwmon_root, "cpu": cpu_root, "drm": drm_root}


@pytest.fixture
def settings(sysfs: dict[str, Path]) -> AppConfig:
    """Settings pointing at the fake sysfs tree, with nvidia disabled."""
    return AppConfig(
        hwmon_root=sysfs["hwmon"],
        cpu_root=sysfs["cpu"],
        drm_root=sysfs["drm"],
        enable_nvidia=False,
    )


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch: pytest.MonkeyPatch):
    """Keep tests independent of the developer's environment and .env files."""
    for name in ("HWSENSE_LOG_LEVEL", "HWSENSE_LOG_TO_FILE", "HWSENSE_ENV"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()
