"""Tests for the web snapshot service."""

from pathlib import Path
from unittest.mock import patch

import pytest
from conftest import write_files
from fastapi.testclient import TestClient

from hwsense.sensors.backends.cpufreq import CpufreqDevice
from hwsense.sensors.backends.hwmon import HwmonDevice
from hwsense.sensors.sensor import Sensor
from hwsense.service.app import SensorDb, create_app, wants_json


@pytest.fixture
def sensors(sysfs: dict[str, Path]) -> list[Sensor]:
    hwmon = HwmonDevice(sysfs["hwmon"] / "hwmon0")
    cpu = CpufreqDevice(sysfs["cpu"] / "cpu0" / "cpufreq")
    return hwmon.sensors() + cpu.sensors()


@pytest.fixture
def client(sensors: list[Sensor]) -> TestClient:
    return TestClient(create_app(sensors))


class TestSensorDb:
    """Grouping sensors by device for display."""

    def test_groups_in_first_seen_order(self, sensors: list[Sensor]) -> None:
        db = SensorDb(sensors)
        assert db.groups() == ["coretemp", "cpu0_1"]
        assert [name for name, _ in db.in_group("coretemp")] == [
            "Package id 0",
            "temperature_2",
        ]
        assert list(db.in_group("missing")) == []
        assert len(db) == 3


class TestAcceptNegotiation:
    """HTML unless the client asks only for JSON."""

    @pytest.mark.parametrize(
        "accept,expected",
        [
            (None, False),
            ("*/*", False),
            ("text/html,application/json", False),
            ("application/json", True),
            ("text/json", True),
        ],
    )
    def test_wants_json(self, accept: str | None, expected: bool) -> None:
        assert wants_json(accept) is expected


class TestEndpoints:
    """HTTP responses."""

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "sensors": 3}

    def test_json_snapshot(self, client: TestClient) -> None:
        response = client.get("/", headers={"Accept": "application/json"})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/json")
        assert response.json() == {
            "coretemp": {
                "Package id 0": {"value": 42.5, "unit": "°C", "max": 100.0},
                "temperature_2": {"value": 40.0, "unit": "°C"},
            },
            "cpu0_1": {
                "frequency": {"value": 2400.0, "unit": "MHz", "min": 800.0, "max": 4200.0},
            },
        }

    def test_html_snapshot(self, client: TestClient) -> None:
        response = client.get("/", headers={"Accept": "text/html"})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        body = response.text
        assert "<h2>coretemp</h2>" in body
        assert "<strong>Package id 0</strong>" in body
        assert "42.5 °C" in body
        assert '<progress value="1600.0" max="3400.0"></progress>' in body

    def test_values_fetched_per_request(self, client: TestClient, sysfs: dict[str, Path]) -> None:
        headers = {"Accept": "application/json"}
        assert client.get("/", headers=headers).json()["coretemp"]["temperature_2"]["value"] == 40.0
        (sysfs["hwmon"] / "hwmon0" / "temp2_input").write_text("41000\n")
        assert client.get("/", headers=headers).json()["coretemp"]["temperature_2"]["value"] == 41.0

    def test_unreadable_sensor_is_null(self, tmp_path: Path) -> None:
        chip = write_files(tmp_path / "hwmon3", {"name": "it87", "in0_input": "n/a"})
        client = TestClient(create_app(HwmonDevice(chip).sensors()))
        response = client.get("/", headers={"Accept": "application/json"})
        assert response.json() == {"it87": {"voltage_0": {"value": None, "unit": "mV"}}}

    def test_labels_escaped(self, tmp_path: Path) -> None:
        chip = write_files(
            tmp_path / "hwmon4", {"name": "x", "temp1_input": "1000", "temp1_label": "<b>"}
        )
        client = TestClient(create_app(HwmonDevice(chip).sensors()))
        body = client.get("/").text
        assert "&lt;b&gt;" in body
        assert "<b>" not in body

    def test_discovers_when_no_sensors_given(self, sensors: list[Sensor]) -> None:
        with patch("hwsense.sensors.discovery.discover_sensors", return_value=sensors) as found:
            app = create_app()
        found.assert_called_once_with()
        assert len(app.state.sensor_db) == 3
