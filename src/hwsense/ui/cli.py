"""CLI interface for hwsense.

This module provides a Typer-based command-line interface for listing,
inspecting, reading and logging hardware sensors, and for running the web
snapshot service.
"""

import sys
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from hwsense import __version__
from hwsense.config import get_settings
from hwsense.polling import LogFormat, SensorRecorder, TimestampFormat, make_stamper
from hwsense.sensors import AttributeParseError, Sensor, discover_sensors
from hwsense.telemetry import configure_logging

app = typer.Typer(help="hwsense - uniform access to hardware sensors")
console = Console()
err_console = Console(stderr=True)

SensorOption = Optional[list[str]]


def _sensor_option(help_text: str) -> Any:
    return typer.Option(None, "--sensor", "-s", help=help_text)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"hwsense {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version info and exit",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Discover, read and log hardware sensors."""
    configure_logging("DEBUG" if verbose else None)


def _select(names: list[str] | None) -> list[Sensor]:
    """Discover sensors and keep the named ones, in the order given.

    Raises:
        typer.Exit: If a requested name matches no sensor.
    """
    sensors = discover_sensors()
    if not names:
        return sensors
    by_name = {sensor.name: sensor for sensor in sensors}
    missing = [name for name in names if name not in by_name]
    if missing:
        err_console.print(f"[red]Unknown sensor(s): {', '.join(missing)}[/red]")
        err_console.print("[dim]Run `hwsense list` to see available sensors.[/dim]")
        raise typer.Exit(1)
    return [by_name[name] for name in names]


def _format_value(sensor: Sensor) -> str:
    try:
        value = sensor.fetch()
    except (AttributeParseError, OSError) as e:
        return f"[red]error: {e}[/red]"
    if value is None:
        return "[dim]no data[/dim]"
    return f"{value} {sensor.unit or ''}".rstrip()


@app.command(name="list")
def list_command() -> None:
    """List all available sensors."""
    sensors = discover_sensors()
    if not sensors:
        console.print("[yellow]No sensors found.[/yellow]")
        return

    table = Table(title=f"Sensors ({len(sensors)})")
    table.add_column("Name", style="green")
    table.add_column("Summary", style="white")
    for sensor in sensors:
        table.add_row(sensor.name, sensor.summary)
    console.print(table)


@app.command(name="ls", hidden=True)
def ls_command() -> None:
    """Alias for `list`."""
    list_command()


@app.command(name="info")
def info_command(
    sensor: SensorOption = _sensor_option("Name of a sensor to show information about"),
) -> None:
    """Show detailed information about sensors.

    Examples:
        hwsense info -s coretemp/Package_id_0
    """
    for selected in _select(sensor):
        console.print(f"[bold green]{selected.name}[/bold green]: {selected.summary}")
        for line in selected.detail().splitlines():
            console.print(f"  {line}", highlight=False, soft_wrap=True)


@app.command(name="read")
def read_command(
    sensor: SensorOption = _sensor_option("Name of a sensor to read"),
) -> None:
    """Read sensor values."""
    table = Table()
    table.add_column("Sensor", style="green")
    table.add_column("Value", style="cyan")
    for selected in _select(sensor):
        table.add_row(selected.name, _format_value(selected))
    console.print(table)


@app.command(name="log")
def log_command(
    sensor: SensorOption = _sensor_option("Name of a sensor to include in the logs"),
    interval: Optional[float] = typer.Option(
        None, "--interval", "-i", min=0.001, help="Data logging interval in seconds"
    ),
    units: bool = typer.Option(False, "--units", "-u", help="Include units in output data"),
    timestamp: Optional[TimestampFormat] = typer.Option(
        None, "--timestamp", "-t", help="Include timestamps in the output data"
    ),
    output_format: LogFormat = typer.Option(
        LogFormat.CSV, "--format", "-f", help="Output data format"
    ),
    count: Optional[int] = typer.Option(
        None, "--count", "-n", min=1, help="Stop after this many rows"
    ),
) -> None:
    """Log sensor values continuously.

    Examples:
        hwsense log -i 1 -t iso8601 -s nvidia0/temperature
        hwsense log --format json --units
    """
    recorder = SensorRecorder(
        _select(sensor),
        fmt=output_format,
        include_units=units,
        stamper=make_stamper(timestamp) if timestamp is not None else None,
    )
    try:
        recorder.run(interval or get_settings().poll_interval_seconds, sys.stdout, count=count)
    except KeyboardInterrupt:
        raise typer.Exit(0) from None


@app.command(name="serve")
def serve_command(
    host: Optional[str] = typer.Option(None, "--host", "-a", help="Address for the server"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port for the server"),
) -> None:
    """Run the web snapshot service."""
    from hwsense.service import serve  # noqa: PLC0415

    settings = get_settings()
    serve(host or settings.service_host, port or settings.service_port)


if __name__ == "__main__":
    app()
