"""Web snapshot service.

Serves the current reading of every discovered sensor at `GET /`, as an
HTML page for browsers or as JSON when the client asks only for JSON:

    {"<device>": {"<sensor>": {"value": 42.5, "unit": "°C", "max": 100.0}}}

Sensors are discovered once when the app is created; values are fetched
fresh on every request.
"""

import html
from collections.abc import Iterable, Iterator, Sequence
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response

from hwsense import __version__
from hwsense.sensors.attribute import AttributeValue
from hwsense.sensors.errors import AttributeParseError
from hwsense.sensors.sensor import Sensor
from hwsense.telemetry import SENSOR_READ_FAILED, SERVICE_STARTING, SNAPSHOT_RENDERED, get_logger

log = get_logger(__name__)

_JSON_TYPES = ("application/json", "text/json")


class SensorDb:
    """Sensors grouped by the device part of their name, in first-seen order."""

    def __init__(self, sensors: Iterable[Sensor] = ()) -> None:  # noqa: D107
        self._groups: dict[str, list[tuple[str, Sensor]]] = {}
        for sensor in sensors:
            self.feed(sensor)

    def feed(self, sensor: Sensor) -> None:
        group, _, subname = sensor.name.partition("/")
        self._groups.setdefault(group, []).append((subname or group, sensor))

    def groups(self) -> list[str]:
        return list(self._groups)

    def in_group(self, group: str) -> Iterator[tuple[str, Sensor]]:
        yield from self._groups.get(group, [])

    def __len__(self) -> int:
        return sum(len(members) for members in self._groups.values())


def _read(sensor: Sensor) -> tuple[AttributeValue, AttributeValue, AttributeValue]:
    """Fetch value and limits; unreadable parts come back as None."""
    try:
        value = sensor.fetch()
    except (AttributeParseError, OSError) as e:
        log.warning(SENSOR_READ_FAILED, sensor=sensor.name, error=str(e))
        return None, None, None
    try:
        minimum, maximum = sensor.limits()
    except (AttributeParseError, OSError) as e:
        log.warning(SENSOR_READ_FAILED, sensor=sensor.name, error=str(e))
        minimum = maximum = None
    return value, minimum, maximum


def snapshot_json(db: SensorDb) -> dict[str, dict[str, dict[str, Any]]]:
    """Build the JSON snapshot; unit/min/max are present only when known."""
    data: dict[str, dict[str, dict[str, Any]]] = {}
    for group in db.groups():
        members: dict[str, dict[str, Any]] = {}
        for subname, sensor in db.in_group(group):
            value, minimum, maximum = _read(sensor)
            entry: dict[str, Any] = {"value": value}
            if sensor.unit:
                entry["unit"] = sensor.unit
            if minimum is not None:
                entry["min"] = minimum
            if maximum is not None:
                entry["max"] = maximum
            members[subname] = entry
        data[group] = members
    return data


_STYLE = """
body { font-family: sans-serif; background-color: #ddd; margin: 0; }
h2 { word-wrap: break-word; }
main { padding: 1rem; max-width: 1000px; margin: 0 auto; background-color: #fff; }
ul { list-style-type: none; padding-left: 2rem; }
li { display: grid; grid-template-columns: 1fr 1fr 2fr; }
@media screen and (max-width: 800px) { li { grid-template-columns: 1fr 1fr 1fr } }
@media screen and (max-width: 600px) { li { grid-template-columns: 1fr 1fr 0 } }
"""


def _render_item(subname: str, sensor: Sensor) -> str:
    value, minimum, maximum = _read(sensor)
    shown = "" if value is None else f"{value} {sensor.unit or ''}".rstrip()
    parts = [
        f"<strong>{html.escape(subname)}</strong>",
        f"<span>{html.escape(shown)}</span>",
    ]
    numeric = (int, float)
    if isinstance(value, numeric) and isinstance(maximum, numeric):
        low = minimum if isinstance(minimum, numeric) else 0
        if maximum > low:
            parts.append(f'<progress value="{value - low}" max="{maximum - low}"></progress>')
    return f"<li>{''.join(parts)}</li>"


def render_html(db: SensorDb) -> str:
    body = ["<h1>hwsense</h1>", "<hr>"]
    for group in db.groups():
        body.append(f"<h2>{html.escape(group)}</h2>")
        body.append("<ul>")
        body.extend(_render_item(subname, sensor) for subname, sensor in db.in_group(group))
        body.append("</ul>")
    body.extend(["<hr>", f"<p>hwsense {html.escape(__version__)}</p>"])
    return (
        "<!DOCTYPE html>\n<html><head>"
        '<meta charset="utf-8">'
        '<meta name="viewport" content="width=device-width,initial-scale=1">'
        f"<title>hwsense</title><style>{_STYLE}</style></head>"
        f"<body><main>{''.join(body)}</main></body></html>"
    )


def wants_json(accept: str | None) -> bool:
    """HTML wins unless the Accept header names JSON and not HTML."""
    if not accept:
        return False
    if "text/html" in accept:
        return False
    return any(t in accept for t in _JSON_TYPES)


def create_app(sensors: Sequence[Sensor] | None = None) -> FastAPI:
    """Build the snapshot app.

    Args:
        sensors: Sensors to serve. Discovered from the configured backends
            when None.

    Returns:
        FastAPI application.
    """
    if sensors is None:
        from hwsense.sensors.discovery import discover_sensors  # noqa: PLC0415

        sensors = discover_sensors()

    app = FastAPI(
        title="hwsense",
        description="Hardware sensor snapshot service",
        version=__version__,
    )
    app.state.sensor_db = SensorDb(sensors)

    @app.get("/health")
    def health_check() -> dict[str, Any]:
        """Service health check endpoint."""
        return {"status": "healthy", "sensors": len(app.state.sensor_db)}

    @app.get("/", response_model=None)
    def index(request: Request) -> Response:
        """Snapshot of every sensor, as HTML or JSON."""
        db: SensorDb = app.state.sensor_db
        as_json = wants_json(request.headers.get("accept"))
        log.debug(SNAPSHOT_RENDERED, format="json" if as_json else "html", sensors=len(db))
        if as_json:
            return JSONResponse(snapshot_json(db))
        return HTMLResponse(render_html(db))

    return app


def serve(host: str, port: int, sensors: Sequence[Sensor] | None = None) -> None:
    """Run the snapshot service with uvicorn until interrupted."""
    import uvicorn  # noqa: PLC0415

    app = create_app(sensors)
    log.info(SERVICE_STARTING, host=host, port=port, sensors=len(app.state.sensor_db))
    uvicorn.run(app, host=host, port=port, log_config=None)
