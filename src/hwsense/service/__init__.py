"""Web snapshot service."""

from hwsense.service.app import SensorDb, create_app, render_html, serve, snapshot_json

__all__ = ["SensorDb", "create_app", "render_html", "serve", "snapshot_json"]
