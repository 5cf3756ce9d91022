"""Command-line interface for hwsense.

The CLI can be run directly:
    python -m hwsense.ui.cli list

Nothing is exported here so the CLI module is only imported when run.
"""

__all__: list[str] = []
