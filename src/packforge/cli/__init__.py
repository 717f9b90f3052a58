"""CLI entrypoints for packforge."""

from packforge.cli.export import app as export_app

__all__ = ["export_app"]
