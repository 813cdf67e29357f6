"""Spreadsheet import, verification-code senders, data versions, health checks and build info."""

__version__ = "0.1.0"