"""Tussles manufacturing order tracker API."""

__version__ = "1.0.0"
