"""Command-line task tracker backed by a single SQLite table."""

__version__ = "1.0.0"
