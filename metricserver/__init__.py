"""Metric collection server with in-memory buffering and periodic flushing to SQLite."""

__version__ = "0.1.0"
__all__ = ["__version__"]