"""Worklog timer core: elapsed-time accounting with an offline submission queue."""

__version__ = "0.1.0"

__all__ = ["__version__"]
