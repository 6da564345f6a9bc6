"""Managed external-process execution with bounded output capture."""

__version__ = "0.1.0"
