"""Telemetry helpers.

This package emits deterministic run events for export auditing.
"""

from .logger import RunLogger

__all__ = ["RunLogger"]
