"""Shared utilities for Safety Scout."""

from safety_scout.utils.logging import KeyRedactionFilter, LogContext, setup_logging

__all__ = [
    "KeyRedactionFilter",
    "LogContext",
    "setup_logging",
]
