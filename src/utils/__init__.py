"""Shared helpers for the settlement processes.

Sub-modules:
- logging: configure_logging() for structlog setup
"""

from .logging import configure_logging

__all__ = ["configure_logging"]
