"""Utility functions for the interview progression engine."""

from .logging import setup_logging

__all__ = ["setup_logging"]
