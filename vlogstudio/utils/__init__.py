"""Utility helpers."""

from .logging_config import setup_logging, setup_logging_from_settings

__all__ = [
    'setup_logging',
    'setup_logging_from_settings',
]
