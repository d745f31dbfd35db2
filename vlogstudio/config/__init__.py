"""Configuration module for the application."""

from .settings import Settings

__all__ = [
    'Settings',
]
