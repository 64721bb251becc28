"""Core package - configuration, security, errors and shared responses."""
from .config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
