"""Configuration management for rtmpcast.

Loads and validates YAML-based configuration with Pydantic models.
Supports environment variable overrides for the stream target and the
encoder path.
"""

from rtmpcast.config.settings import Settings, load_settings

__all__ = ["Settings", "load_settings"]
