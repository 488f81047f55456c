"""Configuration management for rtmpcast.

Loads settings from a YAML configuration file with environment variable
overrides. The RTMP target URL embeds the stream key, so it is kept as a
secret and is normally supplied through the environment or a .env file.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings

from rtmpcast.domain.models import (
    AudioBackend,
    CaptureConfiguration,
    CaptureMode,
    Platform,
    load_configuration,
)
from rtmpcast.errors import InvalidConfiguration

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/rtmpcast.yaml")


class EncoderConfig(BaseModel):
    binary: str = Field(default="ffmpeg", description="ffmpeg executable name or path")
    startup_grace: float = Field(
        default=0.5, ge=0, description="Seconds ffmpeg must survive before streaming counts as started"
    )


class StreamConfig(BaseModel):
    """Defaults for every field of a capture configuration."""

    include_audio: bool = Field(default=True)
    quality: str = Field(default="medium")
    framerate: int = Field(default=30)
    resolution: str = Field(default="1280x720")
    video_bitrate: str = Field(default="2500k")
    audio_bitrate: str = Field(default="128k")
    video_device_id: str | None = Field(default=None)
    audio_device_id: str | None = Field(default=None)
    capture_mode: CaptureMode = Field(default=CaptureMode.SCREEN)
    window_title: str | None = Field(default=None)
    audio_backend: AudioBackend = Field(default=AudioBackend.PULSE)

    def to_configuration(
        self,
        platform: Platform,
        target_url: str,
        **overrides: Any,
    ) -> CaptureConfiguration:
        """Build a CaptureConfiguration from these defaults.

        Overrides whose value is None are ignored so that unset CLI flags
        keep the configured default.

        Raises:
            InvalidConfiguration: If the merged values fail validation.
        """
        data: dict[str, Any] = self.model_dump()
        data.update({k: v for k, v in overrides.items() if v is not None})
        data["platform"] = platform
        data["target_url"] = target_url
        return load_configuration(data)


class FallbackConfig(BaseModel):
    enabled: bool = Field(default=True, description="Retry with ALSA when PulseAudio fails")
    alsa_device: str = Field(default="hw:0")


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for rtmpcast.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "RTMPCAST_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    target_url: SecretStr = Field(default=SecretStr(""))

    # Configuration sections
    encoder: EncoderConfig = Field(default_factory=EncoderConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    fallback: FallbackConfig = Field(default_factory=FallbackConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML, then .env, then environment variables.

    Later sources win. ``RTMP_URL`` and ``FFMPEG_PATH`` are honoured
    without the ``RTMPCAST_`` prefix.

    Raises:
        InvalidConfiguration: If the YAML file is not a mapping.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    _load_dotenv()

    yaml_data: dict[str, Any] = {}
    if path.exists():
        with open(path) as f:
            loaded = yaml.safe_load(f)
        if loaded is not None and not isinstance(loaded, dict):
            raise InvalidConfiguration(f"{path} must contain a mapping, not {type(loaded).__name__}")
        yaml_data = loaded or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.debug("No config file at %s; using defaults and environment", path)

    _apply_env_overrides(yaml_data)

    return Settings(**yaml_data)


def _parse_dotenv_line(line: str) -> tuple[str, str] | None:
    """Split a ``KEY=value`` line, allowing ``export`` and quoted values."""
    line = line.strip()
    if not line or line.startswith("#") or "=" not in line:
        return None
    if line.startswith("export "):
        line = line[len("export "):]
    key, _, value = line.partition("=")
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        value = value[1:-1]
    return key.strip(), value


def _load_dotenv(env_path: Path = Path(".env")) -> None:
    """Copy entries of a .env file into os.environ without overwriting."""
    if not env_path.exists():
        return
    with open(env_path) as f:
        for line in f:
            entry = _parse_dotenv_line(line)
            if entry is None:
                continue
            key, value = entry
            if not os.environ.get(key):
                os.environ[key] = value


def _apply_env_overrides(yaml_data: dict[str, Any]) -> None:
    """Map the unprefixed RTMP_URL and FFMPEG_PATH variables onto settings."""
    rtmp_url = os.environ.get("RTMP_URL", "")
    if rtmp_url and not yaml_data.get("target_url"):
        yaml_data["target_url"] = rtmp_url

    ffmpeg_path = os.environ.get("FFMPEG_PATH", "")
    if ffmpeg_path:
        encoder = yaml_data.setdefault("encoder", {})
        if not encoder.get("binary"):
            encoder["binary"] = ffmpeg_path
