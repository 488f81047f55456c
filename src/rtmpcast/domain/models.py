"""Core domain models for the rtmpcast system.

These models represent the data flowing through a streaming session:
the capture configuration requested by the caller, the devices found by
discovery, and the lifecycle events emitted while the encoder runs.
"""

from __future__ import annotations

import enum
import re
import sys
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from rtmpcast.errors import InvalidConfiguration, UnsupportedPlatform


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Platform(str, enum.Enum):
    """Supported host kinds, keyed by ``sys.platform``."""

    MACOS = "darwin"  # AVFoundation capture
    LINUX = "linux"  # X11 grab + PulseAudio/ALSA

    @classmethod
    def current(cls) -> Platform:
        """Detect the host platform.

        Raises:
            UnsupportedPlatform: If the host is neither macOS nor Linux.
        """
        if sys.platform == "darwin":
            return cls.MACOS
        if sys.platform.startswith("linux"):
            return cls.LINUX
        raise UnsupportedPlatform(
            f"Streaming is only supported on macOS and Linux, not {sys.platform!r}"
        )


class CaptureMode(str, enum.Enum):
    """Whether the session captures the full screen or a single window."""

    SCREEN = "screen"
    WINDOW = "window"


class AudioBackend(str, enum.Enum):
    """Audio input driver used on Linux hosts."""

    PULSE = "pulse"
    ALSA = "alsa"


class DeviceKind(str, enum.Enum):
    VIDEO = "video"
    AUDIO = "audio"


class SessionState(str, enum.Enum):
    """Lifecycle state of a streaming session."""

    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    EXITED = "exited"
    FAILED = "failed"

    @property
    def is_active(self) -> bool:
        """Whether an encoder process may be alive in this state."""
        return self in (SessionState.STARTING, SessionState.RUNNING, SessionState.STOPPING)

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.EXITED, SessionState.FAILED)


class EventKind(str, enum.Enum):
    """Kinds of events emitted by a session."""

    STATE = "state"  # State transition
    STDOUT = "stdout"  # Chunk of encoder standard output
    STDERR = "stderr"  # Chunk of encoder standard error
    EXIT = "exit"  # Encoder process exited
    ERROR = "error"  # Encoder could not be launched


# Per-platform defaults for device identifiers
DEFAULT_VIDEO_DEVICES: dict[Platform, str] = {
    Platform.MACOS: "1",
    Platform.LINUX: ":0.0",
}
DEFAULT_AUDIO_DEVICES: dict[Platform, str] = {
    Platform.MACOS: "0",
    Platform.LINUX: "default",
}

_RESOLUTION_RE = re.compile(r"^\s*(-?\d+)\s*[xX]\s*(-?\d+)\s*$")
_BITRATE_RE = re.compile(r"^\s*(-?\d+)\s*[kK]?\s*$")


# ---------------------------------------------------------------------------
# Capture Configuration
# ---------------------------------------------------------------------------


class Resolution(BaseModel):
    """A capture resolution in pixels."""

    model_config = ConfigDict(frozen=True)

    width: int
    height: int

    @classmethod
    def parse(cls, value: str) -> Resolution:
        """Parse a ``WIDTHxHEIGHT`` string such as ``1920x1080``."""
        match = _RESOLUTION_RE.match(value)
        if not match:
            raise ValueError(f"Resolution must look like 1280x720, got {value!r}")
        return cls(width=int(match.group(1)), height=int(match.group(2)))

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


class CaptureConfiguration(BaseModel):
    """Immutable description of a requested capture/stream session.

    Type-level problems (unparseable resolution, non-numeric bitrate) are
    rejected when the model is constructed. Semantic invariants such as a
    positive framerate or a window title in window mode are checked by the
    encoder argument builder, which raises InvalidConfiguration.
    """

    model_config = ConfigDict(frozen=True)

    platform: Platform = Field(description="Host kind the arguments are built for")
    target_url: str = Field(default="", description="RTMP destination, including stream key")
    include_audio: bool = Field(default=True)
    quality: str = Field(default="medium", description="fast, medium, slow or high")
    framerate: int = Field(default=30, description="Requested frames per second")
    resolution: Resolution = Field(default_factory=lambda: Resolution(width=1280, height=720))
    video_bitrate: int = Field(default=2500, description="Video bitrate in kbps")
    audio_bitrate: int = Field(default=128, description="Audio bitrate in kbps")
    video_device_id: str | None = Field(default=None)
    audio_device_id: str | None = Field(default=None)
    capture_mode: CaptureMode = Field(default=CaptureMode.SCREEN)
    window_title: str | None = Field(default=None)
    audio_backend: AudioBackend = Field(
        default=AudioBackend.PULSE, description="Linux audio input driver"
    )

    @field_validator("resolution", mode="before")
    @classmethod
    def _parse_resolution(cls, value: object) -> object:
        if isinstance(value, str):
            return Resolution.parse(value)
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return Resolution(width=value[0], height=value[1])
        return value

    @field_validator("video_bitrate", "audio_bitrate", mode="before")
    @classmethod
    def _parse_bitrate(cls, value: object) -> object:
        if isinstance(value, str):
            match = _BITRATE_RE.match(value)
            if not match:
                raise ValueError(f"Bitrate must look like 2500k, got {value!r}")
            return int(match.group(1))
        return value

    @property
    def video_device(self) -> str:
        """The video device id, falling back to the platform default."""
        return self.video_device_id or DEFAULT_VIDEO_DEVICES[self.platform]

    @property
    def audio_device(self) -> str:
        """The audio device id, falling back to the platform default."""
        return self.audio_device_id or DEFAULT_AUDIO_DEVICES[self.platform]


def load_configuration(data: dict[str, object]) -> CaptureConfiguration:
    """Build a CaptureConfiguration from loose key/value input.

    Raises:
        InvalidConfiguration: If pydantic rejects the input.
    """
    try:
        return CaptureConfiguration(**data)
    except ValidationError as e:
        raise InvalidConfiguration(str(e)) from e


# ---------------------------------------------------------------------------
# Discovery Models
# ---------------------------------------------------------------------------


class DeviceDescriptor(BaseModel):
    """A capture source found by device discovery."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0, description="Device index as reported by the enumerator")
    name: str
    kind: DeviceKind
    hint: str | None = Field(default=None, description="Heuristic usage hint")


class WindowDescriptor(BaseModel):
    """An on-screen window or foreground application."""

    model_config = ConfigDict(frozen=True)

    name: str
    window_id: str | None = Field(default=None, description="Window manager id, if known")


# ---------------------------------------------------------------------------
# Session Events
# ---------------------------------------------------------------------------


class SessionEvent(BaseModel):
    """A single entry in a session's ordered event stream."""

    model_config = ConfigDict(frozen=True)

    kind: EventKind
    state: SessionState = Field(description="Session state when the event was emitted")
    data: str = Field(default="", description="Output chunk or error message")
    exit_code: int | None = Field(default=None)
    timestamp: datetime = Field(default_factory=datetime.now)
