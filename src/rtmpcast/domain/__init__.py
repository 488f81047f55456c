"""Domain models for rtmpcast.

This package contains the value objects and enumerations shared by the
encoder builder, device discovery, and the session manager. All models
use Pydantic v2 for validation.
"""

from rtmpcast.domain.models import (
    AudioBackend,
    CaptureConfiguration,
    CaptureMode,
    DeviceDescriptor,
    DeviceKind,
    EventKind,
    Platform,
    Resolution,
    SessionEvent,
    SessionState,
    WindowDescriptor,
    load_configuration,
)

__all__ = [
    "AudioBackend",
    "CaptureConfiguration",
    "CaptureMode",
    "DeviceDescriptor",
    "DeviceKind",
    "EventKind",
    "Platform",
    "Resolution",
    "SessionEvent",
    "SessionState",
    "WindowDescriptor",
    "load_configuration",
]
