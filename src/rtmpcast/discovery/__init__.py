"""Device discovery module for rtmpcast.

Enumerates capture devices and windows on the host so the user can
choose device identifiers for a stream. Discovery never fails hard:
missing tools produce a warning and an empty result.

Public API:
    DeviceDiscovery -- Abstract base class
    MacOSDiscovery -- AVFoundation listing via ffmpeg
    LinuxDiscovery -- X11 display plus PulseAudio sources
    discovery_for -- Pick the implementation for a platform
"""

from __future__ import annotations

from rtmpcast.discovery.base import DeviceDiscovery
from rtmpcast.discovery.linux import LinuxDiscovery
from rtmpcast.discovery.macos import MacOSDiscovery
from rtmpcast.discovery.report import format_device_report
from rtmpcast.domain.models import Platform

__all__ = [
    "DeviceDiscovery",
    "LinuxDiscovery",
    "MacOSDiscovery",
    "discovery_for",
    "format_device_report",
]


def discovery_for(platform: Platform, encoder_binary: str = "ffmpeg") -> DeviceDiscovery:
    """Return the discovery implementation for ``platform``."""
    if platform is Platform.MACOS:
        return MacOSDiscovery(encoder_binary=encoder_binary)
    return LinuxDiscovery()
