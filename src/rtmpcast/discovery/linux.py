"""X11 and PulseAudio device discovery for Linux hosts."""

from __future__ import annotations

import logging
import os
from typing import AsyncIterator, Iterator, Mapping

from rtmpcast.discovery.base import DeviceDiscovery, run_command
from rtmpcast.discovery.parsers import parse_pactl_sources, parse_wmctrl_windows
from rtmpcast.domain.models import (
    DEFAULT_VIDEO_DEVICES,
    DeviceDescriptor,
    DeviceKind,
    Platform,
    WindowDescriptor,
)

logger = logging.getLogger(__name__)


class LinuxDiscovery(DeviceDiscovery):
    """Reports the X11 display as the video source and PulseAudio sources as audio.

    x11grab has no device listing of its own; the display named by
    ``DISPLAY`` is the only video source.
    """

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    @property
    def display(self) -> str:
        return self._environ.get("DISPLAY") or DEFAULT_VIDEO_DEVICES[Platform.LINUX]

    async def discover(self) -> AsyncIterator[DeviceDescriptor]:
        yield DeviceDescriptor(
            index=0,
            name=self.display,
            kind=DeviceKind.VIDEO,
            hint="X11 display",
        )
        async for device in super().discover():
            yield device

    async def _enumerate_devices(self) -> str:
        result = await run_command(["pactl", "list", "sources", "short"])
        return result.stdout

    def _parse_devices(self, output: str) -> Iterator[DeviceDescriptor]:
        return parse_pactl_sources(output)

    async def _enumerate_windows(self) -> str:
        result = await run_command(["wmctrl", "-l"])
        return result.stdout

    def _parse_windows(self, output: str) -> Iterator[WindowDescriptor]:
        return parse_wmctrl_windows(output)
