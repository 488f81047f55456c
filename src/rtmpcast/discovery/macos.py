"""AVFoundation device discovery for macOS hosts."""

from __future__ import annotations

import logging
from typing import Iterator

from rtmpcast.discovery.base import DeviceDiscovery, run_command
from rtmpcast.discovery.parsers import (
    AVFOUNDATION_VIDEO_HEADER,
    parse_application_names,
    parse_avfoundation_devices,
)
from rtmpcast.domain.models import DeviceDescriptor, WindowDescriptor

logger = logging.getLogger(__name__)

LIST_APPLICATIONS_SCRIPT = (
    'tell application "System Events" to get name of '
    "(processes where background only is false)"
)


class MacOSDiscovery(DeviceDiscovery):
    """Lists AVFoundation devices via ffmpeg and applications via osascript."""

    def __init__(self, encoder_binary: str = "ffmpeg") -> None:
        self._encoder_binary = encoder_binary

    async def _enumerate_devices(self) -> str:
        # The listing always ends in an input error, so the exit status is ignored
        result = await run_command(
            [
                self._encoder_binary,
                "-f", "avfoundation",
                "-list_devices", "true",
                "-i", "",
            ],
            check=False,
        )
        if AVFOUNDATION_VIDEO_HEADER not in result.stderr:
            logger.warning("No AVFoundation device listing in %s output", self._encoder_binary)
        return result.stderr

    def _parse_devices(self, output: str) -> Iterator[DeviceDescriptor]:
        return parse_avfoundation_devices(output)

    async def _enumerate_windows(self) -> str:
        result = await run_command(["osascript", "-e", LIST_APPLICATIONS_SCRIPT])
        return result.stdout

    def _parse_windows(self, output: str) -> Iterator[WindowDescriptor]:
        return parse_application_names(output)
