"""Abstract base class for capture device discovery.

Discovery is advisory: the user can always type device identifiers by
hand, so enumeration failures are logged and produce empty results
instead of propagating.

Example usage::

    discovery = discovery_for(Platform.current())
    async for device in discovery.discover():
        print(device.index, device.name, device.hint)
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import AsyncIterator, Iterator, NamedTuple, Sequence

from rtmpcast.domain.models import DeviceDescriptor, WindowDescriptor
from rtmpcast.errors import DiscoveryFailure

logger = logging.getLogger(__name__)


class CommandOutput(NamedTuple):
    returncode: int
    stdout: str
    stderr: str


async def run_command(argv: Sequence[str], check: bool = True) -> CommandOutput:
    """Run an enumeration command to completion and capture its output.

    Args:
        argv: Program and arguments.
        check: Treat a non-zero exit status as failure.

    Raises:
        DiscoveryFailure: If the program cannot be started, or exits
            non-zero while ``check`` is set.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise DiscoveryFailure(f"Cannot run {argv[0]}: {e}") from e

    stdout, stderr = await process.communicate()
    result = CommandOutput(
        returncode=process.returncode if process.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )
    if check and result.returncode != 0:
        raise DiscoveryFailure(
            f"{argv[0]} exited with code {result.returncode}: {result.stderr.strip()[:200]}"
        )
    logger.debug("%s exited with code %d", argv[0], result.returncode)
    return result


class DeviceDiscovery(ABC):
    """Abstract interface for enumerating capture devices and windows.

    Subclasses supply the platform enumeration commands and parsers;
    this class turns command failures into warnings.
    """

    @abstractmethod
    async def _enumerate_devices(self) -> str:
        """Run the device enumeration command and return its text output.

        Raises:
            DiscoveryFailure: If the command fails.
        """
        ...

    @abstractmethod
    def _parse_devices(self, output: str) -> Iterator[DeviceDescriptor]:
        ...

    @abstractmethod
    async def _enumerate_windows(self) -> str:
        ...

    @abstractmethod
    def _parse_windows(self, output: str) -> Iterator[WindowDescriptor]:
        ...

    async def discover(self) -> AsyncIterator[DeviceDescriptor]:
        """Yield the capture devices available on this host.

        Each call re-runs the enumeration command. Yields nothing if the
        command fails or its output cannot be parsed.
        """
        try:
            output = await self._enumerate_devices()
        except DiscoveryFailure as e:
            logger.warning("Device discovery failed, enter device ids manually: %s", e)
            return
        for device in self._parse_devices(output):
            yield device

    async def devices(self) -> list[DeviceDescriptor]:
        """Collect discover() into a list."""
        return [device async for device in self.discover()]

    async def list_windows(self) -> list[WindowDescriptor]:
        """List windows or foreground applications for window capture."""
        try:
            output = await self._enumerate_windows()
        except DiscoveryFailure as e:
            logger.warning("Could not list windows: %s", e)
            return []
        return list(self._parse_windows(output))
