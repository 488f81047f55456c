"""Dependency preflight checks.

These checks are advisory. The session manager never consults them; the
CLI runs them before starting a stream and aborts when they fail.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Mapping

from rtmpcast.domain.models import Platform
from rtmpcast.errors import DependencyMissing

logger = logging.getLogger(__name__)

ENCODER_INSTALL_HINTS: dict[Platform, str] = {
    Platform.MACOS: "Install with: brew install ffmpeg",
    Platform.LINUX: "Install with: sudo apt update && sudo apt install ffmpeg",
}


def check_dependencies(platform: Platform, environ: Mapping[str, str] | None = None) -> bool:
    """Check platform capture prerequisites.

    macOS always passes since AVFoundation ships with the OS. Linux
    requires an X11 session, signalled by ``DISPLAY``.
    """
    if platform is Platform.MACOS:
        logger.info("macOS detected - AVFoundation will be used")
        return True

    env = os.environ if environ is None else environ
    if not env.get("DISPLAY"):
        logger.warning("No DISPLAY environment variable found. Make sure X11 is running.")
        return False
    logger.info("Linux detected - X11 display %s", env["DISPLAY"])
    return True


async def check_encoder_available(binary: str = "ffmpeg") -> bool:
    """Return True if ``<binary> -version`` runs and exits with code 0."""
    try:
        process = await asyncio.create_subprocess_exec(
            binary, "-version",
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError as e:
        logger.debug("Cannot run %s: %s", binary, e)
        return False
    returncode = await process.wait()
    return returncode == 0


async def require_dependencies(
    platform: Platform,
    binary: str = "ffmpeg",
    environ: Mapping[str, str] | None = None,
) -> None:
    """Run both preflight checks.

    Raises:
        DependencyMissing: On the first failing check.
    """
    if not check_dependencies(platform, environ):
        raise DependencyMissing(
            "No X11 display available (DISPLAY is not set)",
            hint="Run from a graphical session or export DISPLAY=:0",
        )
    if not await check_encoder_available(binary):
        raise DependencyMissing(
            f"{binary} is not installed or not in PATH",
            hint=ENCODER_INSTALL_HINTS[platform],
        )
    logger.info("%s is available", binary)
