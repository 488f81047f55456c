"""Shared test fixtures for the rtmpcast test suite.

Provides sample capture configurations and fake subprocess objects that
stand in for ffmpeg, so session and discovery tests never spawn real
processes.
"""

from __future__ import annotations

import asyncio
import signal
from unittest.mock import AsyncMock, MagicMock

import pytest

from rtmpcast.domain.models import (
    CaptureConfiguration,
    CaptureMode,
    Platform,
    Resolution,
)


# ---------------------------------------------------------------------------
# Fake subprocess
# ---------------------------------------------------------------------------


class FakeStream:
    """Minimal stand-in for asyncio.StreamReader.

    Returns the queued chunks, then blocks until the owning process
    finishes, then returns EOF.
    """

    def __init__(self, chunks: list[bytes] | None = None) -> None:
        self._chunks = list(chunks or [])
        self._eof = asyncio.Event()

    async def read(self, n: int = -1) -> bytes:
        if self._chunks:
            return self._chunks.pop(0)
        await self._eof.wait()
        return b""

    def close(self) -> None:
        self._eof.set()


class FakeProcess:
    """Stand-in for asyncio.subprocess.Process.

    Stays alive until finish() is called or a signal is delivered.
    Pass ``exit_code`` to simulate a process that exits immediately.
    """

    def __init__(
        self,
        exit_code: int | None = None,
        stdout: list[bytes] | None = None,
        stderr: list[bytes] | None = None,
        signal_exit_code: int = 255,
        pid: int = 4242,
    ) -> None:
        self.pid = pid
        self.returncode: int | None = None
        self.stdout = FakeStream(stdout)
        self.stderr = FakeStream(stderr)
        self.signals: list[int] = []
        self._signal_exit_code = signal_exit_code
        self._exited = asyncio.Event()
        if exit_code is not None:
            self.finish(exit_code)

    def finish(self, code: int) -> None:
        if self.returncode is not None:
            return
        self.returncode = code
        self.stdout.close()
        self.stderr.close()
        self._exited.set()

    def send_signal(self, sig: int) -> None:
        self.signals.append(sig)
        if sig in (signal.SIGINT, signal.SIGTERM):
            self.finish(self._signal_exit_code)

    async def wait(self) -> int:
        await self._exited.wait()
        assert self.returncode is not None
        return self.returncode


@pytest.fixture
def fake_process_cls() -> type[FakeProcess]:
    """The FakeProcess class; instantiate inside async tests."""
    return FakeProcess


def completed_process(returncode: int = 0, stdout: bytes = b"", stderr: bytes = b"") -> MagicMock:
    """A mock process whose communicate() returns immediately."""
    process = MagicMock()
    process.returncode = returncode
    process.communicate = AsyncMock(return_value=(stdout, stderr))
    process.wait = AsyncMock(return_value=returncode)
    return process


@pytest.fixture
def completed_process_factory():
    return completed_process


# ---------------------------------------------------------------------------
# Configuration Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def macos_config() -> CaptureConfiguration:
    """A macOS configuration with audio in full-screen mode."""
    return CaptureConfiguration(
        platform=Platform.MACOS,
        target_url="rtmp://live.example.com/app/stream-key",
        include_audio=True,
        quality="medium",
        framerate=30,
        resolution=Resolution(width=1280, height=720),
        video_bitrate=2500,
        audio_bitrate=128,
        capture_mode=CaptureMode.SCREEN,
    )


@pytest.fixture
def linux_config() -> CaptureConfiguration:
    """A Linux configuration capturing PulseAudio's default source."""
    return CaptureConfiguration(
        platform=Platform.LINUX,
        target_url="rtmp://live.example.com/app/stream-key",
        include_audio=True,
        quality="fast",
        framerate=30,
        resolution="1920x1080",
    )
