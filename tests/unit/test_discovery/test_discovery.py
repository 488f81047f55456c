"""Tests for the platform discovery implementations (mocked subprocesses)."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from rtmpcast.discovery import LinuxDiscovery, MacOSDiscovery, discovery_for, format_device_report
from rtmpcast.discovery.base import run_command
from rtmpcast.domain.models import DeviceDescriptor, DeviceKind, Platform, WindowDescriptor
from rtmpcast.errors import DiscoveryFailure

AVFOUNDATION_STDERR = (
    b"[AVFoundation indev @ 0x1] AVFoundation video devices:\n"
    b"[AVFoundation indev @ 0x1] [1] Capture screen 0\n"
    b"[AVFoundation indev @ 0x1] AVFoundation audio devices:\n"
    b"[AVFoundation indev @ 0x1] [0] Built-in Microphone\n"
)


class TestRunCommand:
    @pytest.mark.asyncio
    async def test_captures_output(self, completed_process_factory) -> None:
        process = completed_process_factory(0, b"out\n", b"err\n")
        with patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=process)):
            result = await run_command(["tool", "--flag"])
        assert result.returncode == 0
        assert result.stdout == "out\n"
        assert result.stderr == "err\n"

    @pytest.mark.asyncio
    async def test_missing_binary(self) -> None:
        with patch("asyncio.create_subprocess_exec", new=AsyncMock(side_effect=FileNotFoundError("tool"))):
            with pytest.raises(DiscoveryFailure, match="Cannot run tool"):
                await run_command(["tool"])

    @pytest.mark.asyncio
    async def test_non_zero_exit(self, completed_process_factory) -> None:
        process = completed_process_factory(1, b"", b"boom")
        with patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=process)):
            with pytest.raises(DiscoveryFailure, match="exited with code 1"):
                await run_command(["tool"])

    @pytest.mark.asyncio
    async def test_non_zero_exit_unchecked(self, completed_process_factory) -> None:
        process = completed_process_factory(1, b"", b"listing")
        with patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=process)):
            result = await run_command(["tool"], check=False)
        assert result.stderr == "listing"


class TestMacOSDiscovery:
    @pytest.mark.asyncio
    async def test_discover_parses_stderr(self, completed_process_factory) -> None:
        process = completed_process_factory(1, b"", AVFOUNDATION_STDERR)
        spawn = AsyncMock(return_value=process)
        with patch("asyncio.create_subprocess_exec", new=spawn):
            devices = await MacOSDiscovery(encoder_binary="/opt/ffmpeg").devices()
        assert spawn.call_args.args == (
            "/opt/ffmpeg", "-f", "avfoundation", "-list_devices", "true", "-i", "",
        )
        assert devices == [
            DeviceDescriptor(index=1, name="Capture screen 0", kind=DeviceKind.VIDEO, hint="likely screen capture"),
            DeviceDescriptor(index=0, name="Built-in Microphone", kind=DeviceKind.AUDIO, hint="likely built-in microphone"),
        ]

    @pytest.mark.asyncio
    async def test_missing_ffmpeg_degrades(self, caplog: pytest.LogCaptureFixture) -> None:
        with patch("asyncio.create_subprocess_exec", new=AsyncMock(side_effect=FileNotFoundError("ffmpeg"))):
            devices = await MacOSDiscovery().devices()
        assert devices == []
        assert "Device discovery failed" in caplog.text

    @pytest.mark.asyncio
    async def test_discover_is_restartable(self, completed_process_factory) -> None:
        spawn = AsyncMock(side_effect=lambda *a, **kw: completed_process_factory(1, b"", AVFOUNDATION_STDERR))
        discovery = MacOSDiscovery()
        with patch("asyncio.create_subprocess_exec", new=spawn):
            first = [d async for d in discovery.discover()]
            second = [d async for d in discovery.discover()]
        assert first == second
        assert spawn.await_count == 2

    @pytest.mark.asyncio
    async def test_list_windows(self, completed_process_factory) -> None:
        process = completed_process_factory(0, b"Finder, Electron\n")
        with patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=process)):
            windows = await MacOSDiscovery().list_windows()
        assert [w.name for w in windows] == ["Finder", "Electron"]

    @pytest.mark.asyncio
    async def test_list_windows_failure(self, completed_process_factory) -> None:
        process = completed_process_factory(1, b"", b"not authorized")
        with patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=process)):
            assert await MacOSDiscovery().list_windows() == []


class TestLinuxDiscovery:
    @pytest.mark.asyncio
    async def test_display_and_pulse_sources(self, completed_process_factory) -> None:
        process = completed_process_factory(0, b"3\tusb_mic.input\tmodule-udev.c\ts16le 1ch 44100Hz\tIDLE\n")
        spawn = AsyncMock(return_value=process)
        with patch("asyncio.create_subprocess_exec", new=spawn):
            devices = await LinuxDiscovery(environ={"DISPLAY": ":1"}).devices()
        assert spawn.call_args.args == ("pactl", "list", "sources", "short")
        assert devices[0] == DeviceDescriptor(index=0, name=":1", kind=DeviceKind.VIDEO, hint="X11 display")
        assert devices[1].index == 3
        assert devices[1].kind is DeviceKind.AUDIO

    @pytest.mark.asyncio
    async def test_default_display(self) -> None:
        with patch("asyncio.create_subprocess_exec", new=AsyncMock(side_effect=FileNotFoundError("pactl"))):
            devices = await LinuxDiscovery(environ={}).devices()
        assert [d.name for d in devices] == [":0.0"]

    @pytest.mark.asyncio
    async def test_pactl_failure_degrades(self, completed_process_factory) -> None:
        process = completed_process_factory(1, b"", b"Connection refused")
        with patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=process)):
            devices = await LinuxDiscovery(environ={"DISPLAY": ":0"}).devices()
        assert [d.kind for d in devices] == [DeviceKind.VIDEO]

    @pytest.mark.asyncio
    async def test_wmctrl_missing(self) -> None:
        with patch("asyncio.create_subprocess_exec", new=AsyncMock(side_effect=FileNotFoundError("wmctrl"))):
            assert await LinuxDiscovery(environ={}).list_windows() == []


class TestDiscoveryFor:
    def test_macos(self) -> None:
        assert isinstance(discovery_for(Platform.MACOS), MacOSDiscovery)

    def test_linux(self) -> None:
        assert isinstance(discovery_for(Platform.LINUX), LinuxDiscovery)


class TestDeviceReport:
    def test_lists_devices_hints_and_windows(self) -> None:
        report = format_device_report(
            Platform.MACOS,
            [
                DeviceDescriptor(index=1, name="Capture screen 0", kind=DeviceKind.VIDEO, hint="likely screen capture"),
                DeviceDescriptor(index=0, name="Built-in Microphone", kind=DeviceKind.AUDIO),
            ],
            [WindowDescriptor(name="Electron")],
        )
        assert "  1: Capture screen 0" in report
        assert "-> likely screen capture" in report
        assert "  0: Built-in Microphone" in report
        assert "  Electron" in report
        assert "BlackHole" in report

    def test_empty(self) -> None:
        report = format_device_report(Platform.LINUX, [])
        assert report.count("(none found)") == 2
        assert "Windows" not in report
