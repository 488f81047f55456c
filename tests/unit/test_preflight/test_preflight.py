"""Tests for dependency preflight checks."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from rtmpcast.domain.models import Platform
from rtmpcast.errors import DependencyMissing
from rtmpcast.preflight import (
    check_dependencies,
    check_encoder_available,
    require_dependencies,
)


class TestCheckDependencies:
    def test_macos_always_passes(self) -> None:
        assert check_dependencies(Platform.MACOS, environ={}) is True

    def test_linux_with_display(self) -> None:
        assert check_dependencies(Platform.LINUX, environ={"DISPLAY": ":0"}) is True

    def test_linux_without_display(self) -> None:
        assert check_dependencies(Platform.LINUX, environ={}) is False

    def test_linux_empty_display(self) -> None:
        assert check_dependencies(Platform.LINUX, environ={"DISPLAY": ""}) is False


class TestCheckEncoderAvailable:
    @pytest.mark.asyncio
    async def test_available(self, completed_process_factory) -> None:
        spawn = AsyncMock(return_value=completed_process_factory(0))
        with patch("asyncio.create_subprocess_exec", new=spawn):
            assert await check_encoder_available("ffmpeg") is True
        assert spawn.call_args.args == ("ffmpeg", "-version")

    @pytest.mark.asyncio
    async def test_non_zero_exit(self, completed_process_factory) -> None:
        with patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=completed_process_factory(1))):
            assert await check_encoder_available() is False

    @pytest.mark.asyncio
    async def test_missing_binary(self) -> None:
        with patch("asyncio.create_subprocess_exec", new=AsyncMock(side_effect=FileNotFoundError("ffmpeg"))):
            assert await check_encoder_available() is False


class TestRequireDependencies:
    @pytest.mark.asyncio
    async def test_missing_display(self) -> None:
        spawn = AsyncMock()
        with patch("asyncio.create_subprocess_exec", new=spawn):
            with pytest.raises(DependencyMissing, match="DISPLAY"):
                await require_dependencies(Platform.LINUX, environ={})
        spawn.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("platform", "hint"),
        [(Platform.MACOS, "brew install ffmpeg"), (Platform.LINUX, "apt install ffmpeg")],
    )
    async def test_missing_encoder_hint(self, platform: Platform, hint: str) -> None:
        with patch("asyncio.create_subprocess_exec", new=AsyncMock(side_effect=FileNotFoundError("ffmpeg"))):
            with pytest.raises(DependencyMissing) as excinfo:
                await require_dependencies(platform, environ={"DISPLAY": ":0"})
        assert hint in excinfo.value.hint

    @pytest.mark.asyncio
    async def test_all_present(self, completed_process_factory) -> None:
        with patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=completed_process_factory(0))):
            await require_dependencies(Platform.LINUX, environ={"DISPLAY": ":0"})
