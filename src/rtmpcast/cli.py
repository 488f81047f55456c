"""Command-line interface for rtmpcast.

Provides the main entry point for listing capture devices, checking
dependencies, and streaming the screen to an RTMP endpoint.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from rtmpcast.domain.models import (
    DEFAULT_AUDIO_DEVICES,
    DEFAULT_VIDEO_DEVICES,
    CaptureConfiguration,
    CaptureMode,
    Platform,
)
from rtmpcast.errors import DependencyMissing, StreamerError

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="rtmpcast",
        description="Stream the screen to an RTMP endpoint with ffmpeg",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/rtmpcast.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging (includes ffmpeg output)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("devices", help="List capture devices and windows")
    subparsers.add_parser("check", help="Check that ffmpeg and the display are available")

    stream_parser = subparsers.add_parser("stream", help="Start streaming")
    stream_parser.add_argument("--url", type=str, default=None, help="RTMP URL including stream key")
    stream_parser.add_argument(
        "--quality", type=str, default=None,
        help="fast, medium, slow or high",
    )
    stream_parser.add_argument("--fps", type=int, default=None, help="Frames per second")
    stream_parser.add_argument("--resolution", type=str, default=None, help="e.g. 1920x1080")
    stream_parser.add_argument("--video-bitrate", type=str, default=None, help="e.g. 2500k")
    stream_parser.add_argument("--audio-bitrate", type=str, default=None, help="e.g. 128k")
    stream_parser.add_argument(
        "--audio", action=argparse.BooleanOptionalAction, default=None,
        help="Capture audio (default: from config)",
    )
    stream_parser.add_argument("--video-device", type=str, default=None)
    stream_parser.add_argument("--audio-device", type=str, default=None)
    stream_parser.add_argument(
        "--capture-mode", choices=[m.value for m in CaptureMode], default=None,
    )
    stream_parser.add_argument("--window-title", type=str, default=None)
    stream_parser.add_argument(
        "--no-prompt", action="store_true",
        help="Never ask questions; fail if the URL is missing",
    )

    return parser.parse_args(argv)


def _ask(question: str, default: str = "") -> str:
    """Ask a question on stdin, returning ``default`` for an empty answer.

    A closed stdin counts as an empty answer.
    """
    suffix = f" [{default}]" if default else ""
    try:
        answer = input(f"{question}{suffix}: ").strip()
    except EOFError:
        print()
        answer = ""
    return answer or default


async def _list_devices(settings, platform: Platform) -> None:
    """Print discovered devices and windows."""
    from rtmpcast.discovery import discovery_for, format_device_report

    print("Checking available capture sources...")
    discovery = discovery_for(platform, encoder_binary=settings.encoder.binary)
    devices = await discovery.devices()
    windows = await discovery.list_windows()
    print(format_device_report(platform, devices, windows))


async def _check(settings, platform: Platform) -> None:
    """Run preflight checks, raising DependencyMissing on failure."""
    from rtmpcast.preflight import require_dependencies

    await require_dependencies(platform, binary=settings.encoder.binary)
    print(f"{settings.encoder.binary} is available")


def _build_configuration(settings, platform: Platform, args: argparse.Namespace) -> CaptureConfiguration:
    """Merge config defaults, CLI flags and interactive answers."""
    prompt = not args.no_prompt
    defaults = settings.stream

    target_url = args.url or settings.target_url.get_secret_value()
    if not target_url and prompt:
        target_url = _ask("Enter RTMP URL")

    capture_mode = args.capture_mode or defaults.capture_mode.value
    window_title = args.window_title or defaults.window_title
    if capture_mode == CaptureMode.WINDOW.value and not window_title and prompt:
        window_title = _ask("Enter window title or application name")

    include_audio = args.audio if args.audio is not None else defaults.include_audio

    video_device = args.video_device or defaults.video_device_id
    audio_device = args.audio_device or defaults.audio_device_id
    if prompt:
        if platform is Platform.MACOS and not video_device:
            video_device = _ask(
                "Video device (screen capture)", DEFAULT_VIDEO_DEVICES[platform]
            )
        if include_audio and not audio_device:
            audio_device = _ask("Audio device", DEFAULT_AUDIO_DEVICES[platform])

    return defaults.to_configuration(
        platform,
        target_url,
        quality=args.quality,
        framerate=args.fps,
        resolution=args.resolution,
        video_bitrate=args.video_bitrate,
        audio_bitrate=args.audio_bitrate,
        include_audio=include_audio,
        video_device_id=video_device,
        audio_device_id=audio_device,
        capture_mode=capture_mode,
        window_title=window_title,
    )


async def _stream(settings, config: CaptureConfiguration) -> int:
    """Run one streaming session until ffmpeg exits or Ctrl+C is pressed."""
    from rtmpcast.session import SessionManager

    manager = SessionManager(
        encoder_binary=settings.encoder.binary,
        startup_grace=settings.encoder.startup_grace,
        fallback_enabled=settings.fallback.enabled,
        alsa_fallback_device=settings.fallback.alsa_device,
    )

    print("\nStarting stream...")
    session = await manager.start(config)
    print("Streaming started. Press Ctrl+C to stop")

    loop = asyncio.get_running_loop()
    stop_tasks: list[asyncio.Task[None]] = []

    def _request_stop() -> None:
        if not stop_tasks:
            print("\nStopping stream...")
            stop_tasks.append(asyncio.ensure_future(manager.stop()))

    handled_signals = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_stop)
            handled_signals.append(sig)
        except NotImplementedError:
            pass

    try:
        code = await session.wait()
        if stop_tasks:
            await stop_tasks[0]
    finally:
        for sig in handled_signals:
            loop.remove_signal_handler(sig)

    print(f"ffmpeg exited with code {code}")
    if session.stop_requested or code == 0:
        return 0
    return 1


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the rtmpcast CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from rtmpcast.config.settings import load_settings
    from rtmpcast.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    try:
        platform = Platform.current()
        logger.info("Platform: %s", platform.value)

        if args.command == "devices":
            asyncio.run(_list_devices(settings, platform))

        elif args.command == "check":
            asyncio.run(_check(settings, platform))

        elif args.command == "stream":
            asyncio.run(_check(settings, platform))
            if not args.no_prompt:
                asyncio.run(_list_devices(settings, platform))
            config = _build_configuration(settings, platform, args)
            sys.exit(asyncio.run(_stream(settings, config)))

    except DependencyMissing as e:
        print(f"Dependencies check failed: {e}", file=sys.stderr)
        if e.hint:
            print(e.hint, file=sys.stderr)
        sys.exit(1)
    except StreamerError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nAborted", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
