"""Human-readable rendering of discovery results for the CLI."""

from __future__ import annotations

from rtmpcast.domain.models import DeviceDescriptor, DeviceKind, Platform, WindowDescriptor

RULE = "=" * 60

_USAGE = {
    Platform.MACOS: [
        "Video device: enter the number of the screen capture device (usually 1 or 2)",
        "Audio device: enter the number of your preferred audio input",
        "  0 = built-in microphone, higher numbers = system audio/other inputs",
        "For system audio, install BlackHole: brew install blackhole-2ch",
    ],
    Platform.LINUX: [
        "Video device: the X11 display to grab (e.g. :0.0)",
        "Audio device: a PulseAudio source name, or 'default'",
        "  sources ending in .monitor capture system audio",
        "If PulseAudio is unavailable, ALSA (hw:0) is tried automatically",
    ],
}


def _device_lines(devices: list[DeviceDescriptor], kind: DeviceKind) -> list[str]:
    lines = []
    for device in devices:
        if device.kind is not kind:
            continue
        lines.append(f"  {device.index}: {device.name}")
        if device.hint:
            lines.append(f"      -> {device.hint}")
    return lines or ["  (none found)"]


def format_device_report(
    platform: Platform,
    devices: list[DeviceDescriptor],
    windows: list[WindowDescriptor] | None = None,
) -> str:
    """Render devices, windows and usage hints as a text block."""
    lines = [RULE, "CAPTURE DEVICES", RULE, "", "Video devices:"]
    lines += _device_lines(devices, DeviceKind.VIDEO)
    lines += ["", "Audio devices:"]
    lines += _device_lines(devices, DeviceKind.AUDIO)

    if windows is not None:
        lines += ["", "Windows (for window capture):"]
        if windows:
            lines += [f"  {w.name}" for w in windows]
        else:
            lines.append("  (none found)")

    lines += ["", RULE, "USAGE", RULE]
    lines += _USAGE[platform]
    lines.append(RULE)
    return "\n".join(lines)
