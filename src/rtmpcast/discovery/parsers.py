"""Parsers for device and window enumeration output.

Each parser is a generator over the raw text of one enumeration command,
so callers can stop early and re-run a parse over the same text.
Unrecognized lines are skipped; output with no recognizable structure
produces no items.
"""

from __future__ import annotations

import enum
import re
from typing import Iterator

from rtmpcast.domain.models import DeviceDescriptor, DeviceKind, WindowDescriptor

AVFOUNDATION_VIDEO_HEADER = "AVFoundation video devices:"
AVFOUNDATION_AUDIO_HEADER = "AVFoundation audio devices:"

_INDEXED_DEVICE_RE = re.compile(r"\[(\d+)\]\s*(.+)")

# (keywords, hint) pairs, first match wins
VIDEO_HINTS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("screen", "display", "capture"), "likely screen capture"),
)
AUDIO_HINTS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("built-in", "microphone"), "likely built-in microphone"),
    (("blackhole", "soundflower", "monitor"), "likely system audio capture"),
)


class _Section(enum.Enum):
    NONE = enum.auto()
    VIDEO = enum.auto()
    AUDIO = enum.auto()


def device_hint(name: str, kind: DeviceKind) -> str | None:
    """Guess what a device is for from its name."""
    lowered = name.lower()
    table = VIDEO_HINTS if kind is DeviceKind.VIDEO else AUDIO_HINTS
    for keywords, hint in table:
        if any(keyword in lowered for keyword in keywords):
            return hint
    return None


def parse_avfoundation_devices(output: str) -> Iterator[DeviceDescriptor]:
    """Parse ``ffmpeg -f avfoundation -list_devices true`` output.

    Lines look like::

        [AVFoundation indev @ 0x7f9] AVFoundation video devices:
        [AVFoundation indev @ 0x7f9] [0] FaceTime HD Camera
        [AVFoundation indev @ 0x7f9] [1] Capture screen 0
        [AVFoundation indev @ 0x7f9] AVFoundation audio devices:
        [AVFoundation indev @ 0x7f9] [0] MacBook Pro Microphone
    """
    section = _Section.NONE
    for line in output.splitlines():
        if AVFOUNDATION_VIDEO_HEADER in line:
            section = _Section.VIDEO
            continue
        if AVFOUNDATION_AUDIO_HEADER in line:
            section = _Section.AUDIO
            continue
        if section is _Section.NONE or "[" not in line:
            continue

        match = _INDEXED_DEVICE_RE.search(line)
        if not match:
            continue
        kind = DeviceKind.VIDEO if section is _Section.VIDEO else DeviceKind.AUDIO
        name = match.group(2).strip()
        yield DeviceDescriptor(
            index=int(match.group(1)),
            name=name,
            kind=kind,
            hint=device_hint(name, kind),
        )


def parse_pactl_sources(output: str) -> Iterator[DeviceDescriptor]:
    """Parse ``pactl list sources short`` output.

    Each line is tab separated: index, name, driver, sample spec, state.
    """
    for line in output.splitlines():
        fields = line.split("\t") if "\t" in line else line.split()
        if len(fields) < 2 or not fields[0].strip().isdigit():
            continue
        name = fields[1].strip()
        yield DeviceDescriptor(
            index=int(fields[0]),
            name=name,
            kind=DeviceKind.AUDIO,
            hint=device_hint(name, DeviceKind.AUDIO),
        )


def parse_wmctrl_windows(output: str) -> Iterator[WindowDescriptor]:
    """Parse ``wmctrl -l`` output: ``<id> <desktop> <host> <title>``."""
    for line in output.splitlines():
        fields = line.split(None, 3)
        if len(fields) < 4 or not fields[0].startswith("0x"):
            continue
        yield WindowDescriptor(name=fields[3].strip(), window_id=fields[0])


def parse_application_names(output: str) -> Iterator[WindowDescriptor]:
    """Parse the comma separated application list returned by osascript."""
    for name in output.split(","):
        name = name.strip()
        if name:
            yield WindowDescriptor(name=name)
