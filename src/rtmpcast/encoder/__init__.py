"""Encoder invocation module for rtmpcast.

Builds platform-specific ffmpeg argument lists from a capture
configuration.

Public API:
    build_encoder_args -- CaptureConfiguration to ffmpeg arguments
    preset_for_quality -- Quality name to x264 preset
    alsa_fallback -- PulseAudio to ALSA configuration rewrite
"""

from rtmpcast.encoder.args import (
    alsa_fallback,
    build_encoder_args,
    preset_for_quality,
    validate_configuration,
)

__all__ = [
    "alsa_fallback",
    "build_encoder_args",
    "preset_for_quality",
    "validate_configuration",
]
