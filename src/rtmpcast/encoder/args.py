"""ffmpeg argument construction for capture sessions.

Turns a CaptureConfiguration into the exact argument list passed to the
encoder binary. Flag names and ordering must match what ffmpeg's option
parser expects, so every platform builder emits its arguments in a fixed
sequence: capture inputs, video encoder, audio encoder, output.
"""

from __future__ import annotations

import logging

from rtmpcast.domain.models import (
    AudioBackend,
    CaptureConfiguration,
    CaptureMode,
    Platform,
)
from rtmpcast.errors import InvalidConfiguration

logger = logging.getLogger(__name__)

# AVFoundation screen capture is only reliable up to 30 fps
MACOS_MAX_FRAMERATE = 30

QUALITY_PRESETS: dict[str, str] = {
    "fast": "ultrafast",
    "medium": "medium",
    "slow": "slow",
    "high": "veryslow",
}
DEFAULT_PRESET = "medium"

AUDIO_SAMPLE_RATE = "44100"
AUDIO_CHANNELS = "2"

# Folds centre, LFE and surround channels into a stereo pair
STEREO_DOWNMIX_FILTER = (
    "pan=stereo"
    "|FL=0.5*FC+0.707*FL+0.707*BL+0.5*LFE"
    "|FR=0.5*FC+0.707*FR+0.707*BR+0.5*LFE"
)


def preset_for_quality(quality: str) -> str:
    """Map a quality name to an x264 preset, defaulting to ``medium``."""
    preset = QUALITY_PRESETS.get(quality)
    if preset is None:
        logger.debug("Unknown quality %r, using %s preset", quality, DEFAULT_PRESET)
        return DEFAULT_PRESET
    return preset


def effective_framerate(config: CaptureConfiguration) -> int:
    """The framerate actually requested from the capture device."""
    if config.platform is Platform.MACOS:
        return min(config.framerate, MACOS_MAX_FRAMERATE)
    return config.framerate


def validate_configuration(config: CaptureConfiguration) -> None:
    """Check the invariants the argument builders rely on.

    Raises:
        InvalidConfiguration: On the first violated invariant.
    """
    if config.capture_mode is CaptureMode.WINDOW and not (config.window_title or "").strip():
        raise InvalidConfiguration("Window capture mode requires a window title")
    if config.framerate <= 0:
        raise InvalidConfiguration(f"Framerate must be positive, got {config.framerate}")
    if config.resolution.width <= 0 or config.resolution.height <= 0:
        raise InvalidConfiguration(f"Resolution must be positive, got {config.resolution}")
    if config.video_bitrate <= 0 or config.audio_bitrate <= 0:
        raise InvalidConfiguration(
            f"Bitrates must be positive, got video={config.video_bitrate} "
            f"audio={config.audio_bitrate}"
        )
    if not config.target_url.strip():
        raise InvalidConfiguration("A target URL is required")


def build_encoder_args(config: CaptureConfiguration) -> list[str]:
    """Build the ffmpeg argument list for a capture configuration.

    The returned list excludes the binary name itself.

    Raises:
        InvalidConfiguration: If the configuration violates an invariant.
    """
    validate_configuration(config)
    if config.platform is Platform.MACOS:
        return _build_macos_args(config)
    return _build_linux_args(config)


def _video_encoder_args(config: CaptureConfiguration, framerate: int) -> list[str]:
    bitrate = f"{config.video_bitrate}k"
    return [
        "-c:v", "libx264",
        "-preset", preset_for_quality(config.quality),
        "-b:v", bitrate,
        "-maxrate", bitrate,
        "-bufsize", f"{config.video_bitrate * 2}k",
        "-pix_fmt", "yuv420p",
        "-r", str(framerate),
    ]


def _audio_encoder_args(config: CaptureConfiguration) -> list[str]:
    return [
        "-c:a", "aac",
        "-b:a", f"{config.audio_bitrate}k",
        "-ar", AUDIO_SAMPLE_RATE,
        "-ac", AUDIO_CHANNELS,
    ]


def _build_macos_args(config: CaptureConfiguration) -> list[str]:
    framerate = effective_framerate(config)
    if framerate != config.framerate:
        logger.info(
            "Clamping framerate from %d to %d for AVFoundation capture",
            config.framerate, framerate,
        )

    if config.capture_mode is CaptureMode.WINDOW:
        # AVFoundation has no window capture, the whole screen is recorded
        logger.warning(
            "Window capture requested for %r; macOS captures the entire screen. "
            "Keep the target window visible and not minimized.",
            config.window_title,
        )
    else:
        logger.info("Capturing entire screen")

    args = [
        "-f", "avfoundation",
        "-framerate", str(framerate),
        "-video_size", str(config.resolution),
        "-pixel_format", "uyvy422",
        "-capture_cursor", "1",
        "-capture_mouse_clicks", "1",
        "-i", config.video_device,
    ]

    if config.include_audio:
        args += ["-f", "avfoundation", "-i", f":{config.audio_device}"]

    args += _video_encoder_args(config, framerate)

    if config.include_audio:
        args += _audio_encoder_args(config)
        args += ["-af", STEREO_DOWNMIX_FILTER]
    else:
        args.append("-an")

    args += [
        "-fps_mode", "cfr",
        "-async", "1",
        "-strict", "experimental",
        "-f", "flv",
        config.target_url,
    ]
    return args


def _build_linux_args(config: CaptureConfiguration) -> list[str]:
    if config.capture_mode is CaptureMode.WINDOW:
        logger.warning(
            "Window capture requested for %r; x11grab records the whole display %s",
            config.window_title, config.video_device,
        )

    args = [
        "-f", "x11grab",
        "-framerate", str(config.framerate),
        "-video_size", str(config.resolution),
        "-i", config.video_device,
    ]

    if config.include_audio:
        args += ["-f", config.audio_backend.value, "-i", config.audio_device]

    args += _video_encoder_args(config, config.framerate)

    if config.include_audio:
        args += _audio_encoder_args(config)
    else:
        args.append("-an")

    args += ["-f", "flv", config.target_url]
    return args


def alsa_fallback(config: CaptureConfiguration, device: str = "hw:0") -> CaptureConfiguration | None:
    """Return a copy of ``config`` switched from PulseAudio to ALSA.

    Returns None when the configuration is not eligible: not Linux, no
    audio, or already using ALSA.
    """
    if (
        config.platform is not Platform.LINUX
        or not config.include_audio
        or config.audio_backend is AudioBackend.ALSA
    ):
        return None
    return config.model_copy(
        update={"audio_backend": AudioBackend.ALSA, "audio_device_id": device}
    )
