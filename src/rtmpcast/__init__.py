"""rtmpcast -- Screen capture to RTMP streaming session manager.

This package discovers capture devices on macOS and Linux hosts, turns a
capture configuration into an ffmpeg invocation, and supervises the
encoder process for the lifetime of a single stream session.
"""

__version__ = "0.1.0"
