"""Lifecycle management for the encoder subprocess.

The SessionManager owns at most one active Session. It builds the
encoder arguments, spawns ffmpeg, watches its output and exit, and
stops it with SIGINT on request.

States::

    idle -> starting -> running -> stopping -> exited
                  \\-> failed        \\-> exited (encoder quit by itself)

All public methods are expected to be called from one event loop. The
single-session rule is a state check, not a lock.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from collections import deque
from typing import Callable

from rtmpcast.domain.models import (
    CaptureConfiguration,
    EventKind,
    SessionEvent,
    SessionState,
)
from rtmpcast.encoder.args import alsa_fallback, build_encoder_args
from rtmpcast.errors import AlreadyRunning, EncoderLaunchFailure, EncoderRuntimeExit
from rtmpcast.session.session import Session

logger = logging.getLogger(__name__)

SessionListener = Callable[[Session, SessionEvent], None]

DEFAULT_STARTUP_GRACE = 0.5
READ_CHUNK_SIZE = 4096
STDERR_TAIL_CHUNKS = 20


class SessionManager:
    """Starts, supervises and stops one encoder process at a time.

    Usage::

        manager = SessionManager()
        session = await manager.start(config)
        ...
        await manager.stop()
        print(session.state, session.exit_code)
    """

    def __init__(
        self,
        encoder_binary: str = "ffmpeg",
        startup_grace: float = DEFAULT_STARTUP_GRACE,
        fallback_enabled: bool = True,
        alsa_fallback_device: str = "hw:0",
    ) -> None:
        """Initialize the manager.

        Args:
            encoder_binary: Name or path of the ffmpeg executable.
            startup_grace: Seconds the encoder must stay alive before the
                           session counts as running. A non-zero exit
                           inside this window is a launch failure.
            fallback_enabled: Retry once with ALSA when a Linux launch
                              with PulseAudio audio fails.
            alsa_fallback_device: ALSA device used by that retry.
        """
        self._encoder_binary = encoder_binary
        self._startup_grace = startup_grace
        self._fallback_enabled = fallback_enabled
        self._alsa_fallback_device = alsa_fallback_device
        self._session: Session | None = None
        self._listeners: list[SessionListener] = []
        self._supervisors: set[asyncio.Task[None]] = set()

    @property
    def session(self) -> Session | None:
        """The active session, or None when idle."""
        return self._session

    @property
    def state(self) -> SessionState:
        return self._session.state if self._session is not None else SessionState.IDLE

    @property
    def is_streaming(self) -> bool:
        return self.state is SessionState.RUNNING

    def add_listener(self, listener: SessionListener) -> None:
        """Register a callback invoked for every event of every session."""
        self._listeners.append(listener)

    def remove_listener(self, listener: SessionListener) -> None:
        self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Public lifecycle
    # ------------------------------------------------------------------

    async def start(self, config: CaptureConfiguration) -> Session:
        """Start streaming with ``config``.

        Returns the running session. If a Linux launch with PulseAudio
        fails, one retry is made with ALSA before giving up.

        Raises:
            AlreadyRunning: If a session is already active.
            InvalidConfiguration: If the configuration is malformed.
            EncoderLaunchFailure: If the encoder could not be started.
                                  The session is left in the failed state.
        """
        if self._session is not None and self._session.state.is_active:
            raise AlreadyRunning(
                f"A session is already {self._session.state.value}; stop it first"
            )

        args = build_encoder_args(config)
        session = Session(config)
        self._session = session

        try:
            await self._launch(session, args)
        except EncoderLaunchFailure as e:
            fallback = self._fallback_config(session)
            if fallback is None:
                self._fail(session, e)
                raise
            logger.warning("Encoder launch failed (%s); retrying with ALSA audio", e)
            session.config = fallback
            try:
                await self._launch(session, build_encoder_args(fallback))
            except EncoderLaunchFailure as retry_error:
                logger.error("ALSA fallback also failed: %s", retry_error)
                self._fail(session, retry_error)
                raise
        return session

    async def stop(self) -> None:
        """Stop the active session and wait for the encoder to exit.

        Sends SIGINT so ffmpeg can flush and close the stream. Waits
        without a deadline. Does nothing when no session is active.
        """
        session = self._session
        if session is None or not session.state.is_active:
            logger.debug("stop() called with no active session")
            return

        if session.state is not SessionState.STOPPING:
            session.stop_requested = True
            self._transition(session, SessionState.STOPPING)
            self._interrupt(session)
            logger.info("Stopping stream")

        await session.wait()
        logger.info("Streaming stopped (exit code %s)", session.exit_code)

    async def wait(self) -> int | None:
        """Wait for the active session to finish and return its exit code."""
        session = self._session
        if session is None:
            return None
        return await session.wait()

    async def __aenter__(self) -> SessionManager:
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Launch and supervision
    # ------------------------------------------------------------------

    def _fallback_config(self, session: Session) -> CaptureConfiguration | None:
        if not self._fallback_enabled or session.stop_requested or session.attempts > 1:
            return None
        return alsa_fallback(session.config, self._alsa_fallback_device)

    async def _launch(self, session: Session, args: list[str]) -> None:
        session.args = args
        session.attempts += 1
        if session.state is not SessionState.STARTING:
            self._transition(session, SessionState.STARTING)

        logger.info("Starting %s with args: %s", self._encoder_binary, " ".join(args))
        try:
            process = await asyncio.create_subprocess_exec(
                self._encoder_binary,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise EncoderLaunchFailure(f"Cannot start {self._encoder_binary}: {e}") from e

        session._process = process
        if session.stop_requested:
            self._interrupt(session)

        stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_CHUNKS)
        readers = [
            asyncio.create_task(self._pump(session, process.stdout, EventKind.STDOUT, None)),
            asyncio.create_task(self._pump(session, process.stderr, EventKind.STDERR, stderr_tail)),
        ]
        exit_waiter = asyncio.ensure_future(process.wait())

        done, _ = await asyncio.wait({exit_waiter}, timeout=self._startup_grace)
        if exit_waiter in done and exit_waiter.result() != 0 and not session.stop_requested:
            await asyncio.gather(*readers)
            session._process = None
            code = exit_waiter.result()
            raise EncoderLaunchFailure(
                f"{self._encoder_binary} exited with code {code} during startup",
                exit_code=code,
                stderr_tail="".join(stderr_tail),
            )

        supervisor = asyncio.create_task(self._supervise(session, readers, exit_waiter))
        self._supervisors.add(supervisor)
        supervisor.add_done_callback(self._supervisors.discard)

        if session.state is SessionState.STARTING:
            self._transition(session, SessionState.RUNNING)
            logger.info("Streaming started (pid %s)", session.pid)

    async def _pump(
        self,
        session: Session,
        stream: asyncio.StreamReader | None,
        kind: EventKind,
        tail: deque[str] | None,
    ) -> None:
        """Forward one output stream of the encoder as events until EOF."""
        if stream is None:
            return
        while True:
            chunk = await stream.read(READ_CHUNK_SIZE)
            if not chunk:
                return
            text = chunk.decode("utf-8", errors="replace")
            if tail is not None:
                tail.append(text)
            logger.debug("ffmpeg %s: %s", kind.value, text.rstrip())
            self._emit(session, SessionEvent(kind=kind, state=session.state, data=text))

    async def _supervise(
        self,
        session: Session,
        readers: list[asyncio.Task[None]],
        exit_waiter: asyncio.Future[int],
    ) -> None:
        # Output is drained first so the exit event is always last
        await asyncio.gather(*readers)
        code = await exit_waiter
        self._on_exit(session, code)

    def _on_exit(self, session: Session, code: int) -> None:
        session.exit_code = code
        session._process = None
        self._emit(
            session,
            SessionEvent(kind=EventKind.EXIT, state=session.state, exit_code=code),
        )
        if code == 0 or session.stop_requested:
            logger.info("ffmpeg process exited with code %d", code)
        else:
            logger.warning("ffmpeg process exited unexpectedly with code %d", code)
            session.error = EncoderRuntimeExit(code)
        self._transition(session, SessionState.EXITED)

    def _interrupt(self, session: Session) -> None:
        process = session._process
        if process is None or process.returncode is not None:
            return
        try:
            process.send_signal(signal.SIGINT)
        except ProcessLookupError:
            logger.debug("ffmpeg already exited before SIGINT")

    def _fail(self, session: Session, error: EncoderLaunchFailure) -> None:
        session.error = error
        session.exit_code = error.exit_code
        session._process = None
        if error.stderr_tail:
            logger.error("ffmpeg output before failure:\n%s", error.stderr_tail.rstrip())
        self._emit(
            session,
            SessionEvent(
                kind=EventKind.ERROR,
                state=session.state,
                data=str(error),
                exit_code=error.exit_code,
            ),
        )
        self._transition(session, SessionState.FAILED)

    # ------------------------------------------------------------------
    # State and events
    # ------------------------------------------------------------------

    def _transition(self, session: Session, state: SessionState) -> None:
        previous = session.state
        session._state = state
        logger.debug("Session %s -> %s", previous.value, state.value)
        self._emit(session, SessionEvent(kind=EventKind.STATE, state=state))
        if state.is_terminal:
            session._finished.set()
            if self._session is session:
                self._session = None

    def _emit(self, session: Session, event: SessionEvent) -> None:
        session._push(event)
        for listener in list(self._listeners):
            try:
                listener(session, event)
            except Exception:
                logger.exception("Session listener %r failed", listener)
