"""The Session record: one encoder run and its ordered event stream."""

from __future__ import annotations

import asyncio
from collections import deque
from typing import TYPE_CHECKING, AsyncIterator

from rtmpcast.domain.models import (
    CaptureConfiguration,
    EventKind,
    SessionEvent,
    SessionState,
)
from rtmpcast.errors import StreamerError

if TYPE_CHECKING:
    from asyncio.subprocess import Process

# Output chunks held for a consumer that has not read them yet
EVENT_BUFFER_SIZE = 1000

_OUTPUT_KINDS = frozenset({EventKind.STDOUT, EventKind.STDERR})


class Session:
    """State of a single capture/stream run.

    Sessions are created and driven by SessionManager; callers read the
    state, consume events, and wait for the end. The encoder process
    handle is released once the session reaches a terminal state.

    Example usage::

        session = await manager.start(config)
        async for event in session.events():
            if event.kind is EventKind.STDERR:
                print(event.data, end="")
    """

    def __init__(self, config: CaptureConfiguration, buffer_size: int = EVENT_BUFFER_SIZE) -> None:
        self.config = config
        self.args: list[str] = []
        self.attempts: int = 0
        self.exit_code: int | None = None
        self.error: StreamerError | None = None
        self.stop_requested: bool = False
        self.dropped_events: int = 0
        self._state = SessionState.IDLE
        self._process: Process | None = None
        self._buffer: deque[SessionEvent] = deque()
        self._buffer_size = buffer_size
        self._buffered_output = 0
        self._ready = asyncio.Event()
        self._finished = asyncio.Event()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def pid(self) -> int | None:
        """PID of the encoder process while it is alive."""
        return self._process.pid if self._process is not None else None

    @property
    def is_finished(self) -> bool:
        return self._finished.is_set()

    @property
    def pending_events(self) -> int:
        """Number of events buffered and not yet consumed by events()."""
        return len(self._buffer)

    def _push(self, event: SessionEvent) -> None:
        """Buffer an event for events().

        At most ``buffer_size`` output chunks are held; when full, the
        oldest chunk is discarded. State, exit and error events are
        never discarded.
        """
        if event.kind in _OUTPUT_KINDS:
            if self._buffered_output >= self._buffer_size:
                self._drop_oldest_output()
            self._buffered_output += 1
        self._buffer.append(event)
        self._ready.set()

    def _drop_oldest_output(self) -> None:
        for index, queued in enumerate(self._buffer):
            if queued.kind in _OUTPUT_KINDS:
                del self._buffer[index]
                self._buffered_output -= 1
                self.dropped_events += 1
                return

    async def wait(self) -> int | None:
        """Wait until the session exits or fails and return the exit code."""
        await self._finished.wait()
        return self.exit_code

    async def events(self) -> AsyncIterator[SessionEvent]:
        """Yield session events in emission order.

        Ends after the event announcing the terminal state. Events are
        consumed from a single buffer, so only one consumer should
        iterate a given session. A consumer that falls behind loses the
        oldest output chunks, never state changes.
        """
        while True:
            while not self._buffer:
                self._ready.clear()
                await self._ready.wait()
            event = self._buffer.popleft()
            if event.kind in _OUTPUT_KINDS:
                self._buffered_output -= 1
            yield event
            if event.kind is EventKind.STATE and event.state.is_terminal:
                return

    def __repr__(self) -> str:
        return (
            f"Session(state={self._state.value}, platform={self.config.platform.value}, "
            f"exit_code={self.exit_code})"
        )
