"""Session lifecycle module for rtmpcast.

Owns the encoder subprocess for the duration of a stream and reports
its lifecycle as state transitions and ordered events.

Public API:
    Session -- One encoder run and its event stream
    SessionManager -- Starts, supervises and stops sessions
"""

from rtmpcast.session.manager import SessionListener, SessionManager
from rtmpcast.session.session import Session

__all__ = ["Session", "SessionListener", "SessionManager"]
