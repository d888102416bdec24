"""
WebSocket Message Handlers
==========================
Per-connection event handling.

- ParticipantSession: join / move / close / error for one connection
"""

from .participant_session import ParticipantSession, SessionState

__all__ = ["ParticipantSession", "SessionState"]
