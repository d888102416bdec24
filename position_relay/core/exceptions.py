"""
Core Exceptions - Position Relay
================================
Centralized exception definitions for the relay.
"""


class RelayError(Exception):
    """Base exception for relay operations."""
    pass


class MalformedMessageError(RelayError):
    """
    Raised when an inbound payload cannot be parsed or fails shape checks.

    Handled locally by the connection that received it: the payload is logged
    and dropped, the connection stays open and nothing is broadcast.
    """
    def __init__(self, reason: str, raw: str = None):
        self.reason = reason
        self.raw = raw
        self.message = f"Malformed message: {reason}"
        super().__init__(self.message)


class DuplicateParticipantError(RelayError):
    """
    Raised when a join reuses the id of a participant that is still connected
    and the duplicate id policy is "reject".

    WebSocket close code: 4009
    """
    def __init__(self, participant_id: str):
        self.participant_id = participant_id
        self.message = f"Participant already connected: {participant_id}"
        super().__init__(self.message)
