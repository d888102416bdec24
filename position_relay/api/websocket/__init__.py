"""
WebSocket API Module
====================
Relay WebSocket server with separation of concerns.

Architecture:
- handlers/: Per-connection event handling (ParticipantSession)
- lifecycle/: Registry, outbound channels and connection lifecycle
"""

__all__ = []
