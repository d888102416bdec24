"""
WebSocket Connection Lifecycle Management
=========================================
Components for managing WebSocket connections and shared participant state.

Components:
- ParticipantRegistry: Joined participants and their channels
- ClientChannel: Per-connection outbound FIFO queue
- ConnectionLifecycle: Receive loop, error handling, cleanup, shutdown
"""

from .participant_registry import ParticipantRegistry
from .client_channel import ClientChannel
from .connection_lifecycle import ConnectionLifecycle

__all__ = ["ParticipantRegistry", "ClientChannel", "ConnectionLifecycle"]
