"""
Broadcast Router
================
Fan-out of one event to every open participant connection except an
optional excluded participant.

The router holds no state of its own besides counters: who receives a
message is decided by the registry's contents at the moment of the call.
"""

import json
from typing import Any, Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .websocket.lifecycle.participant_registry import ParticipantRegistry


class BroadcastRouter:
    """
    Delivers serialized events to participant channels.

    - The event is serialized once per broadcast
    - Channels that are not open are skipped, never removed (removal is the
      close handler's job)
    - No delivery confirmation or retry; each push is independent
    - Per-recipient order follows call order (channels are FIFO)
    """

    def __init__(self, registry: "ParticipantRegistry", logger=None):
        """
        Args:
            registry: Registry whose channels receive broadcasts
            logger: Optional logger for diagnostics
        """
        self.registry = registry
        self.logger = logger

        # Statistics
        self._total_broadcasts = 0
        self._total_deliveries = 0
        self._total_skipped = 0
        self._message_type_stats: Dict[str, int] = {}

    @staticmethod
    def serialize(event: Dict[str, Any]) -> str:
        return json.dumps(event, ensure_ascii=False)

    def broadcast(self, event: Dict[str, Any], exclude_id: Optional[str] = None) -> int:
        """
        Push event to every open channel except exclude_id's.

        Args:
            event: Message dict (must contain "type")
            exclude_id: Participant id that must not receive the event

        Returns:
            Number of channels the event was queued on
        """
        message = self.serialize(event)
        delivered = 0
        skipped = 0

        for participant_id, channel in self.registry.channels(exclude_id=exclude_id):
            if channel is None or not channel.is_open:
                skipped += 1
                continue
            if channel.send(message):
                delivered += 1
            else:
                skipped += 1

        event_type = event.get("type", "unknown")
        self._total_broadcasts += 1
        self._total_deliveries += delivered
        self._total_skipped += skipped
        self._message_type_stats[event_type] = self._message_type_stats.get(event_type, 0) + 1

        if self.logger:
            self.logger.debug("broadcast_router.broadcast", {
                "type": event_type,
                "exclude_id": exclude_id,
                "delivered": delivered,
                "skipped": skipped
            })

        return delivered

    def send_to(self, participant_id: str, event: Dict[str, Any]) -> bool:
        """
        Push event to a single participant.

        Returns:
            True if queued, False if the participant is unknown or its channel is closed
        """
        channel = self.registry.channel_for(participant_id)
        if channel is None or not channel.is_open:
            return False
        if not channel.send(self.serialize(event)):
            return False
        self._total_deliveries += 1
        return True

    def get_stats(self) -> Dict[str, Any]:
        return {
            "total_broadcasts": self._total_broadcasts,
            "total_deliveries": self._total_deliveries,
            "total_skipped": self._total_skipped,
            "message_types": dict(self._message_type_stats)
        }
