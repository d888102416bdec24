"""
ParticipantSession - Per-Connection Event Handling
==================================================
State machine bound to one WebSocket connection.

States:
    unidentified → (join) → identified → (close) → closed

Events:
- join:  bind to the supplied id, upsert the registry entry, brief the
         joiner with existingPlayers (only if others exist), then broadcast
         playerJoined to everyone else
- move:  only when identified and still owning the registry entry; derive
         isMoving against the previous position, update, broadcast
         playerMoved to everyone else
- close: remove the entry (if still owned) and broadcast playerLeft
- error: log only; cleanup happens once, on close

Every handler is synchronous. Registry mutation and fan-out for one event
happen without yielding to the event loop, so events from different
connections never interleave mid-update.
"""

from enum import Enum
from typing import Any, Callable, Dict, Optional, Union, TYPE_CHECKING

from ....core.exceptions import DuplicateParticipantError, MalformedMessageError
from ....domain.models.participant import is_moving_between
from ....infrastructure.config.settings import DuplicateIdPolicy, RelaySettings
from ... import protocol

if TYPE_CHECKING:
    from ...broadcast_router import BroadcastRouter
    from ..lifecycle.participant_registry import ParticipantRegistry

# Close codes in the 4000-4999 private range
CLOSE_REPLACED = 4000
CLOSE_DUPLICATE_ID = 4009


class SessionState(str, Enum):
    UNIDENTIFIED = "unidentified"
    IDENTIFIED = "identified"
    CLOSED = "closed"


class ParticipantSession:
    """
    Handles the events of one connection.

    Dependencies:
    - channel: ClientChannel of this connection
    - registry: shared ParticipantRegistry
    - router: BroadcastRouter over the same registry
    - settings: RelaySettings (movement epsilon, duplicate id policy)
    - logger: optional StructuredLogger
    """

    def __init__(self,
                 channel: Any,
                 registry: "ParticipantRegistry",
                 router: "BroadcastRouter",
                 settings: Optional[RelaySettings] = None,
                 logger=None):
        self.channel = channel
        self.registry = registry
        self.router = router
        self.settings = settings or RelaySettings()
        self.logger = logger

        self.participant_id: Optional[str] = None
        self.state = SessionState.UNIDENTIFIED

        # Statistics
        self.messages_received = 0
        self.messages_ignored = 0
        self.messages_malformed = 0

        self._handlers: Dict[protocol.MessageType, Callable[[Any], None]] = {
            protocol.MessageType.JOIN: self.handle_join,
            protocol.MessageType.MOVE: self.handle_move,
        }

    @property
    def is_identified(self) -> bool:
        return self.state == SessionState.IDENTIFIED

    def handle_message(self, raw: Union[str, bytes]) -> None:
        """Parse one inbound frame and dispatch it. Never raises for bad input."""
        if self.state == SessionState.CLOSED:
            return

        self.messages_received += 1

        try:
            message = protocol.parse_message(raw)
        except MalformedMessageError as e:
            self.messages_malformed += 1
            if self.logger:
                self.logger.warning("participant_session.malformed_message", {
                    "channel_id": getattr(self.channel, "channel_id", None),
                    "participant_id": self.participant_id,
                    "reason": e.reason,
                    "raw": e.raw
                })
            return

        if message is None:
            self.messages_ignored += 1
            return

        self._handlers[message.type](message)

    def handle_join(self, message: protocol.JoinMessage) -> None:
        new_id = message.player_id

        # Rebinding to a different id: the old avatar leaves first
        if self.is_identified and new_id != self.participant_id:
            self._leave()

        replace = self.settings.duplicate_id_policy == DuplicateIdPolicy.REPLACE
        try:
            participant, evicted_channel = self.registry.upsert(
                new_id,
                {"x": message.x, "y": message.y},
                channel=self.channel,
                replace=replace,
            )
        except DuplicateParticipantError as e:
            if self.logger:
                self.logger.warning("participant_session.duplicate_id_rejected", {
                    "channel_id": getattr(self.channel, "channel_id", None),
                    "participant_id": e.participant_id
                })
            self.participant_id = None
            self.state = SessionState.UNIDENTIFIED
            self.channel.request_close(CLOSE_DUPLICATE_ID, "participant id in use")
            return

        self.participant_id = new_id
        self.state = SessionState.IDENTIFIED

        if evicted_channel is not None:
            if self.logger:
                self.logger.warning("participant_session.duplicate_id_replaced", {
                    "participant_id": new_id,
                    "evicted_channel_id": getattr(evicted_channel, "channel_id", None),
                    "channel_id": getattr(self.channel, "channel_id", None)
                })
            evicted_channel.request_close(CLOSE_REPLACED, "replaced by a newer connection")

        if self.logger:
            self.logger.info("participant_session.joined", {
                "participant_id": new_id,
                "color": participant.color,
                "total_participants": self.registry.size()
            })

        others = self.registry.snapshot(exclude_id=new_id)
        if others:
            self.router.send_to(new_id, protocol.existing_players(others))

        self.router.broadcast(protocol.player_joined(participant), exclude_id=new_id)

    def handle_move(self, message: protocol.MoveMessage) -> None:
        if not self.is_identified or not self.registry.owns(self.participant_id, self.channel):
            return

        previous = self.registry.get(self.participant_id)
        is_moving = is_moving_between(
            previous.x, previous.y, message.x, message.y, self.settings.movement_epsilon
        )
        participant = self.registry.update(
            self.participant_id,
            message.x,
            message.y,
            is_moving=is_moving,
            facing_left=bool(message.facing_left),
        )
        if participant is None:
            return

        self.router.broadcast(protocol.player_moved(participant), exclude_id=self.participant_id)

    def handle_close(self, code: Optional[int] = None) -> None:
        """Connection closed. Idempotent."""
        if self.state == SessionState.CLOSED:
            return

        if self.is_identified:
            self._leave(code)

        self.state = SessionState.CLOSED

    def handle_error(self, error: BaseException) -> None:
        """Transport error. Logged only; the close that follows does the cleanup."""
        if self.logger:
            self.logger.warning("participant_session.transport_error", {
                "channel_id": getattr(self.channel, "channel_id", None),
                "participant_id": self.participant_id,
                "error": str(error),
                "error_type": type(error).__name__
            })

    def _leave(self, code: Optional[int] = None) -> None:
        participant_id = self.participant_id
        self.participant_id = None
        self.state = SessionState.UNIDENTIFIED

        # An entry taken over by a newer connection is not ours to remove
        if not self.registry.remove(participant_id, channel=self.channel):
            return

        if self.logger:
            self.logger.info("participant_session.left", {
                "participant_id": participant_id,
                "close_code": code,
                "total_participants": self.registry.size()
            })

        self.router.broadcast(protocol.player_left(participant_id))

    def get_stats(self) -> Dict[str, Any]:
        return {
            "participant_id": self.participant_id,
            "state": self.state.value,
            "messages_received": self.messages_received,
            "messages_ignored": self.messages_ignored,
            "messages_malformed": self.messages_malformed
        }
