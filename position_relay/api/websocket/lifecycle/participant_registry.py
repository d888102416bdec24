"""
ParticipantRegistry - Authoritative Store of Joined Participants
================================================================
In-memory mapping of participant id to avatar state, plus an associated
id -> channel map holding each participant's outbound connection handle.

Features:
- Upsert on join with default spawn point and round-robin color assignment
- Stable, id-derived emoji
- Move updates (silently ignored for unknown ids)
- Ownership-checked removal so an evicted connection cannot remove its
  successor's entry
- Ordered snapshots for briefing newly joined participants
- Statistics for the health endpoint

The registry is owned by the server factory and injected into every
connection handler; there is no module-level instance.
"""

from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from ....core.exceptions import DuplicateParticipantError
from ....domain.models.participant import Participant, VisualIdentity, emoji_for
from ....infrastructure.config.settings import (
    DEFAULT_PLAYER_COLORS,
    DEFAULT_PLAYER_EMOJIS,
    RelaySettings,
)


class ParticipantRegistry:
    """
    Registry of currently joined participants.

    Invariant: every entry's channel is open or about to be removed; no
    entry outlives the close of its connection.

    Thread-safety: all methods are synchronous and never await. On a single
    asyncio event loop each call runs to completion before another
    connection's handler gets to run, so no lock is needed. Do not share an
    instance across threads or event loops.
    """

    def __init__(self,
                 player_colors: Sequence[str] = DEFAULT_PLAYER_COLORS,
                 player_emojis: Sequence[str] = DEFAULT_PLAYER_EMOJIS,
                 spawn_x: float = 400.0,
                 spawn_y: float = 300.0,
                 logger=None):
        """
        Initialize registry.

        Args:
            player_colors: Palette cycled through in join order
            player_emojis: Emblems picked by hashing the participant id
            spawn_x: Default x when a join omits it (or sends a falsy value)
            spawn_y: Default y when a join omits it (or sends a falsy value)
            logger: Optional logger for diagnostics
        """
        if not player_colors or not player_emojis:
            raise ValueError("ParticipantRegistry requires non-empty color and emoji palettes.")

        self.player_colors = list(player_colors)
        self.player_emojis = list(player_emojis)
        self.spawn_x = spawn_x
        self.spawn_y = spawn_y
        self.logger = logger

        # Insertion order is join order
        self._participants: Dict[str, Participant] = {}
        self._channels: Dict[str, Any] = {}

        # Advanced once per upsert, never reset
        self._color_index = 0

        # Statistics
        self._total_joins = 0
        self._total_leaves = 0
        self._total_replaced = 0

    @classmethod
    def from_settings(cls, settings: RelaySettings, logger=None) -> "ParticipantRegistry":
        return cls(
            player_colors=settings.player_colors,
            player_emojis=settings.player_emojis,
            spawn_x=settings.spawn_x,
            spawn_y=settings.spawn_y,
            logger=logger,
        )

    def _next_color(self) -> str:
        color = self.player_colors[self._color_index % len(self.player_colors)]
        self._color_index += 1
        return color

    def upsert(self,
               participant_id: str,
               initial_state: Optional[Dict[str, Any]] = None,
               channel: Any = None,
               replace: bool = True) -> Tuple[Participant, Optional[Any]]:
        """
        Insert or replace the entry for participant_id.

        Absent or falsy x/y fall back to the spawn point, each axis on its
        own. The color counter advances on every call, fresh id or not.

        Args:
            participant_id: Id supplied by the client
            initial_state: Dict with optional "x" and "y"
            channel: Outbound handle of the joining connection
            replace: If False, an entry held by a different channel raises
                DuplicateParticipantError instead of being replaced

        Returns:
            (new participant, channel of the replaced entry if it belonged
            to a different connection, else None)

        Raises:
            DuplicateParticipantError: replace is False and the id is held
                by another connection
        """
        initial_state = initial_state or {}
        previous_channel = self._channels.get(participant_id)
        is_collision = participant_id in self._participants and previous_channel is not channel

        if is_collision and not replace:
            raise DuplicateParticipantError(participant_id)

        participant = Participant(
            id=participant_id,
            x=initial_state.get("x") or self.spawn_x,
            y=initial_state.get("y") or self.spawn_y,
            identity=VisualIdentity(
                color=self._next_color(),
                emoji=emoji_for(participant_id, self.player_emojis),
            ),
        )

        # Re-insert so a replaced entry moves to the end of join order
        replaced = self._participants.pop(participant_id, None) is not None
        self._channels.pop(participant_id, None)
        self._participants[participant_id] = participant
        self._channels[participant_id] = channel

        self._total_joins += 1
        if replaced:
            self._total_replaced += 1

        if self.logger:
            self.logger.debug("participant_registry.upserted", {
                "participant_id": participant_id,
                "replaced": replaced,
                "color": participant.color,
                "total_participants": len(self._participants)
            })

        return participant, previous_channel if is_collision else None

    def get(self, participant_id: str) -> Optional[Participant]:
        return self._participants.get(participant_id)

    def update(self,
               participant_id: str,
               x: float,
               y: float,
               is_moving: bool = False,
               facing_left: bool = False) -> Optional[Participant]:
        """
        Update position and motion fields in place.

        Returns:
            The updated participant, or None (no-op) if the id is unknown
        """
        participant = self._participants.get(participant_id)
        if participant is None:
            return None

        participant.x = x
        participant.y = y
        participant.is_moving = is_moving
        participant.facing_left = facing_left
        return participant

    def remove(self, participant_id: str, channel: Any = None) -> bool:
        """
        Delete the entry if present.

        Args:
            participant_id: Id to remove
            channel: If given, only remove when this channel still owns
                the entry

        Returns:
            True if an entry was removed, False otherwise
        """
        if participant_id not in self._participants:
            return False
        if channel is not None and self._channels.get(participant_id) is not channel:
            return False

        self._participants.pop(participant_id, None)
        self._channels.pop(participant_id, None)
        self._total_leaves += 1

        if self.logger:
            self.logger.debug("participant_registry.removed", {
                "participant_id": participant_id,
                "remaining_participants": len(self._participants)
            })

        return True

    def size(self) -> int:
        return len(self._participants)

    def __len__(self) -> int:
        return len(self._participants)

    def __contains__(self, participant_id: object) -> bool:
        return participant_id in self._participants

    def __iter__(self) -> Iterator[Participant]:
        return iter(list(self._participants.values()))

    def snapshot(self, exclude_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Externally visible view of every participant except exclude_id.

        Returns:
            List of {playerId, x, y, color, emoji} in join order
        """
        return [
            participant.to_public_dict()
            for participant_id, participant in self._participants.items()
            if participant_id != exclude_id
        ]

    def channel_for(self, participant_id: str) -> Optional[Any]:
        return self._channels.get(participant_id)

    def owns(self, participant_id: Optional[str], channel: Any) -> bool:
        """True if participant_id is joined and its entry belongs to channel."""
        if participant_id is None or participant_id not in self._participants:
            return False
        return self._channels.get(participant_id) is channel

    def channels(self, exclude_id: Optional[str] = None) -> List[Tuple[str, Any]]:
        """(participant_id, channel) pairs except exclude_id, as a copy safe to iterate."""
        return [
            (participant_id, channel)
            for participant_id, channel in self._channels.items()
            if participant_id != exclude_id
        ]

    def get_stats(self) -> Dict[str, Any]:
        return {
            "active_participants": len(self._participants),
            "total_joins": self._total_joins,
            "total_leaves": self._total_leaves,
            "total_replaced": self._total_replaced,
            "colors_assigned": self._color_index
        }

    def clear_all(self) -> None:
        """Drop every entry (shutdown and tests). The color counter is kept."""
        count = len(self._participants)
        self._participants.clear()
        self._channels.clear()

        if self.logger:
            self.logger.info("participant_registry.cleared", {
                "participants_cleared": count
            })
