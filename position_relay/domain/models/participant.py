"""
Participant Models - Avatar state of one connected client
=========================================================
Pure data models without transport dependencies. The connection handle is
kept by the registry in a separate map, not on the participant.
"""

import hashlib
from dataclasses import dataclass
from typing import Dict, Any, Sequence


@dataclass(frozen=True)
class VisualIdentity:
    """Color by join order, emoji by a stable hash of the participant id"""
    color: str
    emoji: str


@dataclass
class Participant:
    """Transient spatial state of one joined participant"""

    id: str
    x: float
    y: float
    identity: VisualIdentity
    is_moving: bool = False
    facing_left: bool = False

    @property
    def color(self) -> str:
        return self.identity.color

    @property
    def emoji(self) -> str:
        return self.identity.emoji

    def to_public_dict(self) -> Dict[str, Any]:
        """Externally visible fields, as sent in existingPlayers/playerJoined."""
        return {
            "playerId": self.id,
            "x": self.x,
            "y": self.y,
            "color": self.color,
            "emoji": self.emoji,
        }


def emoji_for(participant_id: str, emojis: Sequence[str]) -> str:
    """
    Pick an emoji for a participant id.

    The same id maps to the same emoji in every process (built-in hash()
    of str is salted per interpreter, sha256 is not).
    """
    digest = hashlib.sha256(participant_id.encode("utf-8")).digest()
    return emojis[int.from_bytes(digest[:4], "big") % len(emojis)]


def is_moving_between(prev_x: float, prev_y: float, x: float, y: float, epsilon: float) -> bool:
    """True if either axis moved by more than epsilon."""
    return abs(x - prev_x) > epsilon or abs(y - prev_y) > epsilon
