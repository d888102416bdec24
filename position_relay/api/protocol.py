"""
Relay Protocol
==============
Wire format of the relay: one JSON object per UTF-8 text frame.

Client -> Server:
    {"type": "join", "playerId": str, "x": number?, "y": number?}
    {"type": "move", "x": number, "y": number, "facingLeft": bool?}

Server -> Client:
    {"type": "existingPlayers", "players": [{playerId, x, y, color, emoji}, ...]}
    {"type": "playerJoined", "playerId", "x", "y", "color", "emoji"}
    {"type": "playerMoved", "playerId", "x", "y", "isMoving", "facingLeft"}
    {"type": "playerLeft", "playerId"}

Any other inbound "type" is ignored. Payloads that are not JSON objects, or
recognized messages failing the shape checks below, raise
MalformedMessageError.
"""

import json
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..core.exceptions import MalformedMessageError
from ..domain.models.participant import Participant


class MessageType(str, Enum):
    """Supported WebSocket message types"""

    # Client -> Server
    JOIN = "join"
    MOVE = "move"

    # Server -> Client
    EXISTING_PLAYERS = "existingPlayers"
    PLAYER_JOINED = "playerJoined"
    PLAYER_MOVED = "playerMoved"
    PLAYER_LEFT = "playerLeft"


class _InboundMessage(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        allow_inf_nan=False,
        coerce_numbers_to_str=True,
    )


class JoinMessage(_InboundMessage):
    """Join request; x/y are optional and fall back to the spawn point"""
    type: MessageType = MessageType.JOIN
    player_id: str = Field(..., alias="playerId", min_length=1, max_length=128)
    x: Optional[float] = None
    y: Optional[float] = None


class MoveMessage(_InboundMessage):
    """Position report of an already joined participant"""
    type: MessageType = MessageType.MOVE
    x: float
    y: float
    facing_left: Optional[bool] = Field(default=False, alias="facingLeft")


InboundMessage = Union[JoinMessage, MoveMessage]

_INBOUND_MODELS = {
    MessageType.JOIN.value: JoinMessage,
    MessageType.MOVE.value: MoveMessage,
}


def parse_message(raw: Union[str, bytes]) -> Optional[InboundMessage]:
    """
    Parse one inbound frame.

    Returns:
        JoinMessage or MoveMessage, or None for an unrecognized type

    Raises:
        MalformedMessageError: not JSON, not an object, or failed shape checks
    """
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise MalformedMessageError(f"invalid JSON: {e}", raw=_preview(raw)) from e
    except RecursionError as e:
        # Nesting deeper than the decoder's recursion limit
        raise MalformedMessageError("invalid JSON: nested too deeply", raw=_preview(raw)) from e

    if not isinstance(data, dict):
        raise MalformedMessageError(f"expected a JSON object, got {type(data).__name__}", raw=_preview(raw))

    msg_type = data.get("type")
    model = _INBOUND_MODELS.get(msg_type) if isinstance(msg_type, str) else None
    if model is None:
        return None

    try:
        return model.model_validate(data)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise MalformedMessageError(f"invalid {data['type']} message: {fields}", raw=_preview(raw)) from e


def _preview(raw: Union[str, bytes], limit: int = 200) -> str:
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    return raw if len(raw) <= limit else raw[:limit] + "..."


# === Outbound builders ===

def existing_players(players: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "type": MessageType.EXISTING_PLAYERS.value,
        "players": players,
    }


def player_joined(participant: Participant) -> Dict[str, Any]:
    return {
        "type": MessageType.PLAYER_JOINED.value,
        **participant.to_public_dict(),
    }


def player_moved(participant: Participant) -> Dict[str, Any]:
    return {
        "type": MessageType.PLAYER_MOVED.value,
        "playerId": participant.id,
        "x": participant.x,
        "y": participant.y,
        "isMoving": participant.is_moving,
        "facingLeft": participant.facing_left,
    }


def player_left(participant_id: str) -> Dict[str, Any]:
    return {
        "type": MessageType.PLAYER_LEFT.value,
        "playerId": participant_id,
    }
