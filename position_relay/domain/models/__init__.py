from .participant import Participant, VisualIdentity, emoji_for, is_moving_between

__all__ = ["Participant", "VisualIdentity", "emoji_for", "is_moving_between"]
