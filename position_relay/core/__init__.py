"""
Core module for the position relay
"""

from .exceptions import DuplicateParticipantError, MalformedMessageError, RelayError
from .logger import StructuredLogger

__all__ = [
    'DuplicateParticipantError',
    'MalformedMessageError',
    'RelayError',
    'StructuredLogger',
]
