"""
Position Relay
==============
Real-time position-synchronization relay over WebSockets.
"""

__version__ = "1.0.0"
