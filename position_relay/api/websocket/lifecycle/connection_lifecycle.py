"""
ConnectionLifecycle - WebSocket Connection Management
=====================================================
Orchestrates the lifecycle of accepted WebSocket connections: channel setup,
the receive loop, transport errors and cleanup.

This is an orchestrator that coordinates:
- ClientChannel (outbound queue of the connection)
- ParticipantSession (event handling of the connection)
- ParticipantRegistry / BroadcastRouter (shared by all sessions)
"""

import asyncio
from typing import Any, Dict, Optional, Union

from starlette.websockets import WebSocketDisconnect

from ....infrastructure.config.settings import RelaySettings
from ...broadcast_router import BroadcastRouter
from ..handlers.participant_session import ParticipantSession
from .client_channel import ClientChannel
from .participant_registry import ParticipantRegistry

CLOSE_GOING_AWAY = 1001


class ConnectionLifecycle:
    """
    Runs one receive loop per connection.

    Lifecycle stages:
    1. Accepted connection → ClientChannel started → ParticipantSession created
    2. Receive loop → session.handle_message per frame
    3. Disconnect or transport error → session.handle_close → channel stopped

    A failure on one connection ends that connection's loop only.
    """

    def __init__(self,
                 registry: ParticipantRegistry,
                 router: BroadcastRouter,
                 settings: Optional[RelaySettings] = None,
                 logger=None):
        """
        Args:
            registry: Shared participant registry
            router: Broadcast router over the registry
            settings: Relay settings handed to each session
            logger: Optional logger for diagnostics
        """
        self.registry = registry
        self.router = router
        self.settings = settings or RelaySettings()
        self.logger = logger

        # channel_id -> (channel, session) for every live connection
        self._connections: Dict[str, tuple] = {}
        self._is_shutting_down = False

        # Statistics
        self.total_connections_handled = 0
        self.total_transport_errors = 0

    @property
    def active_connections(self) -> int:
        return len(self._connections)

    async def _receive(self, websocket: Any) -> Union[str, bytes]:
        """Next data frame; raises WebSocketDisconnect when the client goes away."""
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(code=message.get("code", 1000), reason=message.get("reason"))
        text = message.get("text")
        if text is not None:
            return text
        return message.get("bytes") or b""

    async def handle_client_connection(self, websocket: Any) -> None:
        """
        Serve one accepted WebSocket until it closes.

        Args:
            websocket: Accepted Starlette/FastAPI WebSocket
        """
        if self._is_shutting_down:
            await websocket.close(code=CLOSE_GOING_AWAY, reason="server shutting down")
            return

        channel = ClientChannel(websocket, logger=self.logger)
        session = ParticipantSession(channel, self.registry, self.router, self.settings, logger=self.logger)
        channel.start()

        self._connections[channel.channel_id] = (channel, session)
        self.total_connections_handled += 1
        close_code = None

        if self.logger:
            self.logger.info("websocket_lifecycle.client_connected", {
                "channel_id": channel.channel_id,
                "client": self._client_address(websocket),
                "active_connections": self.active_connections
            })

        try:
            while True:
                frame = await self._receive(websocket)
                session.handle_message(frame)
        except WebSocketDisconnect as e:
            close_code = e.code
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.total_transport_errors += 1
            session.handle_error(e)
        finally:
            session.handle_close(close_code)
            await channel.stop()
            self._connections.pop(channel.channel_id, None)

            if self.logger:
                self.logger.info("websocket_lifecycle.client_disconnected", {
                    "channel_id": channel.channel_id,
                    "participant_id": session.get_stats()["participant_id"],
                    "close_code": close_code,
                    "messages_received": session.messages_received,
                    "active_connections": self.active_connections
                })

    @staticmethod
    def _client_address(websocket: Any) -> str:
        client = getattr(websocket, "client", None)
        if client is not None and getattr(client, "host", None):
            return f"{client.host}:{client.port}"
        return "unknown"

    async def shutdown(self, timeout: float = 5.0) -> int:
        """
        Close every live connection with 1001 (going away).

        Returns:
            Number of connections that were asked to close
        """
        self._is_shutting_down = True
        channels = [channel for channel, _ in list(self._connections.values())]

        if channels:
            try:
                await asyncio.wait_for(
                    asyncio.gather(
                        *(channel.close(CLOSE_GOING_AWAY, "server shutting down") for channel in channels),
                        return_exceptions=True
                    ),
                    timeout=timeout
                )
            except asyncio.TimeoutError:
                if self.logger:
                    self.logger.warning("websocket_lifecycle.shutdown_timeout", {
                        "connections": len(channels)
                    })

        if self.logger:
            self.logger.info("websocket_lifecycle.shutdown_complete", {
                "connections_closed": len(channels)
            })

        return len(channels)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "active_connections": self.active_connections,
            "total_connections_handled": self.total_connections_handled,
            "total_transport_errors": self.total_transport_errors,
            "is_shutting_down": self._is_shutting_down
        }
