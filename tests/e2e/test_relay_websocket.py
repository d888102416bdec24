"""
E2E tests for the relay server
==============================
Runs the real FastAPI application in-process. Every WebSocket opened from
one TestClient shares the same event loop, registry and router.

Test coverage:
- /ping and /health probes
- Two-participant join / move / leave scenario
- Malformed input keeps the connection open
- Duplicate id replaces the earlier connection (close code 4000)
"""

import time

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from position_relay.api.server import create_app


@pytest.fixture
def client(app_settings):
    app = create_app(app_settings)
    with TestClient(app) as test_client:
        yield test_client


def wait_for_players(client, expected: int, timeout: float = 2.0):
    """Poll /ping until the registry holds the expected number of participants"""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if client.get("/ping").json()["players"] == expected:
            return
        time.sleep(0.01)
    raise AssertionError(f"expected {expected} players")


@pytest.mark.api
class TestHttpProbes:
    """Test liveness endpoints"""

    def test_ping(self, client):
        response = client.get("/ping")

        assert response.status_code == 200
        assert response.json() == {"status": "online", "players": 0, "version": "1.0.0"}

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["type"] == "response"
        assert body["data"]["status"] == "healthy"
        assert body["data"]["participants"] == 0
        assert body["data"]["connections"]["active_connections"] == 0
        assert "timestamp" in body

    def test_ping_counts_participants(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "join", "playerId": "solo"})
            wait_for_players(client, 1)

        wait_for_players(client, 0)


@pytest.mark.websocket
class TestRelayScenarios:
    """Test relay behavior over real WebSocket sessions"""

    def test_two_participants(self, client):
        """Test join, move and leave as seen by both participants"""
        with client.websocket_connect("/ws") as ws_a:
            ws_a.send_json({"type": "join", "playerId": "A", "x": 100, "y": 100})
            wait_for_players(client, 1)

            with client.websocket_connect("/ws") as ws_b:
                ws_b.send_json({"type": "join", "playerId": "B", "x": 200, "y": 200})

                brief = ws_b.receive_json()
                assert brief["type"] == "existingPlayers"
                assert len(brief["players"]) == 1
                assert brief["players"][0]["playerId"] == "A"
                assert (brief["players"][0]["x"], brief["players"][0]["y"]) == (100, 100)

                joined = ws_a.receive_json()
                assert joined["type"] == "playerJoined"
                assert joined["playerId"] == "B"
                assert (joined["x"], joined["y"]) == (200, 200)

                ws_a.send_json({"type": "move", "x": 105, "y": 100})
                moved = ws_b.receive_json()
                assert moved == {
                    "type": "playerMoved",
                    "playerId": "A",
                    "x": 105,
                    "y": 100,
                    "isMoving": True,
                    "facingLeft": False,
                }

                # The next thing A sees is B's move, not an echo of its own
                ws_b.send_json({"type": "move", "x": 200.05, "y": 200, "facingLeft": True})
                moved = ws_a.receive_json()
                assert moved["playerId"] == "B"
                assert moved["isMoving"] is False
                assert moved["facingLeft"] is True

            left = ws_a.receive_json()
            assert left == {"type": "playerLeft", "playerId": "B"}
            wait_for_players(client, 1)

    def test_malformed_input_keeps_connection(self, client):
        """Test that garbage is dropped and the connection keeps working"""
        with client.websocket_connect("/ws") as ws_a:
            ws_a.send_text("this is not json")
            ws_a.send_text('{"type": "move", "x": "nope"}')
            ws_a.send_json({"type": "teleport", "x": 1})
            ws_a.send_json({"type": "join", "playerId": "A"})
            wait_for_players(client, 1)

            with client.websocket_connect("/ws") as ws_b:
                ws_b.send_json({"type": "join", "playerId": "B"})
                brief = ws_b.receive_json()

                assert brief["type"] == "existingPlayers"
                assert brief["players"][0]["playerId"] == "A"
                assert (brief["players"][0]["x"], brief["players"][0]["y"]) == (400, 300)

    def test_duplicate_id_replaces_earlier_connection(self, client):
        """Test that a second join with the same id closes the first connection"""
        with client.websocket_connect("/ws") as ws_old:
            ws_old.send_json({"type": "join", "playerId": "dup"})
            wait_for_players(client, 1)

            with client.websocket_connect("/ws") as ws_new:
                ws_new.send_json({"type": "join", "playerId": "dup", "x": 50, "y": 60})

                with pytest.raises(WebSocketDisconnect) as exc_info:
                    ws_old.receive_json()
                assert exc_info.value.code == 4000

                wait_for_players(client, 1)
                health = client.get("/health").json()["data"]
                assert health["registry"]["total_replaced"] == 1

            wait_for_players(client, 0)
