"""
E2E Test Suite
==============
End-to-end tests for the position relay, driven through FastAPI's TestClient.

Test modules:
- test_relay_websocket.py: HTTP probes and WebSocket relay scenarios
"""
