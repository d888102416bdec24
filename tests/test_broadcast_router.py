"""
Unit tests for BroadcastRouter
==============================
Tests fan-out to registry channels.

Test coverage:
- Excluded participant never receives
- Closed channels skipped, not removed
- Delivery count and statistics
- Single-recipient send_to
"""

import json

from unittest.mock import Mock


class MockChannel:
    """Mock channel recording queued messages"""

    def __init__(self, is_open: bool = True):
        self.is_open = is_open
        self.messages = []

    def send(self, message: str) -> bool:
        self.messages.append(json.loads(message))
        return True


def populate(registry, **channels):
    for participant_id, channel in channels.items():
        registry.upsert(participant_id, {}, channel=channel)


class TestBroadcast:
    """Test broadcast()"""

    def test_broadcast_reaches_everyone(self, registry, router):
        a, b = MockChannel(), MockChannel()
        populate(registry, a=a, b=b)

        delivered = router.broadcast({"type": "playerLeft", "playerId": "z"})

        assert delivered == 2
        assert a.messages == b.messages == [{"type": "playerLeft", "playerId": "z"}]

    def test_broadcast_excludes_sender(self, registry, router):
        a, b, c = MockChannel(), MockChannel(), MockChannel()
        populate(registry, a=a, b=b, c=c)

        delivered = router.broadcast({"type": "playerMoved", "playerId": "a"}, exclude_id="a")

        assert delivered == 2
        assert a.messages == []
        assert len(b.messages) == 1
        assert len(c.messages) == 1

    def test_closed_channel_skipped_not_removed(self, registry, router):
        open_ch, closed_ch = MockChannel(), MockChannel(is_open=False)
        populate(registry, a=open_ch, b=closed_ch)

        delivered = router.broadcast({"type": "playerJoined", "playerId": "c"})

        assert delivered == 1
        assert closed_ch.messages == []
        assert "b" in registry
        assert router.get_stats()["total_skipped"] == 1

    def test_participant_without_channel_skipped(self, registry, router):
        registry.upsert("headless", {})

        assert router.broadcast({"type": "playerLeft", "playerId": "x"}) == 0

    def test_empty_registry(self, router):
        assert router.broadcast({"type": "playerLeft", "playerId": "x"}) == 0

    def test_stats_by_type(self, registry, router):
        populate(registry, a=MockChannel())

        router.broadcast({"type": "playerMoved", "playerId": "a"}, exclude_id="a")
        router.broadcast({"type": "playerMoved", "playerId": "a"}, exclude_id="a")
        router.broadcast({"type": "playerLeft", "playerId": "b"})

        stats = router.get_stats()
        assert stats["total_broadcasts"] == 3
        assert stats["total_deliveries"] == 1
        assert stats["message_types"] == {"playerMoved": 2, "playerLeft": 1}

    def test_broadcast_logs_debug(self, registry):
        from position_relay.api.broadcast_router import BroadcastRouter

        mock_logger = Mock()
        router = BroadcastRouter(registry, logger=mock_logger)

        router.broadcast({"type": "playerLeft", "playerId": "x"})

        assert mock_logger.debug.call_args[0][0] == "broadcast_router.broadcast"


class TestSendTo:
    """Test send_to()"""

    def test_send_to_single_participant(self, registry, router):
        a, b = MockChannel(), MockChannel()
        populate(registry, a=a, b=b)

        assert router.send_to("b", {"type": "existingPlayers", "players": []}) is True

        assert a.messages == []
        assert b.messages == [{"type": "existingPlayers", "players": []}]

    def test_send_to_unknown_participant(self, router):
        assert router.send_to("ghost", {"type": "existingPlayers", "players": []}) is False

    def test_send_to_closed_channel(self, registry, router):
        populate(registry, a=MockChannel(is_open=False))

        assert router.send_to("a", {"type": "existingPlayers", "players": []}) is False
