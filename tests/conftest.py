"""
Pytest configuration and shared fixtures for all tests.
"""

import pytest

from position_relay.api.broadcast_router import BroadcastRouter
from position_relay.api.websocket.lifecycle import ParticipantRegistry
from position_relay.infrastructure.config.settings import AppSettings, LoggingSettings, RelaySettings


@pytest.fixture
def relay_settings() -> RelaySettings:
    """Default relay settings (spawn 400/300, epsilon 0.1, replace policy)"""
    return RelaySettings()


@pytest.fixture
def app_settings() -> AppSettings:
    """App settings with log output switched off"""
    settings = AppSettings()
    settings.logging = LoggingSettings(file_enabled=False, console_enabled=False)
    return settings


@pytest.fixture
def registry(relay_settings) -> ParticipantRegistry:
    return ParticipantRegistry.from_settings(relay_settings)


@pytest.fixture
def router(registry) -> BroadcastRouter:
    return BroadcastRouter(registry)
