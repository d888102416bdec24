"""
Unified Configuration Settings - Single Source of Truth
=======================================================
All relay configuration using Pydantic Settings.
"""

from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List
from enum import Enum


class LogLevel(str, Enum):
    """Logging levels"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class DuplicateIdPolicy(str, Enum):
    """What happens when a join reuses the id of a connected participant"""
    REPLACE = "replace"  # overwrite the entry, close the earlier connection
    REJECT = "reject"    # keep the earlier participant, close the new connection


DEFAULT_PLAYER_COLORS = ['#4ecdc4', '#45b7d1', '#96ceb4', '#ffeaa7', '#dda0dd', '#ff9ff3']

DEFAULT_PLAYER_EMOJIS = [
    '🦊', '🐼', '🐸', '🐙', '🦉', '🐢', '🦄', '🐝',
    '🐧', '🦁', '🐨', '🐳', '🦋', '🐞', '🦀', '🐲',
]


# === SERVER CONFIGURATION ===

class ServerSettings(BaseSettings):
    """HTTP / WebSocket listener configuration"""
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=3000, description="Bind port")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], description="Allowed CORS origins")
    websocket_path: str = Field(default="/ws", description="WebSocket endpoint path")

    class Config:
        env_prefix = "SERVER_"


# === RELAY CONFIGURATION ===

class RelaySettings(BaseSettings):
    """Participant registry and movement configuration"""
    spawn_x: float = Field(default=400.0, description="Default spawn x when join omits it")
    spawn_y: float = Field(default=300.0, description="Default spawn y when join omits it")
    movement_epsilon: float = Field(default=0.1, description="Minimum per-axis delta that counts as moving")
    player_colors: List[str] = Field(default_factory=lambda: list(DEFAULT_PLAYER_COLORS))
    player_emojis: List[str] = Field(default_factory=lambda: list(DEFAULT_PLAYER_EMOJIS))
    duplicate_id_policy: DuplicateIdPolicy = Field(default=DuplicateIdPolicy.REPLACE)

    @field_validator('player_colors', 'player_emojis')
    @classmethod
    def validate_not_empty(cls, v):
        if not v:
            raise ValueError("Palette must contain at least one entry")
        return v

    @field_validator('movement_epsilon')
    @classmethod
    def validate_epsilon(cls, v):
        if v < 0:
            raise ValueError(f"movement_epsilon must be non-negative, got {v}")
        return v

    class Config:
        env_prefix = "RELAY_"


# === LOGGING CONFIGURATION ===

class LoggingSettings(BaseSettings):
    """Logging configuration"""
    level: LogLevel = Field(default=LogLevel.INFO)
    file_enabled: bool = Field(default=False)
    console_enabled: bool = Field(default=True)
    structured_logging: bool = Field(default=True)
    log_dir: str = Field(default="logs")
    max_file_size_mb: int = Field(default=100)
    backup_count: int = Field(default=5)

    class Config:
        env_prefix = "LOG_"


# === MAIN APPLICATION SETTINGS ===

class AppSettings(BaseSettings):
    """Main application settings - Single Source of Truth"""

    app_name: str = Field(default="Position Relay")
    version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)

    server: ServerSettings = Field(default_factory=ServerSettings)
    relay: RelaySettings = Field(default_factory=RelaySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    class Config:
        env_file = ".env"
        env_nested_delimiter = "__"  # Allows RELAY__SPAWN_X=100
        case_sensitive = False
        extra = "ignore"
