"""
Configuration Loader - Bridge Between JSON Config and AppSettings
=================================================================
Loads configuration from a JSON file and maps it onto AppSettings.
Environment variables still populate anything the file leaves out.
"""

import json
import os
from pathlib import Path
from typing import Any

from .settings import AppSettings, DuplicateIdPolicy, LogLevel


def _resolve_env_vars(data: Any) -> Any:
    """Replace "${VAR}" string values with the value of environment variable VAR."""
    if isinstance(data, dict):
        return {k: _resolve_env_vars(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_vars(i) for i in data]
    elif isinstance(data, str) and data.startswith("${") and data.endswith("}"):
        var_name = data[2:-1]
        return os.getenv(var_name, "")
    return data


def load_app_settings_from_json(config_path: str = "config/config.json") -> AppSettings:
    """
    Load AppSettings from JSON configuration file.

    Args:
        config_path: Path to config.json file

    Returns:
        Configured AppSettings instance. Falls back to defaults (plus
        environment) if the file cannot be read or parsed.
    """
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = json.load(f)
    except (OSError, ValueError) as e:
        print(f"[WARNING] Failed to load JSON config from {config_path}: {e}")
        print("[INFO] Using default AppSettings configuration")
        return AppSettings()

    resolved_data = _resolve_env_vars(config_data)
    settings = AppSettings()

    if 'version' in resolved_data:
        settings.version = str(resolved_data['version'])

    # Map server configuration
    if 'server' in resolved_data:
        server_config = resolved_data['server']
        if 'host' in server_config:
            settings.server.host = server_config['host']
        if 'port' in server_config and server_config['port'] != "":
            settings.server.port = int(server_config['port'])
        if 'cors_origins' in server_config:
            settings.server.cors_origins = list(server_config['cors_origins'])

    # Map relay configuration
    if 'relay' in resolved_data:
        relay_config = resolved_data['relay']
        if 'spawn' in relay_config:
            spawn = relay_config['spawn']
            settings.relay.spawn_x = float(spawn.get('x', settings.relay.spawn_x))
            settings.relay.spawn_y = float(spawn.get('y', settings.relay.spawn_y))
        if 'movement_epsilon' in relay_config:
            settings.relay.movement_epsilon = float(relay_config['movement_epsilon'])
        if relay_config.get('player_colors'):
            settings.relay.player_colors = list(relay_config['player_colors'])
        if relay_config.get('player_emojis'):
            settings.relay.player_emojis = list(relay_config['player_emojis'])
        if 'duplicate_id_policy' in relay_config:
            policy = str(relay_config['duplicate_id_policy']).lower()
            if policy in {p.value for p in DuplicateIdPolicy}:
                settings.relay.duplicate_id_policy = DuplicateIdPolicy(policy)

    # Map logging configuration
    if 'logging' in resolved_data:
        logging_config = resolved_data['logging']

        json_level = str(logging_config.get('level', 'INFO')).upper()
        if json_level in LogLevel.__members__:
            settings.logging.level = LogLevel[json_level]

        if 'console_enabled' in logging_config:
            settings.logging.console_enabled = bool(logging_config['console_enabled'])
        if 'structured' in logging_config:
            settings.logging.structured_logging = bool(logging_config['structured'])

        # A file path switches file logging on and sets the directory
        if 'file' in logging_config:
            log_path = Path(logging_config['file'])
            settings.logging.file_enabled = True
            settings.logging.log_dir = str(log_path.parent)

    return settings


def get_settings_from_working_directory() -> AppSettings:
    """
    Load settings from config.json relative to the current working directory.

    Returns:
        Configured AppSettings instance
    """
    possible_paths = [
        "config/config.json",
        "../config/config.json",
    ]

    for config_path in possible_paths:
        if Path(config_path).exists():
            return load_app_settings_from_json(config_path)

    return AppSettings()
