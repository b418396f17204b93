"""
Configuration loading and management for the shop dashboard engine.

This module provides utilities for loading, validating, and managing
configuration settings.
"""

import logging
import os
from pathlib import Path

from pydantic import ValidationError

from shop_dashboard.config.models import DashboardConfig
from shop_dashboard.shared.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "SHOP_DASHBOARD_"


def load_config(
    config_path: str | Path | None = None, config_name: str = "dashboard.json"
) -> DashboardConfig:
    """
    Load configuration from file with path resolution.

    Args:
        config_path: Explicit path to config file or directory containing config
        config_name: Name of config file (default: "dashboard.json")

    Returns:
        DashboardConfig: Loaded and validated configuration

    Raises:
        FileNotFoundError: If no configuration file is found
        ConfigurationError: If configuration is invalid
    """
    if config_path is None:
        search_paths = [
            Path.cwd() / config_name,
            Path.cwd() / "config" / config_name,
        ]

        for path in search_paths:
            if path.exists():
                config_path = path
                break
        else:
            raise FileNotFoundError(
                f"Configuration file '{config_name}' not found in any of: "
                f"{[str(p) for p in search_paths]}"
            )

    config_path = Path(config_path)

    if config_path.is_dir():
        config_path = config_path / config_name

    try:
        return DashboardConfig.from_file(config_path)
    except (ValueError, ValidationError) as e:
        raise ConfigurationError("invalid configuration", config_path, e)


def get_config_from_env() -> DashboardConfig | None:
    """
    Try to load configuration from environment variables.

    Returns:
        DashboardConfig if any relevant environment variable is set, None otherwise
    """
    config_file_env = os.getenv(f"{ENV_PREFIX}CONFIG_FILE")
    if config_file_env:
        return load_config(config_file_env)

    env_vars = {
        f"{ENV_PREFIX}TIMEZONE": ("analytics", "timezone", str),
        f"{ENV_PREFIX}LEADERBOARD_SIZE": ("analytics", "leaderboard_size", int),
        f"{ENV_PREFIX}WALK_IN_LABEL": ("analytics", "walk_in_label", str),
        f"{ENV_PREFIX}ALLOW_BANNER_DISMISSAL": ("banner", "allow_banner_dismissal", _parse_bool),
        f"{ENV_PREFIX}BANNER_DISMISSAL_DURATION_MS": ("banner", "banner_dismissal_duration_ms", int),
        f"{ENV_PREFIX}SNOOZE_DURATION_MS": ("banner", "snooze_duration_ms", int),
        f"{ENV_PREFIX}TICK_INTERVAL_SECONDS": ("banner", "tick_interval_seconds", float),
        f"{ENV_PREFIX}LOG_LEVEL": ("logging", "level", str),
        f"{ENV_PREFIX}STORE_PATH": (None, "store_path", str),
    }

    env_values = {key: os.getenv(key) for key in env_vars}
    if not any(env_values.values()):
        return None

    config_data: dict = {}
    try:
        for env_key, (section, field, parse) in env_vars.items():
            raw = env_values[env_key]
            if raw is None or raw == "":
                continue
            if section is None:
                config_data[field] = parse(raw)
            else:
                config_data.setdefault(section, {})[field] = parse(raw)

        return DashboardConfig(**config_data)

    except (ValueError, TypeError, ValidationError) as e:
        raise ConfigurationError(f"Invalid environment variable configuration: {e}")


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Not a boolean: {value!r}")


def load_config_with_fallback(config_path: str | Path | None = None) -> DashboardConfig:
    """
    Load configuration with fallback to environment variables and defaults.

    Priority order:
    1. Explicit config file path
    2. Environment variable SHOP_DASHBOARD_CONFIG_FILE
    3. Individual SHOP_DASHBOARD_* environment variables
    4. Default locations (dashboard.json, config/dashboard.json)
    5. Built-in defaults

    Args:
        config_path: Optional explicit path to config file

    Returns:
        DashboardConfig: Loaded configuration
    """
    if config_path:
        try:
            return load_config(config_path)
        except FileNotFoundError:
            logger.warning(f"Config file {config_path} not found, trying other sources")

    env_config = get_config_from_env()
    if env_config:
        return env_config

    try:
        return load_config()
    except FileNotFoundError:
        pass

    logger.info("No configuration found, using built-in defaults")
    return DashboardConfig()
