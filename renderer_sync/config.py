"""
RendererSync Configuration System.

Priority order (highest to lowest):
1. Command-line arguments
2. Environment variables
3. Configuration file (YAML)
4. Default values
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

import yaml

logger = logging.getLogger(__name__)


# Valid log levels
VALID_LOG_LEVELS = {"debug", "info", "warning", "error"}

# Environment variable mappings
ENV_MAPPINGS = {
    # Device
    "RENDERERSYNC_LOCATION": ("device", "location"),
    "RENDERERSYNC_UUID": ("device", "uuid"),
    "RENDERERSYNC_ROOM": ("device", "room"),
    # Listener
    "RENDERERSYNC_LISTEN_HOST": ("listener", "host"),
    "RENDERERSYNC_LISTEN_PORT": ("listener", "port"),
    "RENDERERSYNC_ADVERTISE_HOST": ("listener", "advertise_host"),
    # Subscription
    "RENDERERSYNC_SUBSCRIPTION_TIMEOUT": ("subscription", "timeout"),
    # Logging
    "RENDERERSYNC_LOG_LEVEL": ("logging", "level"),
}

INTEGER_ENV_VARS = {"RENDERERSYNC_LISTEN_PORT", "RENDERERSYNC_SUBSCRIPTION_TIMEOUT"}


class ConfigError(Exception):
    """Configuration error."""

    pass


@dataclass
class DeviceConfig:
    """Renderer to mirror."""

    location: str = ""  # Device description URL
    uuid: str = ""  # Read from the description if empty
    room: str = ""  # Read from the description if empty


@dataclass
class ListenerConfig:
    """Notification listener configuration."""

    host: str = "0.0.0.0"
    port: int = 3500
    advertise_host: str = ""  # Host used in callback URLs, local IP if empty


@dataclass
class SubscriptionConfig:
    """Event subscription configuration."""

    timeout: int = 600  # Requested subscription timeout in seconds


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class Config:
    """Complete RendererSync configuration."""

    device: DeviceConfig = field(default_factory=DeviceConfig)
    listener: ListenerConfig = field(default_factory=ListenerConfig)
    subscription: SubscriptionConfig = field(default_factory=SubscriptionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def validate_location(location: str) -> bool:
    """Validate a device description URL."""
    uri = urlparse(location)
    return uri.scheme in ("http", "https") and bool(uri.netloc)


def validate_port(port: int) -> bool:
    """Validate port number."""
    return 1 <= port <= 65535


def validate_config(config: Config) -> None:
    """
    Validate configuration.

    Raises:
        ConfigError: If configuration is invalid
    """
    errors = []

    # Device
    if not config.device.location:
        errors.append("Device location is required")
    elif not validate_location(config.device.location):
        errors.append(f"Invalid device location: {config.device.location}")

    # Listener
    if not validate_port(config.listener.port):
        errors.append(f"Invalid listener port: {config.listener.port}")

    # Subscription
    if config.subscription.timeout <= 0:
        errors.append(f"Invalid subscription timeout: {config.subscription.timeout}")

    # Logging
    if config.logging.level.lower() not in VALID_LOG_LEVELS:
        errors.append(
            f"Invalid log level: {config.logging.level}. "
            f"Valid values: {sorted(VALID_LOG_LEVELS)}"
        )

    if errors:
        raise ConfigError("Configuration validation failed:\n  - " + "\n  - ".join(errors))


def load_yaml_config(path: Path) -> dict:
    """
    Load configuration from YAML file.

    Args:
        path: Path to YAML file

    Returns:
        Configuration dictionary

    Raises:
        ConfigError: If file cannot be read or parsed
    """
    if not path.exists():
        logger.debug(f"Config file not found: {path}")
        return {}

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
            return data if data else {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing YAML config: {e}")
    except IOError as e:
        raise ConfigError(f"Error reading config file: {e}")


def _set_nested(d: dict, path: tuple, value: Any) -> None:
    """Set a nested dictionary value using a path tuple."""
    for key in path[:-1]:
        d = d.setdefault(key, {})
    d[path[-1]] = value


def load_env_config() -> dict:
    """
    Load configuration from environment variables.

    Returns:
        Configuration dictionary with values from environment
    """
    result: dict = {}

    for env_var, path in ENV_MAPPINGS.items():
        value: Any = os.environ.get(env_var)
        if value is None:
            continue

        if env_var in INTEGER_ENV_VARS:
            try:
                value = int(value)
            except ValueError:
                logger.warning(f"Invalid integer for {env_var}: {value}")
                continue

        _set_nested(result, path, value)

    return result


def _deep_merge(base: dict, override: dict) -> None:
    """Recursively merge override into base."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


def merge_configs(*configs: dict) -> dict:
    """
    Deep merge multiple configuration dictionaries.
    Later configs override earlier ones.
    """
    result: dict = {}
    for config in configs:
        _deep_merge(result, config)
    return result


def dict_to_config(d: dict) -> Config:
    """Convert a dictionary to Config dataclass."""
    config = Config()

    # Device
    if "device" in d:
        dev = d["device"]
        config.device.location = dev.get("location", config.device.location)
        config.device.uuid = dev.get("uuid", config.device.uuid)
        config.device.room = dev.get("room", config.device.room)

    # Listener
    if "listener" in d:
        lst = d["listener"]
        config.listener.host = lst.get("host", config.listener.host)
        config.listener.port = lst.get("port", config.listener.port)
        config.listener.advertise_host = lst.get("advertise_host", config.listener.advertise_host)

    # Subscription
    if "subscription" in d:
        config.subscription.timeout = d["subscription"].get(
            "timeout", config.subscription.timeout
        )

    # Logging
    if "logging" in d:
        config.logging.level = d["logging"].get("level", config.logging.level)

    return config


def load_config(
    config_path: Optional[Path] = None,
    cli_args: Optional[dict] = None,
) -> Config:
    """
    Load configuration from all sources.

    Priority (highest to lowest):
    1. CLI arguments
    2. Environment variables
    3. Config file
    4. Defaults

    Args:
        config_path: Path to YAML config file
        cli_args: Dictionary of CLI arguments

    Returns:
        Merged Config object

    Raises:
        ConfigError: If configuration is invalid
    """
    configs = []

    if config_path:
        file_config = load_yaml_config(config_path)
        if file_config:
            configs.append(file_config)
            logger.debug(f"Loaded config from {config_path}")

    env_config = load_env_config()
    if env_config:
        configs.append(env_config)
        logger.debug("Loaded config from environment variables")

    if cli_args:
        configs.append(cli_args)
        logger.debug("Loaded config from CLI arguments")

    merged = merge_configs(*configs) if configs else {}

    # Defaults come from the dataclasses
    config = dict_to_config(merged)

    validate_config(config)

    return config
