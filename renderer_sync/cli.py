"""
RendererSync CLI entry point.

Provides command-line interface for running RendererSync.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

from renderer_sync import __version__
from renderer_sync.app import RendererSync
from renderer_sync.config import Config, ConfigError, load_config
from renderer_sync.upnp import DescriptionError, SubscriptionError

logger = logging.getLogger(__name__)

# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_NETWORK_ERROR = 3


def setup_logging(level: str = "info") -> None:
    """Configure logging to stdout."""
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
        force=True,
    )


def parse_args(argv: Any = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="renderer-sync",
        description="Mirror the playback state of a UPnP media renderer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  renderer-sync --location http://192.168.1.50:1400/xml/device_description.xml
  renderer-sync --config config.yaml --log-level debug

Environment Variables:
  RENDERERSYNC_LOCATION, RENDERERSYNC_UUID, RENDERERSYNC_ROOM
  RENDERERSYNC_LISTEN_HOST, RENDERERSYNC_LISTEN_PORT, RENDERERSYNC_ADVERTISE_HOST
  RENDERERSYNC_SUBSCRIPTION_TIMEOUT, RENDERERSYNC_LOG_LEVEL
""",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    # Configuration
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("./config.yaml"),
        metavar="PATH",
        help="Path to config file (default: ./config.yaml)",
    )

    # Device
    device_group = parser.add_argument_group("Device")
    device_group.add_argument(
        "--location",
        metavar="URL",
        help="Device description URL of the renderer",
    )
    device_group.add_argument(
        "--uuid",
        metavar="TEXT",
        help="Device UUID (read from the device if omitted)",
    )
    device_group.add_argument(
        "--room",
        metavar="TEXT",
        help="Room name (read from the device if omitted)",
    )

    # Listener
    listener_group = parser.add_argument_group("Listener")
    listener_group.add_argument(
        "--listen-host",
        metavar="TEXT",
        help="Notification listener bind address (default: 0.0.0.0)",
    )
    listener_group.add_argument(
        "--listen-port",
        type=int,
        metavar="INT",
        help="Notification listener port (default: 3500)",
    )
    listener_group.add_argument(
        "--advertise-host",
        metavar="TEXT",
        help="Host the renderer should send notifications to (default: local IP)",
    )
    listener_group.add_argument(
        "--subscription-timeout",
        type=int,
        metavar="SECONDS",
        help="Requested event subscription timeout (default: 600)",
    )

    # Logging
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        metavar="LEVEL",
        help="Log level: debug, info, warning, error",
    )

    return parser.parse_args(argv)


def _set_nested(d: dict, path: tuple, value: Any) -> None:
    """Set a nested dictionary value."""
    for key in path[:-1]:
        d = d.setdefault(key, {})
    d[path[-1]] = value


def args_to_dict(args: argparse.Namespace) -> dict:
    """Convert argparse namespace to nested config dict."""
    result: dict = {}

    mappings = {
        "location": ("device", "location"),
        "uuid": ("device", "uuid"),
        "room": ("device", "room"),
        "listen_host": ("listener", "host"),
        "listen_port": ("listener", "port"),
        "advertise_host": ("listener", "advertise_host"),
        "subscription_timeout": ("subscription", "timeout"),
        "log_level": ("logging", "level"),
    }

    for arg_name, path in mappings.items():
        value = getattr(args, arg_name, None)
        if value is None:
            continue
        _set_nested(result, path, value)

    return result


def log_config(config: Config) -> None:
    """Log configuration summary."""
    logger.info(f"Device: {config.device.location}")
    logger.info(f"Listener: {config.listener.host}:{config.listener.port}")
    logger.info(f"Subscription timeout: {config.subscription.timeout}s")


def run_sync(args: argparse.Namespace) -> int:
    """
    Run the state mirror until interrupted.

    Args:
        args: Parsed arguments

    Returns:
        Exit code
    """
    # Basic logging first, reconfigured after config load
    setup_logging("info")

    logger.info(f"RendererSync v{__version__}")

    try:
        cli_config = args_to_dict(args)
        config = load_config(args.config, cli_config)

        setup_logging(config.logging.level)

        log_config(config)

    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR

    try:
        app = RendererSync(config)
        asyncio.run(app.run())
        return EXIT_SUCCESS

    except (DescriptionError, SubscriptionError) as e:
        logger.error(f"Device error: {e}")
        return EXIT_NETWORK_ERROR

    except (ConnectionError, OSError) as e:
        logger.error(f"Network error: {e}")
        return EXIT_NETWORK_ERROR

    except KeyboardInterrupt:
        logger.info("Interrupted")
        return EXIT_SUCCESS


def main() -> int:
    """
    Main entry point.

    Returns:
        Exit code: 0=success, 1=config error, 3=network error
    """
    return run_sync(parse_args())


if __name__ == "__main__":
    sys.exit(main())
