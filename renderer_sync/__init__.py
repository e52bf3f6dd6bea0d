"""
RendererSync - UPnP media renderer state mirror.

Keeps a local copy of a renderer's playback state current from pushed
event notifications and sends playback commands.
"""

__version__ = "0.1.0"

from .app import RendererSync
from .config import Config, ConfigError, load_config
from .player import Player, PlayerState

__all__ = [
    "__version__",
    "RendererSync",
    "Config",
    "ConfigError",
    "load_config",
    "Player",
    "PlayerState",
]
