"""
notch-nowplaying: system now-playing synchronization for desktop overlays.

Quick start:
    from notch_nowplaying import NowPlayingClient

    client = NowPlayingClient.create()
    if client is not None:
        client.subscribe(lambda state, changed: print(state.title, changed))
        client.toggle()

Qt applications pass a ``notch_nowplaying.qt.QtDispatcher`` so observers
run on the GUI thread.
"""

__version__ = "0.1.0"

from .adapter import AdapterPaths, Command, CommandDispatcher, LineFramer, StreamProcess
from .client import ClientStatus, NowPlayingClient
from .config import ClientConfig, load_config, save_config
from .dispatch import QueueDispatcher, ThreadDispatcher
from .exceptions import AdapterLaunchError, AdapterNotFoundError, NowPlayingError
from .state import NowPlayingState, NowPlayingUpdate, format_time, reconcile

__all__ = [
    "AdapterLaunchError",
    "AdapterNotFoundError",
    "AdapterPaths",
    "ClientConfig",
    "ClientStatus",
    "Command",
    "CommandDispatcher",
    "LineFramer",
    "NowPlayingClient",
    "NowPlayingError",
    "NowPlayingState",
    "NowPlayingUpdate",
    "QueueDispatcher",
    "StreamProcess",
    "ThreadDispatcher",
    "__version__",
    "format_time",
    "load_config",
    "reconcile",
    "save_config",
]
