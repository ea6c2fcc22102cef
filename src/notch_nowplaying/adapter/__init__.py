"""
Process-level integration with ``mediaremote-adapter``.

``StreamProcess`` supervises the long-running ``stream`` mode helper;
``CommandDispatcher`` issues one-shot control invocations.
"""

from .commands import CommandDispatcher
from .locator import AdapterPaths
from .process_manager import StreamProcess
from .protocol import Command, LineFramer, StreamRecord, decode_line, decode_snapshot

__all__ = [
    "AdapterPaths",
    "Command",
    "CommandDispatcher",
    "LineFramer",
    "StreamProcess",
    "StreamRecord",
    "decode_line",
    "decode_snapshot",
]
