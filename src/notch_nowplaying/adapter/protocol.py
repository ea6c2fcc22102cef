"""
Line protocol spoken by ``mediaremote-adapter``.

In ``stream`` mode the adapter writes newline-delimited JSON envelopes to
stdout::

    {"diff": true, "payload": {"title": "...", "playing": false}}

A missing ``diff`` means the record is a full snapshot.  In ``get`` mode
the adapter prints a single payload (or ``null``) and exits.
"""

import codecs
import json
import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional, Union

logger = logging.getLogger(__name__)

# Mode tokens (first argument after the framework path)
STREAM = "stream"
GET = "get"
SEND = "send"
SEEK = "seek"

DEFAULT_DEBOUNCE_MS = 50
DEFAULT_MAX_BUFFER = 1 << 20  # characters


class Command(IntEnum):
    """MediaRemote command codes accepted by ``send`` mode."""

    PLAY = 0
    PAUSE = 1
    TOGGLE_PLAY_PAUSE = 2
    NEXT_TRACK = 4
    PREVIOUS_TRACK = 5


def debounce_flag(milliseconds: int) -> str:
    return f"--debounce={int(milliseconds)}"


@dataclass(frozen=True)
class StreamRecord:
    """One decoded stream line.  Discarded right after reconciliation."""

    is_diff: bool
    payload: dict = field(default_factory=dict)


class LineFramer:
    """Reassembles newline-terminated records from arbitrary chunks.

    Partial trailing data is kept until its newline arrives.  When an
    unterminated line grows beyond ``max_buffer`` characters the buffer is
    dropped and everything up to the next newline is skipped (resync).
    """

    def __init__(self, max_buffer: Optional[int] = DEFAULT_MAX_BUFFER):
        self._max_buffer = max_buffer
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._resyncing = False

    @property
    def pending(self) -> int:
        return len(self._buffer)

    @property
    def resyncing(self) -> bool:
        return self._resyncing

    def reset(self) -> None:
        self._decoder.reset()
        self._buffer = ""
        self._resyncing = False

    def feed(self, data: Union[bytes, str]) -> List[str]:
        """Append a chunk and return every line it completed, in order."""
        if isinstance(data, bytes):
            data = self._decoder.decode(data)
        self._buffer += data

        lines = []
        while True:
            idx = self._buffer.find("\n")
            if idx < 0:
                break
            line = self._buffer[:idx]
            self._buffer = self._buffer[idx + 1:]

            if self._resyncing:
                # Tail of an oversized line
                self._resyncing = False
                continue

            line = line.rstrip("\r")
            if line:
                lines.append(line)

        if self._max_buffer is not None and len(self._buffer) > self._max_buffer:
            if not self._resyncing:
                logger.warning(
                    "Discarding %d buffered characters without a newline "
                    "(limit %d), resyncing at next line",
                    len(self._buffer), self._max_buffer,
                )
            self._buffer = ""
            self._resyncing = True

        return lines


def decode_line(line: str) -> Optional[StreamRecord]:
    """Decode one stream line.  Returns None for anything malformed."""
    try:
        obj = json.loads(line)
    except ValueError:
        logger.debug("Dropping non-JSON line: %.200s", line)
        return None

    if not isinstance(obj, dict):
        logger.debug("Dropping non-object line: %.200s", line)
        return None

    payload = obj.get("payload")
    if not isinstance(payload, dict):
        logger.debug("Dropping line without payload: %.200s", line)
        return None

    is_diff = obj.get("diff", False)
    return StreamRecord(is_diff=is_diff is True, payload=payload)


def decode_snapshot(text: str) -> Optional[StreamRecord]:
    """Decode the output of ``get`` mode as a full record.

    Accepts an envelope or a bare payload; ``null`` means nothing is
    playing and yields an empty full record.
    """
    text = text.strip()
    if not text:
        return None
    try:
        obj = json.loads(text)
    except ValueError:
        logger.debug("Dropping malformed snapshot: %.200s", text)
        return None

    if obj is None:
        return StreamRecord(is_diff=False, payload={})
    if not isinstance(obj, dict):
        return None

    payload = obj.get("payload", obj)
    if not isinstance(payload, dict):
        return None
    return StreamRecord(is_diff=False, payload=payload)
