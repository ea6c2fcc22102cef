"""
Now-playing state and the diff/full reconciliation rules.

A field missing from a diff record keeps its value; a field missing from
a full record resets to its zero value.  ``NowPlayingUpdate`` carries the
present/absent distinction explicitly so ``reconcile`` never has to look
at raw JSON.
"""

import base64
import binascii
import dataclasses
import math
from dataclasses import dataclass
from typing import Any, FrozenSet, Optional, Union

from .adapter.protocol import StreamRecord

# Elapsed-time changes at or below this (seconds) are playback progression
ELAPSED_JITTER = 1.0

FIELDS = (
    "title",
    "artist",
    "is_playing",
    "artwork",
    "duration",
    "elapsed_time",
    "source_app_id",
)


class _Absent:
    """Marks a field the record did not carry."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT: Any = _Absent()


@dataclass
class NowPlayingState:
    title: str = ""
    artist: str = ""
    is_playing: bool = False
    artwork: Optional[bytes] = None
    duration: float = 0.0
    elapsed_time: float = 0.0
    source_app_id: str = ""

    def snapshot(self) -> "NowPlayingState":
        """Return an independent copy for readers."""
        return dataclasses.replace(self)

    @classmethod
    def from_update(cls, update: "NowPlayingUpdate") -> "NowPlayingState":
        """Build a state holding exactly the update's present fields."""
        state = cls()
        for name in FIELDS:
            value = getattr(update, name)
            if value is not ABSENT:
                setattr(state, name, value)
        return state

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "artist": self.artist,
            "is_playing": self.is_playing,
            "artwork_bytes": len(self.artwork) if self.artwork is not None else None,
            "duration": self.duration,
            "elapsed_time": self.elapsed_time,
            "source_app_id": self.source_app_id,
        }


@dataclass(frozen=True)
class NowPlayingUpdate:
    """Typed partial update; each field is a value or ``ABSENT``."""

    title: Any = ABSENT
    artist: Any = ABSENT
    is_playing: Any = ABSENT
    artwork: Any = ABSENT
    duration: Any = ABSENT
    elapsed_time: Any = ABSENT
    source_app_id: Any = ABSENT

    def present(self) -> FrozenSet[str]:
        return frozenset(name for name in FIELDS if getattr(self, name) is not ABSENT)

    @classmethod
    def from_payload(cls, payload: dict) -> "NowPlayingUpdate":
        """Coerce an adapter payload. Wrongly typed values count as absent."""
        title = payload.get("title")
        artist = payload.get("artist")
        playing = payload.get("playing")
        bundle = payload.get("parentApplicationBundleIdentifier")
        if not isinstance(bundle, str):
            bundle = payload.get("bundleIdentifier")
        artwork = payload.get("artworkData")

        return cls(
            title=title if isinstance(title, str) and title else ABSENT,
            artist=artist if isinstance(artist, str) else ABSENT,
            is_playing=playing if isinstance(playing, bool) else ABSENT,
            artwork=_decode_artwork(artwork) if isinstance(artwork, str) else ABSENT,
            duration=_seconds(payload.get("duration")),
            elapsed_time=_seconds(payload.get("elapsedTime")),
            source_app_id=bundle if isinstance(bundle, str) else ABSENT,
        )


def _seconds(value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return ABSENT
    value = float(value)
    if math.isnan(value):
        return ABSENT
    return max(0.0, value)


def _decode_artwork(data: str) -> Optional[bytes]:
    try:
        return base64.b64decode(data.strip(), validate=True)
    except (binascii.Error, ValueError):
        return None


_ZERO = NowPlayingState()


def reconcile(
    update: Union[StreamRecord, NowPlayingUpdate],
    state: NowPlayingState,
    is_diff: Optional[bool] = None,
) -> FrozenSet[str]:
    """Merge ``update`` into ``state`` in place.

    Returns the names of the fields whose value actually changed; an empty
    set means observers need not be told.
    """
    if isinstance(update, StreamRecord):
        if is_diff is None:
            is_diff = update.is_diff
        update = NowPlayingUpdate.from_payload(update.payload)
    elif is_diff is None:
        is_diff = False

    changed = set()
    for name in FIELDS:
        new = getattr(update, name)
        if new is ABSENT:
            if is_diff:
                continue
            new = getattr(_ZERO, name)
        current = getattr(state, name)

        if name == "elapsed_time":
            if update.elapsed_time is not ABSENT and abs(new - current) <= ELAPSED_JITTER:
                continue
            if new == current:
                continue
        elif new == current:
            continue

        setattr(state, name, new)
        changed.add(name)
    return frozenset(changed)


def format_time(seconds: float) -> str:
    """Format seconds as ``m:ss``."""
    if not isinstance(seconds, (int, float)) or not math.isfinite(seconds) or seconds < 0:
        return "0:00"
    total = int(seconds)
    return f"{total // 60}:{total % 60:02d}"
