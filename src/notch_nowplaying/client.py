"""
NowPlayingClient — the public face of the now-playing integration.

Composes the streaming adapter process, the line framer, the payload
decoder and the reconciler behind one state/control surface.  Construct
it explicitly and hand it to whatever needs it; there is no global
instance.

Threading:
  - adapter reader thread: framing and decoding, then ``dispatcher.post``
  - dispatcher context: the only writer of state, the only notifier
  - control calls: block the caller until the one-shot adapter exits
"""

import functools
import logging
import threading
import weakref
from enum import Enum
from typing import Callable, FrozenSet, List, Optional

from .adapter.commands import CommandDispatcher
from .adapter.locator import AdapterPaths
from .adapter.process_manager import StreamProcess
from .adapter.protocol import Command, LineFramer, StreamRecord, decode_line
from .config import ClientConfig
from .dispatch import Dispatcher, ThreadDispatcher
from .exceptions import AdapterLaunchError, AdapterNotFoundError
from .state import NowPlayingState, reconcile

logger = logging.getLogger(__name__)

Observer = Callable[[NowPlayingState, FrozenSet[str]], None]

# Reported to observers when the adapter is gone for good
AVAILABLE = "available"


class ClientStatus(str, Enum):
    INACTIVE = "inactive"
    STREAMING = "streaming"
    UNAVAILABLE = "unavailable"


class NowPlayingClient:
    """Streams now-playing state from ``mediaremote-adapter`` and controls playback.

    Raises AdapterLaunchError if the adapter cannot be found or started;
    use ``NowPlayingClient.create`` to get None instead.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        dispatcher: Optional[Dispatcher] = None,
        paths: Optional[AdapterPaths] = None,
        refresh_on_start: bool = True,
    ):
        self._config = config or ClientConfig()
        self._state = NowPlayingState()
        self._published = self._state.snapshot()
        self._observers: List[Observer] = []
        self._observers_lock = threading.Lock()
        self._lifecycle_lock = threading.Lock()
        self._status = ClientStatus.INACTIVE
        self._stream: Optional[StreamProcess] = None
        self._generation = 0
        self._restarts = 0
        self._closed = False

        self._owns_dispatcher = dispatcher is None
        if dispatcher is None:
            dispatcher = ThreadDispatcher()
            dispatcher.start()
        self._dispatcher = dispatcher

        try:
            self._paths = paths or AdapterPaths.from_config(self._config)
        except AdapterNotFoundError as exc:
            self._release_dispatcher()
            raise AdapterLaunchError(str(exc)) from exc

        self._commands = CommandDispatcher(self._paths, timeout=self._config.command_timeout)
        self._framer = LineFramer(max_buffer=self._config.max_line_buffer)

        with self._lifecycle_lock:
            launched = self._launch_locked()
        if not launched:
            self._release_dispatcher()
            raise AdapterLaunchError(
                f"Failed to launch adapter: {' '.join(self._paths.command('stream'))}"
            )
        self._status = ClientStatus.STREAMING
        logger.info("Now-playing client streaming")

        if refresh_on_start:
            threading.Thread(
                target=self.refresh, daemon=True, name="nowplaying-refresh",
            ).start()

    @classmethod
    def create(cls, *args, **kwargs) -> Optional["NowPlayingClient"]:
        """Like the constructor, but returns None when the adapter is unavailable."""
        try:
            return cls(*args, **kwargs)
        except AdapterLaunchError as exc:
            logger.warning("Now-playing unavailable: %s", exc)
            return None

    # -- State -------------------------------------------------------------

    @property
    def state(self) -> NowPlayingState:
        """Consistent copy of the latest published state."""
        return self._published.snapshot()

    @property
    def status(self) -> ClientStatus:
        return self._status

    @property
    def available(self) -> bool:
        return self._status is ClientStatus.STREAMING

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register ``observer(state, changed)``. Returns an unsubscribe function.

        Observers run on the dispatcher context and only when something
        actually changed.
        """
        with self._observers_lock:
            self._observers.append(observer)

        def unsubscribe() -> None:
            with self._observers_lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    # -- Control -----------------------------------------------------------

    def play(self) -> bool:
        return self._commands.dispatch(Command.PLAY)

    def pause(self) -> bool:
        return self._commands.dispatch(Command.PAUSE)

    def toggle(self) -> bool:
        return self._commands.dispatch(Command.TOGGLE_PLAY_PAUSE)

    def next(self) -> bool:
        return self._commands.dispatch(Command.NEXT_TRACK)

    def previous(self) -> bool:
        return self._commands.dispatch(Command.PREVIOUS_TRACK)

    def seek(self, seconds: float) -> bool:
        return self._commands.seek(seconds)

    def refresh(self) -> bool:
        """Fetch a full snapshot with a one-shot ``get`` and apply it."""
        record = self._commands.get()
        if record is None:
            return False
        self._dispatcher.post(functools.partial(self._apply, record))
        return True

    # -- Lifecycle ---------------------------------------------------------

    def close(self) -> None:
        """Stop the adapter. Safe to call more than once."""
        with self._lifecycle_lock:
            if self._closed:
                return
            self._closed = True
            stream = self._stream
            self._stream = None
            self._status = ClientStatus.INACTIVE

        if stream is not None:
            stream.stop()
        self._release_dispatcher()
        logger.info("Now-playing client closed")

    def __enter__(self) -> "NowPlayingClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __del__(self):
        try:
            self.close()
        except Exception:
            pass

    # -- Internal helpers --------------------------------------------------

    def _launch_locked(self) -> bool:
        """Start a fresh StreamProcess (caller must hold _lifecycle_lock)."""
        self._generation += 1
        generation = self._generation
        self._framer.reset()

        # The reader thread must not keep the client alive, or __del__ never
        # stops the adapter.
        client_ref = weakref.ref(self)

        def on_chunk(chunk: bytes) -> None:
            client = client_ref()
            if client is not None:
                client._on_chunk(chunk)

        def on_exit(returncode: Optional[int]) -> None:
            client = client_ref()
            if client is not None:
                client._dispatcher.post(
                    functools.partial(client._handle_exit, generation, returncode)
                )

        stream = StreamProcess(
            self._paths,
            on_chunk=on_chunk,
            on_exit=on_exit,
            debounce_ms=self._config.debounce_ms,
            stop_timeout=self._config.stop_timeout,
        )
        if not stream.start():
            return False
        self._stream = stream
        return True

    def _on_chunk(self, chunk: bytes) -> None:
        """Reader thread: frame and decode, then hand off."""
        for line in self._framer.feed(chunk):
            record = decode_line(line)
            if record is not None:
                self._dispatcher.post(functools.partial(self._apply, record))

    def _apply(self, record: StreamRecord) -> None:
        """Dispatcher context: the single writer of ``_state``."""
        changed = reconcile(record, self._state)
        if changed:
            self._published = self._state.snapshot()
            self._notify(changed)

    def _notify(self, changed: FrozenSet[str]) -> None:
        with self._observers_lock:
            observers = list(self._observers)
        snapshot = self._published
        for observer in observers:
            try:
                observer(snapshot.snapshot(), changed)
            except Exception:
                logger.exception("Now-playing observer failed")

    def _handle_exit(self, generation: int, returncode: Optional[int]) -> None:
        """Dispatcher context: the adapter died without being asked to."""
        with self._lifecycle_lock:
            if self._closed or generation != self._generation:
                return
            self._stream = None

            while self._restarts < self._config.max_restarts:
                self._restarts += 1
                logger.warning(
                    "Relaunching adapter after exit code %s (%d/%d)",
                    returncode, self._restarts, self._config.max_restarts,
                )
                if self._launch_locked():
                    return

            logger.warning("Adapter gone; now-playing state will no longer update")
            self._status = ClientStatus.UNAVAILABLE

        self._notify(frozenset({AVAILABLE}))

    def _release_dispatcher(self) -> None:
        if self._owns_dispatcher and isinstance(self._dispatcher, ThreadDispatcher):
            self._dispatcher.stop()
