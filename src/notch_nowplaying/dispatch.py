"""
Hand-off from the adapter reader thread to the state-owning context.

The reader thread only ever calls ``post``.  Whatever thread runs the
posted callables is the single writer of ``NowPlayingState`` and the only
place observers are notified.

Architecture:
  - ``QueueDispatcher``: callers drain the queue themselves (e.g. from a
    UI event loop tick).
  - ``ThreadDispatcher``: a dedicated thread drains the queue.
  - ``notch_nowplaying.qt.QtDispatcher``: the Qt GUI thread runs them.
"""

import logging
import queue
import threading
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)

Task = Callable[[], None]

_STOP = object()


class Dispatcher(Protocol):
    def post(self, fn: Task) -> None:
        ...


class QueueDispatcher:
    """Thread-safe FIFO of callables, run by whoever calls ``drain``."""

    def __init__(self):
        self._queue: queue.Queue = queue.Queue()

    def post(self, fn: Task) -> None:
        """Queue ``fn``. Safe from any thread."""
        self._queue.put(fn)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def drain(self, max_items: Optional[int] = None) -> int:
        """Run queued callables on the calling thread. Returns how many ran."""
        ran = 0
        while max_items is None or ran < max_items:
            try:
                fn = self._queue.get_nowait()
            except queue.Empty:
                break
            if fn is _STOP:
                continue
            self._run(fn)
            ran += 1
        return ran

    def _run(self, fn: Task) -> None:
        try:
            fn()
        except Exception:
            logger.exception("Dispatched task failed")


class ThreadDispatcher(QueueDispatcher):
    """Runs posted callables, in order, on one dedicated thread.

    Callables posted before ``start`` wait for it; callables posted after
    ``stop`` are dropped.
    """

    def __init__(self, name: str = "nowplaying-state"):
        super().__init__()
        self._name = name
        self._thread: Optional[threading.Thread] = None
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def in_context(self) -> bool:
        return self._thread is threading.current_thread()

    def post(self, fn: Task) -> None:
        if self._stopped:
            logger.debug("Dispatcher stopped, dropping %r", fn)
            return
        super().post(fn)

    def start(self) -> None:
        if self.running:
            return
        self._stopped = False
        self._thread = threading.Thread(target=self._loop, daemon=True, name=self._name)
        self._thread.start()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Run what is already queued, then stop the thread."""
        thread = self._thread
        if thread is None:
            return
        self._stopped = True
        self._queue.put(_STOP)
        if thread is not threading.current_thread():
            thread.join(timeout=timeout)
        self._thread = None

    def _loop(self) -> None:
        while True:
            fn = self._queue.get()
            if fn is _STOP:
                break
            self._run(fn)
