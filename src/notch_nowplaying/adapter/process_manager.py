"""
Manages the lifecycle of the long-running ``stream`` mode adapter.

The adapter's stdout and stderr share one pipe.  A daemon reader thread
forwards raw chunks to a callback; framing and decoding happen in the
caller.  A handle is single-use: once stopped (or exited) a new
``StreamProcess`` is required.
"""

import logging
import subprocess
import threading
from typing import Callable, Optional

from .locator import AdapterPaths
from .protocol import DEFAULT_DEBOUNCE_MS, STREAM, debounce_flag

logger = logging.getLogger(__name__)

CHUNK_SIZE = 4096

ChunkCallback = Callable[[bytes], None]
ExitCallback = Callable[[Optional[int]], None]


class StreamProcess:
    """Owns one streaming adapter process and its reader thread."""

    def __init__(
        self,
        paths: AdapterPaths,
        on_chunk: ChunkCallback,
        on_exit: Optional[ExitCallback] = None,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        stop_timeout: float = 5.0,
    ):
        self._paths = paths
        self._on_chunk: Optional[ChunkCallback] = on_chunk
        self._on_exit: Optional[ExitCallback] = on_exit
        self._debounce_ms = debounce_ms
        self._stop_timeout = stop_timeout
        self._proc: Optional[subprocess.Popen] = None
        self._reader_thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()  # Protects callbacks and _proc
        self._started = False
        self._stopping = False
        self._returncode: Optional[int] = None

    @property
    def alive(self) -> bool:
        proc = self._proc
        return proc is not None and proc.poll() is None

    @property
    def pid(self) -> Optional[int]:
        proc = self._proc
        return proc.pid if proc is not None else None

    @property
    def returncode(self) -> Optional[int]:
        return self._returncode

    def command(self) -> list:
        return self._paths.command(STREAM, debounce_flag(self._debounce_ms))

    def start(self) -> bool:
        """Spawn the adapter. Returns False if the OS refuses to launch it."""
        if self._started:
            raise RuntimeError("StreamProcess cannot be restarted; create a new one")
        self._started = True

        cmd = self.command()
        logger.debug("Starting adapter: %s", " ".join(cmd))
        try:
            self._proc = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except OSError as exc:
            logger.error("Failed to launch adapter: %s", exc)
            self._proc = None
            return False

        self._reader_thread = threading.Thread(
            target=self._read_output,
            args=(self._proc,),
            daemon=True,
            name="adapter-reader",
        )
        self._reader_thread.start()
        logger.info("Adapter streaming (pid %s)", self._proc.pid)
        return True

    def stop(self) -> None:
        """Detach callbacks, terminate, wait, release. Safe to call twice."""
        with self._lock:
            if self._stopping:
                return
            self._stopping = True
            # Detach first so no callback fires after teardown begins
            self._on_chunk = None
            self._on_exit = None
            proc = self._proc

        if proc is not None:
            if proc.poll() is None:
                try:
                    proc.terminate()
                    proc.wait(timeout=self._stop_timeout)
                except subprocess.TimeoutExpired:
                    logger.warning("Adapter did not exit after terminate, killing")
                    proc.kill()
                    proc.wait()
                except OSError:
                    logger.debug("Adapter already gone during stop")
            self._returncode = proc.returncode
            logger.info("Adapter stopped (exit code %s)", self._returncode)

        thread = self._reader_thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self._stop_timeout)

        with self._lock:
            self._proc = None
            self._reader_thread = None

    def _read_output(self, proc: subprocess.Popen) -> None:
        """Forward stdout chunks until EOF."""
        stream = proc.stdout
        try:
            while True:
                chunk = stream.read1(CHUNK_SIZE)
                if not chunk:
                    break
                with self._lock:
                    callback = self._on_chunk
                if callback is None:
                    break
                try:
                    callback(chunk)
                except Exception:
                    logger.exception("Chunk handler failed")
        except (OSError, ValueError) as exc:
            logger.debug("Adapter pipe closed: %s", exc)
        finally:
            try:
                stream.close()
            except OSError:
                pass

        with self._lock:
            if self._stopping:
                return
            on_exit = self._on_exit
            self._on_exit = None

        returncode = proc.wait()
        self._returncode = returncode
        logger.warning("Adapter exited unexpectedly (exit code %s)", returncode)
        if on_exit is not None:
            on_exit(returncode)
