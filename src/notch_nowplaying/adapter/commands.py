"""
One-shot adapter invocations for playback control.

Each call spawns a fresh adapter process, waits for it to exit and throws
it away.  Failures are logged, never raised: playback control is
best-effort against a media source that may not exist.
"""

import logging
import subprocess
from typing import Iterable, Optional, Union

from .locator import AdapterPaths
from .protocol import GET, SEEK, SEND, Command, StreamRecord, decode_snapshot

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT = 10.0


class CommandDispatcher:
    """Runs ``send`` / ``get`` / ``seek`` adapter invocations.

    Blocks the calling thread until the child exits, so call it from a
    context that tolerates blocking, never from the state-owning one.
    """

    def __init__(
        self,
        paths: AdapterPaths,
        timeout: Optional[float] = DEFAULT_COMMAND_TIMEOUT,
    ):
        self._paths = paths
        self._timeout = timeout

    def dispatch(self, command: Union[Command, int], args: Iterable = ()) -> bool:
        """Send a MediaRemote command code. Returns True on exit code 0."""
        code = int(command)
        result = self._run(SEND, str(code), *(str(a) for a in args))
        return result is not None and result.returncode == 0

    def seek(self, seconds: float) -> bool:
        """Seek the current item; the adapter expects microseconds."""
        position = int(max(0.0, float(seconds)) * 1_000_000)
        result = self._run(SEEK, str(position))
        return result is not None and result.returncode == 0

    def get(self) -> Optional[StreamRecord]:
        """Fetch a full snapshot of the current now-playing item."""
        result = self._run(GET, capture_stdout=True)
        if result is None or result.returncode != 0:
            return None
        return decode_snapshot(result.stdout or "")

    def _run(
        self,
        mode: str,
        *args: str,
        capture_stdout: bool = False,
    ) -> Optional[subprocess.CompletedProcess]:
        cmd = self._paths.command(mode, *args)
        logger.debug("Running adapter command: %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE if capture_stdout else subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",  # adapter output is not guaranteed UTF-8
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired:
            logger.warning(
                "Adapter command '%s' timed out after %ss", mode, self._timeout,
            )
            return None
        except OSError as exc:
            logger.warning("Could not run adapter command '%s': %s", mode, exc)
            return None

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            logger.warning(
                "Adapter command '%s %s' failed (exit code %d)",
                mode, " ".join(args), result.returncode,
            )
            for line in stderr.splitlines():
                logger.warning("[adapter] %s", line)
        return result
