"""
Locates the ``mediaremote-adapter`` script and its companion framework.

Unless configured explicitly, both live in ``~/.notch_nowplaying/adapter/``.
The same coordinates are used by the streaming process and by every
one-shot command.
"""

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from ..exceptions import AdapterNotFoundError

logger = logging.getLogger(__name__)

SCRIPT_NAME = "mediaremote-adapter.pl"
FRAMEWORK_NAME = "MediaRemoteAdapter.framework"
DEFAULT_ADAPTER_DIR = os.path.expanduser("~/.notch_nowplaying/adapter")


@dataclass(frozen=True)
class AdapterPaths:
    """Interpreter, script and framework coordinates of the adapter."""

    interpreter: str
    script: str
    framework: str

    def command(self, mode: str, *args: str) -> List[str]:
        """Build the argv for one adapter invocation."""
        return [self.interpreter, self.script, self.framework, mode, *args]

    @classmethod
    def resolve(
        cls,
        interpreter: str,
        script: Optional[str] = None,
        framework: Optional[str] = None,
        adapter_dir: Optional[str] = None,
    ) -> "AdapterPaths":
        """Resolve and validate the adapter coordinates.

        Raises AdapterNotFoundError if any of them is missing.
        """
        base = Path(adapter_dir or DEFAULT_ADAPTER_DIR).expanduser()
        script_path = Path(script).expanduser() if script else base / SCRIPT_NAME
        framework_path = Path(framework).expanduser() if framework else base / FRAMEWORK_NAME

        if not script_path.is_file():
            raise AdapterNotFoundError(f"Adapter script not found: {script_path}")
        if not framework_path.exists():
            raise AdapterNotFoundError(f"Adapter framework not found: {framework_path}")

        interpreter_path = _which(interpreter)
        if interpreter_path is None:
            raise AdapterNotFoundError(f"Interpreter not found: {interpreter}")

        logger.debug(
            "Resolved adapter: interpreter=%s script=%s framework=%s",
            interpreter_path, script_path, framework_path,
        )
        return cls(
            interpreter=interpreter_path,
            script=str(script_path),
            framework=str(framework_path),
        )

    @classmethod
    def from_config(cls, config) -> "AdapterPaths":
        return cls.resolve(
            config.interpreter,
            script=config.adapter_script,
            framework=config.framework_path,
        )


def _which(interpreter: str) -> Optional[str]:
    """Accept either an absolute path or a name on PATH."""
    if os.path.isabs(interpreter):
        return interpreter if os.access(interpreter, os.X_OK) else None
    return shutil.which(interpreter)
