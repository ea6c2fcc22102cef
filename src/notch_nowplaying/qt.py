"""
Qt integration. Requires ``pip install notch-nowplaying[qt]``.

``QtDispatcher`` runs posted callables on the thread that owns it
(normally the GUI thread), so observers may touch widgets directly::

    dispatcher = QtDispatcher()
    client = NowPlayingClient(dispatcher=dispatcher)
    client.subscribe(lambda state, changed: label.setText(state.title))
"""

import logging

from PySide6.QtCore import QObject, Qt, Signal, Slot

logger = logging.getLogger(__name__)


class QtDispatcher(QObject):
    """Marshals posted callables onto this object's thread via a queued signal."""

    _posted = Signal(object)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._posted.connect(self._run, Qt.ConnectionType.QueuedConnection)

    def post(self, fn) -> None:
        """Queue ``fn`` for the owning thread. Safe from any thread."""
        self._posted.emit(fn)

    @Slot(object)
    def _run(self, fn) -> None:
        try:
            fn()
        except Exception:
            logger.exception("Dispatched task failed")
