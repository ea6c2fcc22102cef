"""Tests for the Qt dispatcher. Skipped unless PySide6 is installed."""

import logging
import threading
import time

import pytest

QtCore = pytest.importorskip("PySide6.QtCore")

from notch_nowplaying.qt import QtDispatcher  # noqa: E402


@pytest.fixture(scope="module")
def app():
    return QtCore.QCoreApplication.instance() or QtCore.QCoreApplication([])


def _process_until(app, predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while not predicate() and time.monotonic() < deadline:
        app.processEvents()
        time.sleep(0.01)


class TestQtDispatcher:
    def test_post_from_worker_runs_on_owner_thread(self, app):
        dispatcher = QtDispatcher()
        ran = []

        worker = threading.Thread(
            target=lambda: dispatcher.post(lambda: ran.append(threading.current_thread()))
        )
        worker.start()
        worker.join()

        _process_until(app, lambda: ran)
        assert ran == [threading.current_thread()]

    def test_task_error_logged(self, app, caplog):
        dispatcher = QtDispatcher()
        ran = []

        def boom():
            raise RuntimeError("boom")

        with caplog.at_level(logging.ERROR):
            dispatcher.post(boom)
            dispatcher.post(lambda: ran.append(1))
            _process_until(app, lambda: ran)

        assert ran == [1]
        assert "Dispatched task failed" in caplog.text
