from __future__ import annotations

from PySide6.QtCore import QCoreApplication, QObject, QTimer

from studybuddy.domain.errors import UnsupportedEnvironment


class QtTickSource:
    """One-second tick source backed by a ``QTimer`` on the Qt event loop."""

    def __init__(self, interval_ms: int = 1000, parent: QObject | None = None) -> None:
        if QCoreApplication.instance() is None:
            raise UnsupportedEnvironment("QtTickSource needs a running QCoreApplication")
        self._callback = None
        self._timer = QTimer(parent)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self._fire)

    @property
    def active(self) -> bool:
        return self._timer.isActive()

    def start(self, callback) -> None:
        self._callback = callback
        if not self.active:
            self._timer.start()

    def stop(self) -> None:
        self._timer.stop()
        self._callback = None

    def _fire(self) -> None:
        callback = self._callback
        if callback is not None:
            callback()
