"""Periodic full-sweep scheduler."""

import logging
import threading

from PySide6.QtCore import QObject, Signal, QTimer

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 10 * 60 * 1000


class ReconciliationScheduler(QObject):
    """Raises a force-full-sweep flag on a fixed interval.

    Watch notifications can be coalesced or lost entirely, e.g. when a file
    is replaced by rename. The next refresh after the flag is raised
    stat-checks every session file regardless of the dirty set.
    """

    sweep_requested = Signal()

    def __init__(self, interval_ms: int = DEFAULT_INTERVAL_MS, parent=None):
        super().__init__(parent)
        self._force = False
        self._lock = threading.Lock()
        self._timer = QTimer(self)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self.request_sweep)

    @property
    def interval_ms(self) -> int:
        return self._timer.interval()

    def is_active(self) -> bool:
        return self._timer.isActive()

    def start(self):
        if not self._timer.isActive():
            self._timer.start()

    def stop(self):
        self._timer.stop()
        with self._lock:
            self._force = False

    def request_sweep(self):
        with self._lock:
            self._force = True
        logger.debug("Full reconciliation sweep scheduled")
        self.sweep_requested.emit()

    def pending(self) -> bool:
        with self._lock:
            return self._force

    def consume(self) -> bool:
        """Read and clear the force flag."""
        with self._lock:
            force = self._force
            self._force = False
        return force
