"""Qt event-loop scheduler."""
from __future__ import annotations

from typing import Callable

from PyQt6.QtCore import QTimer


class QtTimerScheduler:
    """Schedule callbacks on the Qt event loop with single-shot timers.

    Must be used from the GUI thread; callbacks run there as well.
    """

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> None:
        QTimer.singleShot(max(0, int(round(delay_ms))), callback)
