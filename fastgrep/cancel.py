# cancel.py - broadcast cancellation signal shared by every pipeline stage

import threading
from typing import Callable, List, Optional


class CancellationToken:
    """One-shot broadcast flag. Set once, never reset.

    Blocking primitives register a listener so they are woken the moment the
    token fires instead of polling it. ``cancel`` may run inside a signal
    handler on a thread that already holds the lock.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.RLock()
        self._listeners: List[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> bool:
        with self._lock:
            if self._event.is_set():
                return False
            self._event.set()
            listeners = list(self._listeners)
        for listener in listeners:
            listener()
        return True

    def add_listener(self, listener: Callable[[], None]) -> None:
        with self._lock:
            self._listeners.append(listener)
        # listeners are idempotent wake-ups, a second call is harmless
        if self._event.is_set():
            listener()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)
