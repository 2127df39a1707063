from __future__ import annotations

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)

Listener = Callable[[], object]


class ConnectivityMonitor:
    """Online/offline flag with reconnect listeners.

    Listeners fire only on an offline -> online transition, never on repeated
    "online" reports. A failing listener is logged and the others still run.
    """

    def __init__(self, *, online: bool = True):
        self._online = bool(online)
        self._lock = threading.Lock()
        self._listeners: list[Listener] = []

    @property
    def online(self) -> bool:
        return self._online

    def add_listener(self, listener: Listener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def set_online(self, online: bool) -> bool:
        """Update the flag; returns True when this call was a reconnect."""
        with self._lock:
            reconnected = bool(online) and not self._online
            self._online = bool(online)
            listeners = list(self._listeners) if reconnected else []

        if reconnected:
            logger.info("Connectivity restored; notifying %d listener(s)", len(listeners))
        elif not online:
            logger.info("Connectivity lost")

        for listener in listeners:
            try:
                listener()
            except Exception:
                logger.exception("Reconnect listener failed")
        return reconnected
