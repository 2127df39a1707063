from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PollingTask:
    """Run ``job`` every ``interval_seconds`` on a daemon thread until stopped.

    Bound to a session: call ``start()`` when the session opens and ``stop()``
    when it ends. A failing run is logged and the next tick still happens.
    """

    def __init__(self, job: Callable[[], object], *, interval_seconds: float, name: str = "poll"):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._job = job
        self._interval = float(interval_seconds)
        self._name = name
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, *, run_immediately: bool = True) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop,
            args=(run_immediately,),
            name=f"polling-{self._name}",
            daemon=True,
        )
        self._thread.start()

    def stop(self, *, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run_once(self) -> None:
        try:
            self._job()
        except Exception:
            logger.exception("Polling job %s failed", self._name)

    def _loop(self, run_immediately: bool) -> None:
        if run_immediately:
            self.run_once()
        while not self._stop.wait(self._interval):
            self.run_once()
