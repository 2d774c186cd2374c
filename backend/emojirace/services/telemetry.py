import threading
from collections import Counter


class Telemetry:
    """In-process counter sink handed to each component.

    Nothing is exported; ``snapshot`` is what a host-side collector would read.
    """

    def __init__(self):
        self._counters = Counter()
        self._lock = threading.Lock()
        self._logger = None
        self.enabled = False

    def init(self, app) -> None:
        self._logger = app.logger
        self.enabled = True
        self._logger.info('[telemetry-init] counters enabled')

    def shutdown(self) -> dict:
        final = self.snapshot()
        if self._logger is not None:
            self._logger.info(f"[telemetry-shutdown] counters={final}")
        self.enabled = False
        with self._lock:
            self._counters.clear()
        return final

    def incr(self, name: str, value: int = 1) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._counters[name] += value

    def snapshot(self) -> dict:
        with self._lock:
            return dict(self._counters)
