import threading
from typing import Callable, Dict

from emojirace import socketio
from emojirace.models import now_ms


class RoundTimer:
    """Server-side countdown for active rounds.

    - ``start`` stores an end-time marker and launches one background task per round
    - each tick broadcasts ``TIMER_UPDATE`` and hands expiry to ``on_expired``
    - the task stops when the marker disappears or its cancel signal is set
    - background tasks are skipped under TESTING unless ENABLE_SCHEDULER_IN_TESTS
    """

    def __init__(self, app, store, broadcaster, telemetry, on_expired: Callable[[str, str], None]):
        self.app = app
        self.store = store
        self.broadcaster = broadcaster
        self.telemetry = telemetry
        self.on_expired = on_expired
        self._signals: Dict[str, threading.Event] = {}
        self._lock = threading.Lock()

    def _background_enabled(self) -> bool:
        cfg = self.app.config
        return not cfg.get('TESTING') or cfg.get('ENABLE_SCHEDULER_IN_TESTS')

    def start(self, game_id: str, round_id: str, duration_ms: int):
        marker = self.store.put_timer_marker(game_id, round_id, now_ms(), duration_ms)
        self.app.logger.info(
            f"[timer-set] game={game_id} round={round_id} duration={duration_ms}ms end={marker.end_time}"
        )
        self.telemetry.incr('timer.started')
        if not self._background_enabled():
            return marker

        cancel = threading.Event()
        with self._lock:
            previous = self._signals.pop(round_id, None)
            self._signals[round_id] = cancel
        if previous is not None:
            previous.set()
        socketio.start_background_task(self._run, game_id, round_id, cancel)
        return marker

    def stop(self, round_id: str) -> None:
        self.store.delete_timer_marker(round_id)
        with self._lock:
            cancel = self._signals.pop(round_id, None)
        if cancel is not None:
            cancel.set()
        self.app.logger.info(f"[timer-stop] round={round_id}")

    def cancel_all(self) -> int:
        """Signal every running loop to stop. Markers are left in place."""
        with self._lock:
            signals = list(self._signals.values())
            self._signals.clear()
        for cancel in signals:
            cancel.set()
        return len(signals)

    def active_rounds(self):
        with self._lock:
            return sorted(self._signals)

    def tick(self, game_id: str, round_id: str) -> bool:
        """Run one timer iteration. Returns False once the loop should stop."""
        marker = self.store.get_timer_marker(round_id)
        if marker is None:
            self.app.logger.info(f"[timer-abort] game={game_id} round={round_id} marker gone")
            return False
        remaining = marker.remaining()
        self.broadcaster.broadcast(game_id, 'TIMER_UPDATE', {
            'round_id': round_id,
            'remaining_ms': remaining,
            'end_time': marker.end_time,
        })
        if remaining > 0:
            return True
        self.app.logger.info(f"[timer-fire] game={game_id} round={round_id}")
        self.telemetry.incr('timer.expired')
        self.on_expired(game_id, round_id)
        return False

    def _run(self, game_id: str, round_id: str, cancel: threading.Event) -> None:
        interval = float(self.app.config.get('TIMER_TICK_SEC', 1))
        try:
            hb = int(self.app.config.get('TIMER_HEARTBEAT_SEC', 0))
        except (TypeError, ValueError):
            hb = 0
        elapsed = 0.0
        try:
            while not cancel.wait(interval):
                elapsed += interval
                with self.app.app_context():
                    try:
                        keep_going = self.tick(game_id, round_id)
                    except Exception:
                        self.app.logger.exception(f"[timer-error] game={game_id} round={round_id}")
                        self.telemetry.incr('timer.errors')
                        keep_going = True
                    if hb > 0 and elapsed % hb < interval:
                        self.app.logger.info(f"[timer-heartbeat] game={game_id} round={round_id} elapsed={elapsed:.0f}s")
                if not keep_going:
                    break
        finally:
            with self._lock:
                if self._signals.get(round_id) is cancel:
                    self._signals.pop(round_id, None)

    def schedule_transition(self, game_id: str, round_number: int, callback: Callable[[str, int], None], delay=None):
        """Run ``callback(game_id, round_number)`` once after ``delay`` seconds.

        Returns False when nothing was scheduled (delay disabled, or TESTING).
        """
        if delay is None:
            delay = self.app.config.get('ROUND_TRANSITION_DELAY_SEC', 5)
        if not delay or delay <= 0 or not self._background_enabled():
            return False

        def _worker(gid, expected_round, wait):
            socketio.sleep(wait)
            with self.app.app_context():
                self.app.logger.info(f"[transition-fire] game={gid} after_round={expected_round}")
                try:
                    callback(gid, expected_round)
                except Exception:
                    self.app.logger.exception(f"[transition-error] game={gid} after_round={expected_round}")

        self.app.logger.info(f"[transition-set] game={game_id} after_round={round_number} delay={delay}s")
        socketio.start_background_task(_worker, game_id, round_number, delay)
        return True
