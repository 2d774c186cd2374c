import time

from flask import current_app

from emojirace import socketio

EVENT_TYPES = (
    'PLAYER_JOINED',
    'PLAYER_LEFT',
    'GAME_STARTED',
    'ROUND_STARTED',
    'EMOJIS_SUBMITTED',
    'GUESS_SUBMITTED',
    'ROUND_ENDED',
    'GAME_ENDED',
    'TIMER_UPDATE',
    'SCORE_UPDATE',
)


def room_for(game_id: str) -> str:
    return f"game:{game_id}"


class EventBroadcaster:
    """Append-only, bounded event log per game plus a Socket.IO push.

    Delivery is best-effort: clients that miss a push catch up through
    ``history`` or ``subscribe`` using the event id as a cursor.
    """

    def __init__(self, store, telemetry):
        self.store = store
        self.telemetry = telemetry

    def broadcast(self, game_id: str, event_type: str, payload=None):
        limit = int(current_app.config.get('EVENT_HISTORY_LIMIT', 50))
        event = self.store.append_event(game_id, event_type, dict(payload or {}), limit)
        if event is None:
            # History is unavailable; still push what we have
            event = dict(payload or {})
            event.update({'type': event_type, 'game_id': game_id, 'id': None})
        try:
            socketio.emit('game_event', event, to=room_for(game_id), namespace='/ws')
        except Exception as exc:
            current_app.logger.warning(f"[broadcast-failed] game={game_id} type={event_type} error={exc}")
            self.telemetry.incr('broadcast.failed')
            return event
        self.telemetry.incr(f"broadcast.{event_type.lower()}")
        return event

    def history(self, game_id: str, since=None, limit: int = 20):
        if since is None:
            return self.store.recent_events(game_id, limit)
        return self.store.events_after(game_id, since, limit)

    def subscribe(self, game_id: str, cursor=None, timeout=None, interval=None):
        """Long-poll for events newer than ``cursor``.

        Returns as soon as something new exists; otherwise returns an empty
        batch with the freshest cursor once ``timeout`` seconds have passed.
        """
        cfg = current_app.config
        timeout = float(cfg.get('LONG_POLL_TIMEOUT_SEC', 25) if timeout is None else timeout)
        interval = float(cfg.get('LONG_POLL_INTERVAL_SEC', 1) if interval is None else interval)
        limit = int(cfg.get('EVENT_HISTORY_LIMIT', 50))
        cursor = int(cursor or 0)
        deadline = time.monotonic() + max(0.0, timeout)

        while True:
            events = self.store.events_after(game_id, cursor, limit)
            if events:
                return {'events': events, 'last_event_id': events[-1]['id'], 'timed_out': False}
            if time.monotonic() >= deadline:
                break
            socketio.sleep(min(interval, max(0.0, deadline - time.monotonic())))
            self.store.refresh()

        latest = max(cursor, self.store.latest_event_id(game_id))
        return {'events': [], 'last_event_id': latest, 'timed_out': True}
