from flask import current_app

from emojirace.errors import GameError
from emojirace.models import LobbyTimer, now_ms, GAME_LOBBY


class LobbyTimerController:
    """Pre-game countdown that starts the match on its own once it runs out.

    Timers are rows keyed by game id; durations are milliseconds. Any store
    failure is logged by the store and shows up here as "no timer".
    """

    def __init__(self, store, orchestrator, telemetry):
        self.store = store
        self.orchestrator = orchestrator
        self.telemetry = telemetry

    @property
    def duration_ms(self) -> int:
        return int(current_app.config.get('LOBBY_COUNTDOWN_SEC', 30)) * 1000

    @property
    def min_players(self) -> int:
        return int(current_app.config.get('LOBBY_MIN_PLAYERS', 2))

    def create(self, game_id, player_count: int):
        now = now_ms()
        timer = LobbyTimer(
            game_id=game_id,
            is_active=player_count >= self.min_players,
            start_time=now,
            duration=self.duration_ms,
            remaining_time=self.duration_ms,
            last_sync_time=now,
            player_count=player_count,
        )
        saved = self.store.save_lobby_timer(timer)
        current_app.logger.info(
            f"[lobby-timer] game={game_id} players={player_count} active={timer.is_active} duration={timer.duration}ms"
        )
        return self._view(saved) if saved is not None else None

    def _view(self, timer, now=None):
        """Current picture of a stored timer; the row itself is left untouched."""
        now = now or now_ms()
        data = timer.to_dict()
        if timer.is_active:
            remaining = max(0, timer.duration - (now - timer.start_time))
            data['remaining_time'] = remaining
            data['last_sync_time'] = now
            if remaining <= 0:
                data['is_active'] = False
        return data

    def get(self, game_id):
        timer = self.store.get_lobby_timer(game_id)
        if timer is None:
            return None
        return self._view(timer)

    def reset(self, game_id, player_count: int):
        if not current_app.config.get('LOBBY_RESET_ON_JOIN', True):
            return self.get(game_id)
        self.telemetry.incr('lobby.reset')
        return self.create(game_id, player_count)

    def stop(self, game_id) -> bool:
        removed = self.store.delete_lobby_timer(game_id)
        if removed:
            current_app.logger.info(f"[lobby-timer-stop] game={game_id}")
        return removed

    def sync(self, game_id, client_time=None):
        server_time = now_ms()
        timer = self.get(game_id)
        drift = None
        if client_time is not None:
            try:
                drift = server_time - int(client_time)
            except (TypeError, ValueError):
                raise GameError('INVALID_INPUT', 'client_time must be a millisecond timestamp')
        return {'timer': timer, 'server_time': server_time, 'drift': drift}

    def is_expired(self, game_id) -> bool:
        # Judged on the stored row: the view flips is_active off at zero
        timer = self.store.get_lobby_timer(game_id)
        if timer is None or not timer.is_active:
            return False
        return now_ms() - timer.start_time >= timer.duration

    def try_auto_start(self, game_id) -> bool:
        if not self.is_expired(game_id):
            return False
        game = self.store.get_game(game_id)
        if game is None or game.status != GAME_LOBBY:
            return False
        count = len(self.store.active_players(game_id))
        if count < self.min_players:
            current_app.logger.info(f"[lobby-autostart-skip] game={game_id} players={count}")
            return False
        try:
            self.orchestrator.begin_game(game_id)
        except GameError as err:
            if err.kind != 'GAME_ALREADY_STARTED':
                raise
            return False
        self.stop(game_id)
        self.telemetry.incr('lobby.autostart')
        current_app.logger.info(f"[lobby-autostart] game={game_id} players={count}")
        return True
