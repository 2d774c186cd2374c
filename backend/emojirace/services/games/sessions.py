from flask import current_app

from emojirace.errors import GameError
from emojirace.models import (
    Game, Player, now_ms, player_id_for, GAME_LOBBY, GAME_ACTIVE, GAME_ENDED, ROUND_ENDED,
)
from emojirace.validation import validate_max_rounds


class GameSessions:
    """Game create / join / leave / start / state and moderator bookkeeping."""

    def __init__(self, store, broadcaster, orchestrator, lobby, telemetry):
        self.store = store
        self.broadcaster = broadcaster
        self.orchestrator = orchestrator
        self.lobby = lobby
        self.telemetry = telemetry

    def _require_game(self, game_id):
        game = self.store.get_game(game_id)
        if game is None:
            raise GameError('GAME_NOT_FOUND', 'Game not found')
        return game

    def _require_player(self, game_id, username):
        player = self.store.get_player(game_id, player_id_for(username))
        if player is None or not player.is_active:
            raise GameError('NOT_IN_GAME', 'You are not a player in this game')
        return player

    def create_game(self, community, username, max_rounds=None):
        cfg = current_app.config
        rounds = validate_max_rounds(
            max_rounds, int(cfg.get('DEFAULT_MAX_ROUNDS', 5)), int(cfg.get('MAX_ROUNDS_LIMIT', 10))
        )
        game = Game(
            community=community,
            status=GAME_LOBBY,
            current_round_number=0,
            max_rounds=rounds,
            expires_at=self.store.game_expiry(),
        )
        self.store.save(game)
        current_app.logger.info(f"[game-create] game={game.id} community={community} by={username} rounds={rounds}")
        self.telemetry.incr('games.created')
        return self.join_game(community, username, game_id=game.id)

    def join_game(self, community, username, game_id=None):
        cfg = current_app.config
        max_players = int(cfg.get('MAX_PLAYERS', 8))
        if game_id:
            game = self._require_game(game_id)
        else:
            game = self.store.open_lobby(community, max_players)
            if game is None:
                return self.create_game(community, username)

        player_id = player_id_for(username)
        player = self.store.get_player(game.id, player_id)
        active = self.store.active_players(game.id)
        if player is not None and player.is_active:
            return self._joined(game, player)

        if player is None:
            if game.status != GAME_LOBBY:
                raise GameError('GAME_ALREADY_STARTED', 'Game has already started')
            if len(active) >= max_players:
                raise GameError('GAME_FULL', 'Game is full')
            player = Player(
                game_id=game.id,
                player_id=player_id,
                username=username,
                score=0,
                is_active=True,
                is_moderator=not active,
                joined_at=now_ms(),
                last_seen=now_ms(),
            )
        else:
            # Returning players keep their score and their place in the rotation
            if game.status == GAME_ENDED:
                raise GameError('GAME_COMPLETE', 'Game has already ended')
            if len(active) >= max_players:
                raise GameError('GAME_FULL', 'Game is full')
            player.is_active = True
            player.last_seen = now_ms()
            player.is_moderator = not active
        if player.is_moderator:
            game.moderator_id = player_id
        self.store.save(player, game)
        self.store.touch_game(game.id)

        count = len(self.store.active_players(game.id))
        if game.status == GAME_LOBBY:
            if self.lobby.get(game.id) is None:
                self.lobby.create(game.id, count)
            else:
                self.lobby.reset(game.id, count)

        current_app.logger.info(f"[join] game={game.id} player={player_id} players={count}")
        self.telemetry.incr('players.joined')
        self.broadcaster.broadcast(game.id, 'PLAYER_JOINED', {
            'player': player.to_dict(),
            'player_count': count,
        })
        return self._joined(game, player)

    def _joined(self, game, player):
        return {
            'game': self._require_game(game.id).to_dict(),
            'player': player.to_dict(),
            'players': [p.to_dict() for p in self.store.active_players(game.id)],
            'lobby_timer': self.lobby.get(game.id),
        }

    def leave_game(self, game_id, username):
        game = self._require_game(game_id)
        player = self._require_player(game_id, username)
        was_moderator = player.is_moderator
        player.is_active = False
        player.is_moderator = False
        self.store.save(player)

        remaining = self.store.active_players(game_id)
        new_moderator = None
        if was_moderator and remaining:
            new_moderator = remaining[0]
            new_moderator.is_moderator = True
            self.store.save(new_moderator)
            self.store.touch_game(game_id, moderator_id=new_moderator.player_id)
        elif not remaining:
            self.store.touch_game(game_id, moderator_id=None)
        else:
            self.store.touch_game(game_id)

        if game.status == GAME_LOBBY:
            if len(remaining) < self.lobby.min_players:
                self.lobby.stop(game_id)
                if remaining:
                    self.lobby.create(game_id, len(remaining))
            else:
                self.lobby.reset(game_id, len(remaining))

        current_app.logger.info(
            f"[leave] game={game_id} player={player.player_id} remaining={len(remaining)} "
            f"moderator={new_moderator.player_id if new_moderator else None}"
        )
        self.telemetry.incr('players.left')
        self.broadcaster.broadcast(game_id, 'PLAYER_LEFT', {
            'player_id': player.player_id,
            'username': username,
            'player_count': len(remaining),
            'new_moderator_id': new_moderator.player_id if new_moderator else None,
        })

        ended = None
        if not remaining and game.status != GAME_ENDED:
            self.lobby.stop(game_id)
            ended = self.orchestrator.end_game(game_id, reason='abandoned')
        return {
            'game': ended['game'] if ended else self._require_game(game_id).to_dict(),
            'players': [p.to_dict() for p in remaining],
        }

    def start_game(self, game_id, username):
        game = self._require_game(game_id)
        player = self._require_player(game_id, username)
        if not player.is_moderator:
            raise GameError('NOT_MODERATOR', 'Only the moderator can start the game')
        if game.status != GAME_LOBBY:
            raise GameError('GAME_ALREADY_STARTED', 'Game has already started')
        count = len(self.store.active_players(game_id))
        if count < int(current_app.config.get('MIN_PLAYERS', 2)):
            raise GameError('INSUFFICIENT_PLAYERS', 'Not enough players to start')
        self.lobby.stop(game_id)
        return self.orchestrator.begin_game(game_id)

    def require_moderator(self, game_id, username):
        player = self._require_player(game_id, username)
        if not player.is_moderator:
            raise GameError('NOT_MODERATOR', 'Only the moderator can do that')
        return player

    def require_round_control(self, game_id, round_id, username):
        """The presenter of the round or the moderator may end it."""
        player = self._require_player(game_id, username)
        rnd = self.store.get_round(round_id)
        if rnd is None or rnd.game_id != game_id:
            raise GameError('ROUND_NOT_FOUND', 'Round not found')
        if not (player.is_moderator or player.player_id == rnd.presenter_id):
            raise GameError('NOT_MODERATOR', 'Only the moderator or presenter can end the round')
        return player

    def require_player(self, game_id, username):
        self._require_game(game_id)
        return self._require_player(game_id, username)

    def get_state(self, game_id, username):
        game = self._require_game(game_id)
        player_id = player_id_for(username)
        players = self.store.active_players(game_id)
        me = next((p for p in players if p.player_id == player_id), None)

        current_round = None
        role = 'spectator'
        if game.current_round_id:
            rnd = self.store.get_round(game.current_round_id)
            if rnd is not None:
                is_presenter = rnd.presenter_id == player_id
                current_round = rnd.to_dict(reveal_phrase=is_presenter or rnd.status == ROUND_ENDED)
                marker = self.store.get_timer_marker(rnd.id)
                current_round['remaining_ms'] = marker.remaining() if marker else 0
                if me is not None:
                    role = 'presenter' if is_presenter else 'guesser'
        elif me is not None:
            role = 'player'

        return {
            'game': game.to_dict(),
            'players': [p.to_dict() for p in players],
            'current_round': current_round,
            'user_role': role,
            'is_moderator': bool(me and me.is_moderator),
            'lobby_timer': self.lobby.get(game_id) if game.status == GAME_LOBBY else None,
            'is_active_game': game.status == GAME_ACTIVE,
        }

    def connections(self, game_id):
        """Players whose heartbeat arrived within the connection window."""
        self._require_game(game_id)
        window_ms = int(current_app.config.get('CONNECTION_WINDOW_SEC', 30)) * 1000
        return self.store.active_connections(game_id, window_ms)

    def heartbeat(self, game_id, username):
        self._require_game(game_id)
        if not self.store.touch_player(game_id, player_id_for(username)):
            raise GameError('NOT_IN_GAME', 'You are not a player in this game')
        return {'last_seen': now_ms(), 'active_connections': len(self.connections(game_id))}
