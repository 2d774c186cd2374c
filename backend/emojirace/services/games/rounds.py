from flask import current_app

from emojirace.errors import GameError
from emojirace.models import (
    Round, now_ms, GAME_LOBBY, GAME_ACTIVE, GAME_ENDED,
    ROUND_WAITING, ROUND_ENDED,
)
from emojirace.validation import validate_emoji_sequence
from .scheduler import RoundTimer
from .scoring import award_correct_guess, final_standings

END_CORRECT_GUESS = 'correct-guess'
END_EXPLICIT = 'explicit'
END_TIMEOUT = 'timeout'
END_REASONS = (END_CORRECT_GUESS, END_EXPLICIT, END_TIMEOUT)


class RoundOrchestrator:
    """Round state machine: none -> waiting -> active -> ended.

    Every transition is a compare-and-set in the store; only the caller that
    wins a transition performs its side effects (scoring, broadcast, timers).
    """

    def __init__(self, app, store, broadcaster, selector, telemetry):
        self.app = app
        self.store = store
        self.broadcaster = broadcaster
        self.selector = selector
        self.telemetry = telemetry
        self.timer = RoundTimer(app, store, broadcaster, telemetry, on_expired=self._on_timer_expired)

    def _require_game(self, game_id):
        game = self.store.get_game(game_id)
        if game is None:
            raise GameError('GAME_NOT_FOUND', 'Game not found')
        return game

    def _require_round(self, game_id, round_id):
        rnd = self.store.get_round(round_id)
        if rnd is None or rnd.game_id != game_id:
            raise GameError('ROUND_NOT_FOUND', 'Round not found')
        return rnd

    # ---- game level ----

    def begin_game(self, game_id):
        game = self._require_game(game_id)
        if game.status != GAME_LOBBY:
            raise GameError('GAME_ALREADY_STARTED', 'Game has already started')
        if not self.store.transition_game(game_id, GAME_LOBBY, GAME_ACTIVE, current_round_number=1):
            raise GameError('GAME_ALREADY_STARTED', 'Game has already started')
        current_app.logger.info(f"[game-start] game={game_id}")
        self.telemetry.incr('games.started')
        # A game going live starts a fresh phrase session
        tracker = self.selector.reset(self.store.get_tracker(game_id))
        self.store.save_tracker(tracker)
        players = self.store.active_players(game_id)
        self.broadcaster.broadcast(game_id, 'GAME_STARTED', {
            'players': [p.to_dict() for p in players],
            'max_rounds': game.max_rounds,
        })
        rnd = self.start_round(game_id, 1)
        return {'game': self._require_game(game_id).to_dict(), 'round': rnd}

    def end_game(self, game_id, reason='completed'):
        game = self._require_game(game_id)
        if game.status == GAME_ENDED:
            raise GameError('GAME_COMPLETE', 'Game has already ended')
        was_active = game.status == GAME_ACTIVE
        for round_id in self.store.close_open_rounds(game_id, END_EXPLICIT):
            self.timer.stop(round_id)
        if not self.store.transition_game(game_id, game.status, GAME_ENDED, current_round_id=None):
            raise GameError('GAME_COMPLETE', 'Game has already ended')
        standings = final_standings(self.store, game, record=was_active)
        current_app.logger.info(f"[game-end] game={game_id} reason={reason} winners={standings['winners']}")
        self.telemetry.incr('games.ended')
        self.broadcaster.broadcast(game_id, 'GAME_ENDED', {
            'reason': reason,
            'final_scores': standings['scores'],
            'winners': standings['winners'],
        })
        return {'game': self._require_game(game_id).to_dict(), **standings}

    # ---- rounds ----

    def start_round(self, game_id, round_number=None):
        game = self._require_game(game_id)
        if game.status != GAME_ACTIVE:
            raise GameError('GAME_NOT_ACTIVE', 'Game is not active')
        if round_number is None:
            round_number = max(1, game.current_round_number or 0)
        if round_number > game.max_rounds:
            raise GameError('GAME_COMPLETE', 'All rounds have been played')
        if round_number < (game.current_round_number or 0):
            raise GameError('ROUND_ALREADY_ENDED', f'Round {round_number} has already been played')

        players = self.store.active_players(game_id)
        if not players:
            raise GameError('NO_ACTIVE_PLAYERS', 'No active players')
        if self.store.open_round(game_id) is not None:
            raise GameError('ROUND_IN_PROGRESS', 'A round is already in progress')
        existing = self.store.round_by_number(game_id, round_number)
        if existing is not None:
            raise GameError('ROUND_ALREADY_ENDED', f'Round {round_number} has already been played')

        presenter = players[(round_number - 1) % len(players)]
        rnd = Round(
            game_id=game_id,
            round_number=round_number,
            presenter_id=presenter.player_id,
            status=ROUND_WAITING,
            emoji_sequence=[],
            phrase_hints=[],
        )
        if not self.store.create_round(rnd):
            raise GameError('ROUND_IN_PROGRESS', 'A round is already in progress')
        self.store.touch_game(game_id, current_round_id=rnd.id, current_round_number=round_number)
        current_app.logger.info(
            f"[round-start] game={game_id} round={rnd.id} number={round_number} presenter={presenter.player_id}"
        )
        self.telemetry.incr('rounds.started')
        data = rnd.to_dict(reveal_phrase=False)
        self.broadcaster.broadcast(game_id, 'ROUND_STARTED', {
            'round_id': rnd.id,
            'round_number': round_number,
            'presenter_id': presenter.player_id,
            'presenter_username': presenter.username,
        })
        return data

    def submit_emojis(self, game_id, round_id, sequence, player_id=None):
        emojis = validate_emoji_sequence(sequence)
        rnd = self._require_round(game_id, round_id)
        if player_id is not None and player_id != rnd.presenter_id:
            raise GameError('NOT_PRESENTER', 'Only the presenter can submit emojis')
        if rnd.status != ROUND_WAITING:
            raise GameError('ROUND_NOT_WAITING', 'Emojis were already submitted for this round')

        tracker = self.store.get_tracker(game_id)
        phrase = self.selector.select_random_phrase(tracker)
        if phrase is None:
            raise GameError('SERVER_ERROR', 'No phrases available')

        start_time = now_ms()
        if not self.store.activate_round(round_id, phrase, emojis, start_time):
            raise GameError('ROUND_NOT_WAITING', 'Emojis were already submitted for this round')
        self.selector.mark_used(tracker, phrase['id'], phrase['category'], phrase['difficulty'])
        self.store.save_tracker(tracker)

        duration_ms = int(current_app.config.get('ROUND_DURATION_SEC', 120)) * 1000
        try:
            marker = self.timer.start(game_id, round_id, duration_ms)
        except GameError:
            current_app.logger.error(f"[timer-failed] game={game_id} round={round_id} round left active")
            raise

        current_app.logger.info(f"[emojis] game={game_id} round={round_id} phrase={phrase['id']} count={len(emojis)}")
        self.broadcaster.broadcast(game_id, 'EMOJIS_SUBMITTED', {
            'round_id': round_id,
            'presenter_id': rnd.presenter_id,
            'emoji_sequence': emojis,
            'category': phrase['category'],
            'word_count': len(phrase['text'].split()),
            'start_time': start_time,
            'end_time': marker.end_time,
        })
        # Presenters see the phrase they are encoding
        return self._require_round(game_id, round_id).to_dict(reveal_phrase=True)

    def end_round(self, game_id, round_id, reason, winner_id=None, winner_username=None):
        if reason not in END_REASONS:
            raise GameError('INVALID_INPUT', f'Unknown end reason: {reason}')
        rnd = self._require_round(game_id, round_id)
        if rnd.status == ROUND_ENDED:
            raise GameError('ROUND_ALREADY_ENDED', 'Round has already ended')

        # Everything the result needs is read up front; past the compare-and-set
        # only best-effort calls remain so the round always gets announced
        community = self._require_game(game_id).community
        round_number, answer, started = rnd.round_number, rnd.phrase_text, rnd.start_time
        presenter_id = rnd.presenter_id
        scoring = reason == END_CORRECT_GUESS and winner_id
        if scoring:
            if winner_username is None:
                winner = self.store.get_player(game_id, winner_id)
                winner_username = winner.username if winner else None
            presenter = self.store.get_player(game_id, presenter_id)
            presenter_username = presenter.username if presenter else None

        end_time = now_ms()
        if not self.store.finish_round(round_id, reason, winner_id=winner_id, end_time=end_time):
            raise GameError('ROUND_ALREADY_ENDED', 'Round has already ended')
        # Only the caller that finalized the round gets here
        self.timer.stop(round_id)

        if scoring:
            award_correct_guess(
                self.store, game_id, community, round_id,
                winner_id, winner_username, presenter_id, presenter_username,
            )

        result = {
            'round_id': round_id,
            'round_number': round_number,
            'winner_id': winner_id,
            'winner_username': winner_username,
            'correct_answer': answer,
            'total_guesses': self.store.guess_count(round_id),
            'round_duration': max(0, end_time - (started or end_time)),
            'end_reason': reason,
            'scores': self.store.scores(game_id),
        }
        current_app.logger.info(f"[round-end] game={game_id} round={round_id} reason={reason} winner={winner_id}")
        self.telemetry.incr(f"rounds.ended.{reason}")
        self.broadcaster.broadcast(game_id, 'ROUND_ENDED', result)
        if result['scores']:
            self.broadcaster.broadcast(game_id, 'SCORE_UPDATE', {'scores': result['scores']})
        try:
            self.store.touch_game(game_id)
        except GameError:
            current_app.logger.warning(f"[round-end] game={game_id} round={round_id} game row not refreshed")
        self.timer.schedule_transition(game_id, round_number, self._auto_advance)
        return result

    def next_round(self, game_id, expected_round_number=None):
        game = self._require_game(game_id)
        if game.status == GAME_ENDED:
            raise GameError('GAME_COMPLETE', 'Game has already ended')
        if game.status != GAME_ACTIVE:
            raise GameError('GAME_NOT_ACTIVE', 'Game is not active')
        current = game.current_round_number or 0
        if expected_round_number is not None and int(expected_round_number) != current:
            # Someone else already advanced past the round the caller saw
            return {'advanced': False, 'game': game.to_dict(), 'round': None}

        open_round = self.store.open_round(game_id)
        if open_round is not None:
            raise GameError('ROUND_IN_PROGRESS', 'Current round has not ended')

        if current >= game.max_rounds:
            ended = self.end_game(game_id, reason='completed')
            return {'advanced': True, 'game': ended['game'], 'round': None, 'final_scores': ended['scores']}

        if self.store.round_by_number(game_id, current + 1) is not None:
            raise GameError('ROUND_ALREADY_ENDED', f'Round {current + 1} has already been played')
        if not self.store.advance_round_number(game_id, current):
            return {'advanced': False, 'game': self._require_game(game_id).to_dict(), 'round': None}
        current_app.logger.info(f"[next-round] game={game_id} advance {current} -> {current + 1}")
        try:
            rnd = self.start_round(game_id, current + 1)
        except GameError as err:
            self.store.rewind_round_number(game_id, current + 1)
            current_app.logger.warning(f"[next-round] game={game_id} rewind {current + 1} -> {current} kind={err.kind}")
            raise
        return {'advanced': True, 'game': self._require_game(game_id).to_dict(), 'round': rnd}

    # ---- callbacks ----

    def _on_timer_expired(self, game_id, round_id):
        try:
            self.end_round(game_id, round_id, END_TIMEOUT)
        except GameError as err:
            if err.kind != 'ROUND_ALREADY_ENDED':
                raise
            current_app.logger.info(f"[timer-late] game={game_id} round={round_id} already ended")

    def _auto_advance(self, game_id, round_number):
        try:
            self.next_round(game_id, expected_round_number=round_number)
        except GameError as err:
            current_app.logger.info(f"[transition-skip] game={game_id} after_round={round_number} kind={err.kind}")

