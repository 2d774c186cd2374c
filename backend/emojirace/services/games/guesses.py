from flask import current_app

from emojirace.errors import GameError
from emojirace.models import Guess, now_ms, ROUND_ACTIVE
from emojirace.validation import validate_guess
from . import fuzzy
from .rounds import END_CORRECT_GUESS


def normalize_for_duplicates(text: str) -> str:
    return ' '.join(text.lower().split())


class GuessEvaluator:
    def __init__(self, store, broadcaster, orchestrator, telemetry):
        self.store = store
        self.broadcaster = broadcaster
        self.orchestrator = orchestrator
        self.telemetry = telemetry

    def submit_guess(self, game_id, round_id, guess_text, player_id, username):
        """Record a guess and, when it matches, end the round with the guesser as winner.

        A correct guess that arrives after someone else already finished the
        round stays in the history but the caller gets ROUND_ALREADY_ENDED.
        """
        text = validate_guess(guess_text)
        rnd = self.store.get_round(round_id)
        if rnd is None or rnd.game_id != game_id:
            raise GameError('ROUND_NOT_FOUND', 'Round not found')
        if rnd.status != ROUND_ACTIVE:
            raise GameError('ROUND_NOT_ACTIVE', 'Round is not accepting guesses')
        marker = self.store.get_timer_marker(round_id)
        # The stored marker is the deadline; it disappears when time is up
        if marker is None:
            raise GameError('ROUND_EXPIRED', 'Round time is up')

        player = self.store.get_player(game_id, player_id)
        if player is None or not player.is_active:
            raise GameError('NOT_IN_GAME', 'You are not a player in this game')
        if player_id == rnd.presenter_id:
            raise GameError('PRESENTER_CANNOT_GUESS', 'The presenter cannot guess')

        normalized = normalize_for_duplicates(text)
        for earlier in self.store.player_guesses(round_id, player_id):
            if normalize_for_duplicates(earlier.text) == normalized:
                raise GameError('DUPLICATE_GUESS', 'You already made that guess')

        threshold = float(current_app.config.get('FUZZY_MATCH_THRESHOLD', 0.8))
        similarity = fuzzy.similarity(text, rnd.phrase_text)
        is_correct = similarity >= threshold
        guess = self.store.add_guess(Guess(
            round_id=round_id,
            player_id=player_id,
            username=username,
            text=text,
            normalized_text=normalized,
            similarity=similarity,
            is_correct=is_correct,
            timestamp=now_ms(),
        ))
        if guess is None:
            # Lost a race with the same guess from another request
            raise GameError('DUPLICATE_GUESS', 'You already made that guess')
        guess_data = guess.to_dict()
        self.telemetry.incr('guesses.correct' if is_correct else 'guesses.incorrect')
        current_app.logger.info(
            f"[guess] game={game_id} round={round_id} player={player_id} similarity={similarity:.3f} correct={is_correct}"
        )
        self.broadcaster.broadcast(game_id, 'GUESS_SUBMITTED', {'round_id': round_id, 'guess': guess_data})

        result = {'guess': guess_data, 'is_correct': is_correct, 'similarity': guess_data['similarity']}
        if is_correct:
            result['round_result'] = self.orchestrator.end_round(
                game_id, round_id, END_CORRECT_GUESS, winner_id=player_id, winner_username=username
            )
        return result
