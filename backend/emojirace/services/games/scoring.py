from flask import current_app

from emojirace.models import Game


def award_correct_guess(store, game_id: str, community: str, round_id: str,
                        winner_id: str, winner_username, presenter_id: str, presenter_username) -> dict:
    """Apply scoring for a round won by a correct guess.

    +CORRECT_GUESS_POINTS to the guesser, +PRESENTER_POINTS to the presenter,
    written to the player rows and the community leaderboard. Every write is
    best-effort; a failure is logged and the round still ends.
    """
    cfg = current_app.config
    guess_points = int(cfg.get('CORRECT_GUESS_POINTS', 10))
    presenter_points = int(cfg.get('PRESENTER_POINTS', 5))

    awarded = {}
    for player_id, username, points in (
        (winner_id, winner_username, guess_points),
        (presenter_id, presenter_username, presenter_points),
    ):
        if not store.award_points(game_id, player_id, points):
            current_app.logger.warning(f"[score-skip] game={game_id} round={round_id} player={player_id} points={points}")
            continue
        awarded[player_id] = points
        if username is None:
            current_app.logger.warning(f"[leaderboard-skip] community={community} player={player_id} unknown username")
        elif not store.add_leaderboard_points(community, username, points):
            current_app.logger.warning(f"[leaderboard-skip] community={community} user={username} points={points}")

    current_app.logger.info(f"[score] game={game_id} round={round_id} awarded={awarded}")
    return awarded


def final_standings(store, game: Game, record: bool = True) -> dict:
    """Final scores and winners (top score, ties share).

    With ``record`` every player gets a game played on the leaderboard and the
    winners a game won.
    """
    players = {p.player_id: p.username for p in game.players}
    scores = store.scores(game.id)
    top = max(scores.values()) if scores else 0
    winners = [pid for pid, score in scores.items() if top > 0 and score == top]
    if record:
        store.record_games_played(
            game.community,
            list(players.values()),
            winners=[players[pid] for pid in winners if pid in players],
        )
    return {'scores': scores, 'winners': winners}
