"""Single repository over the SQL store.

Every operation declares how it behaves when the database misbehaves:

- ``fail_open(default)``: log, roll back and hand back a safe fallback. Used for
  reads that have one (leaderboard, lobby timer, event history, score snapshot)
  and for best-effort writes (scores, events).
- ``fail_closed``: log, roll back and raise ``SERVER_ERROR``. Used for writes
  that define game state.

Compare-and-set updates are ``UPDATE ... WHERE status = :expected``; the caller
that sees ``rowcount == 1`` won.
"""
import functools

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from emojirace import db
from emojirace.errors import GameError
from emojirace.models import (
    Game, Player, Round, Guess, RoundTimerMarker, LobbyTimer, GameEvent,
    SessionPhraseTracker, LeaderboardEntry, now_ms, OPEN_ROUND_STATUSES,
    ROUND_WAITING, ROUND_ACTIVE, ROUND_ENDED, GAME_LOBBY,
)


def _degraded(store, op, exc):
    db.session.rollback()
    current_app.logger.warning(f"[store-degraded] op={op} error={exc.__class__.__name__}: {exc}")
    if store.telemetry is not None:
        store.telemetry.incr('store.degraded')


def fail_open(default=None):
    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(self, *args, **kwargs):
            try:
                return fn(self, *args, **kwargs)
            except SQLAlchemyError as exc:
                _degraded(self, fn.__name__, exc)
                return default() if callable(default) else default
        return wrapper
    return decorator


def fail_closed(fn):
    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        try:
            return fn(self, *args, **kwargs)
        except SQLAlchemyError as exc:
            _degraded(self, fn.__name__, exc)
            raise GameError('SERVER_ERROR', 'Storage unavailable') from exc
    return wrapper


class GameStore:
    def __init__(self, telemetry=None):
        self.telemetry = telemetry

    # ---- expiry helpers ----

    @staticmethod
    def expiry(seconds) -> int:
        return now_ms() + int(seconds * 1000)

    def game_expiry(self) -> int:
        return self.expiry(current_app.config.get('GAME_SESSION_TTL_SEC', 4 * 60 * 60))

    # ---- games and players ----

    @fail_closed
    def get_game(self, game_id):
        game = db.session.get(Game, game_id)
        if game is None or game.expires_at <= now_ms():
            return None
        return game

    @fail_closed
    def save(self, *objects):
        for obj in objects:
            db.session.add(obj)
        db.session.commit()

    @fail_closed
    def touch_game(self, game_id, **fields):
        now = now_ms()
        fields.update({'updated_at': now, 'expires_at': self.game_expiry()})
        Game.query.filter_by(id=game_id).update(fields, synchronize_session=False)
        db.session.commit()

    @fail_closed
    def transition_game(self, game_id, from_status, to_status, **fields) -> bool:
        fields.update({'status': to_status, 'updated_at': now_ms(), 'expires_at': self.game_expiry()})
        changed = Game.query.filter_by(id=game_id, status=from_status).update(fields, synchronize_session=False)
        db.session.commit()
        return changed == 1

    @fail_closed
    def advance_round_number(self, game_id, expected: int) -> bool:
        changed = Game.query.filter_by(id=game_id, current_round_number=expected).update(
            {
                'current_round_number': expected + 1,
                'updated_at': now_ms(),
                'expires_at': self.game_expiry(),
            },
            synchronize_session=False,
        )
        db.session.commit()
        return changed == 1

    @fail_closed
    def rewind_round_number(self, game_id, expected: int) -> bool:
        """Undo ``advance_round_number`` when the round it made room for never started."""
        changed = Game.query.filter_by(id=game_id, current_round_number=expected).update(
            {'current_round_number': expected - 1, 'updated_at': now_ms()},
            synchronize_session=False,
        )
        db.session.commit()
        return changed == 1

    @fail_closed
    def open_lobby(self, community: str, max_players: int):
        """Most recent joinable lobby for the community, if any."""
        candidates = (
            Game.query.filter(
                Game.community == community,
                Game.status == GAME_LOBBY,
                Game.expires_at > now_ms(),
            )
            .order_by(Game.created_at.desc())
            .all()
        )
        for game in candidates:
            active = Player.query.filter_by(game_id=game.id, is_active=True).count()
            if 0 < active < max_players:
                return game
        return None

    @fail_closed
    def get_player(self, game_id, player_id):
        return Player.query.filter_by(game_id=game_id, player_id=player_id).first()

    @fail_closed
    def active_players(self, game_id):
        return (
            Player.query.filter_by(game_id=game_id, is_active=True)
            .order_by(Player.joined_at.asc(), Player.id.asc())
            .all()
        )

    @fail_closed
    def touch_player(self, game_id, player_id) -> bool:
        changed = Player.query.filter_by(game_id=game_id, player_id=player_id).update(
            {'last_seen': now_ms()}, synchronize_session=False
        )
        db.session.commit()
        return changed == 1

    @fail_open(dict)
    def active_connections(self, game_id, window_ms: int) -> dict:
        """player_id -> last_seen for active players heard from within the window."""
        since = now_ms() - window_ms
        rows = db.session.query(Player.player_id, Player.last_seen).filter(
            Player.game_id == game_id,
            Player.is_active.is_(True),
            Player.last_seen >= since,
        ).all()
        return {player_id: last_seen for player_id, last_seen in rows}

    @fail_open(False)
    def award_points(self, game_id, player_id, points: int) -> bool:
        changed = Player.query.filter_by(game_id=game_id, player_id=player_id).update(
            {'score': Player.score + points}, synchronize_session=False
        )
        db.session.commit()
        return changed == 1

    @fail_open(dict)
    def scores(self, game_id) -> dict:
        rows = db.session.query(Player.player_id, Player.score).filter(Player.game_id == game_id).all()
        return {player_id: score for player_id, score in rows}

    # ---- rounds ----

    @fail_closed
    def get_round(self, round_id):
        return db.session.get(Round, round_id)

    @fail_closed
    def round_by_number(self, game_id, round_number):
        return Round.query.filter_by(game_id=game_id, round_number=round_number).first()

    @fail_closed
    def open_round(self, game_id):
        return (
            Round.query.filter(Round.game_id == game_id, Round.status.in_(OPEN_ROUND_STATUSES))
            .order_by(Round.round_number.desc())
            .first()
        )

    @fail_closed
    def create_round(self, rnd) -> bool:
        """Insert a new round. False when another caller created this round number first."""
        rnd.expires_at = self.game_expiry()
        db.session.add(rnd)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            return False
        return True

    @fail_closed
    def activate_round(self, round_id, phrase: dict, emoji_sequence, start_time: int) -> bool:
        changed = Round.query.filter_by(id=round_id, status=ROUND_WAITING).update(
            {
                'status': ROUND_ACTIVE,
                'phrase_id': phrase['id'],
                'phrase_text': phrase['text'],
                'phrase_category': phrase['category'],
                'phrase_difficulty': phrase['difficulty'],
                'phrase_hints': list(phrase.get('hints') or []),
                'emoji_sequence': list(emoji_sequence),
                'start_time': start_time,
                'expires_at': self.game_expiry(),
            },
            synchronize_session=False,
        )
        db.session.commit()
        return changed == 1

    @fail_closed
    def finish_round(self, round_id, reason: str, winner_id=None, end_time=None) -> bool:
        changed = Round.query.filter(
            Round.id == round_id, Round.status.in_(OPEN_ROUND_STATUSES)
        ).update(
            {
                'status': ROUND_ENDED,
                'end_reason': reason,
                'winner_id': winner_id,
                'end_time': end_time or now_ms(),
                'expires_at': self.game_expiry(),
            },
            synchronize_session=False,
        )
        db.session.commit()
        return changed == 1

    @fail_closed
    def close_open_rounds(self, game_id, reason: str) -> list:
        ids = [r.id for r in Round.query.filter(
            Round.game_id == game_id, Round.status.in_(OPEN_ROUND_STATUSES)
        ).all()]
        closed = [rid for rid in ids if self.finish_round(rid, reason)]
        return closed

    # ---- guesses ----

    @fail_closed
    def player_guesses(self, round_id, player_id):
        return Guess.query.filter_by(round_id=round_id, player_id=player_id).order_by(Guess.id.asc()).all()

    @fail_open(0)
    def guess_count(self, round_id) -> int:
        return Guess.query.filter_by(round_id=round_id).count()

    @fail_closed
    def add_guess(self, guess):
        """Insert a guess. None when the player already made the same (normalized) guess."""
        expires_at = self.expiry(current_app.config.get('GUESS_HISTORY_TTL_SEC', 30 * 60))
        guess.expires_at = expires_at
        db.session.add(guess)
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            return None
        # History of a round lives as long as its latest write
        Guess.query.filter(Guess.round_id == guess.round_id, Guess.id != guess.id).update(
            {'expires_at': expires_at}, synchronize_session=False
        )
        db.session.commit()
        return guess

    # ---- round timer markers ----

    @fail_closed
    def put_timer_marker(self, game_id, round_id, start_time: int, duration_ms: int):
        buffer_sec = current_app.config.get('TIMER_MARKER_BUFFER_SEC', 10)
        marker = db.session.get(RoundTimerMarker, round_id) or RoundTimerMarker(round_id=round_id)
        marker.game_id = game_id
        marker.start_time = start_time
        marker.end_time = start_time + duration_ms
        marker.duration_ms = duration_ms
        marker.expires_at = marker.end_time + int(buffer_sec * 1000)
        db.session.add(marker)
        db.session.commit()
        return marker

    @fail_open(None)
    def get_timer_marker(self, round_id):
        marker = db.session.get(RoundTimerMarker, round_id)
        if marker is None or marker.expires_at <= now_ms():
            return None
        return marker

    @fail_open(False)
    def delete_timer_marker(self, round_id) -> bool:
        removed = RoundTimerMarker.query.filter_by(round_id=round_id).delete(synchronize_session=False)
        db.session.commit()
        return removed > 0

    # ---- lobby timers ----

    @fail_open(None)
    def get_lobby_timer(self, game_id):
        timer = db.session.get(LobbyTimer, game_id)
        if timer is None or timer.expires_at <= now_ms():
            return None
        return timer

    @fail_open(None)
    def save_lobby_timer(self, timer):
        timer.expires_at = self.expiry(current_app.config.get('LOBBY_TIMER_TTL_SEC', 10 * 60))
        timer = db.session.merge(timer)
        db.session.commit()
        return timer

    @fail_open(False)
    def delete_lobby_timer(self, game_id) -> bool:
        removed = LobbyTimer.query.filter_by(game_id=game_id).delete(synchronize_session=False)
        db.session.commit()
        return removed > 0

    # ---- event history ----

    @fail_open(None)
    def append_event(self, game_id, event_type: str, payload: dict, limit: int):
        expires_at = self.expiry(current_app.config.get('EVENT_HISTORY_TTL_SEC', 60 * 60))
        event = GameEvent(game_id=game_id, type=event_type, payload=payload,
                          timestamp=now_ms(), expires_at=expires_at)
        db.session.add(event)
        db.session.flush()
        GameEvent.query.filter_by(game_id=game_id).update({'expires_at': expires_at}, synchronize_session=False)
        oldest_kept = (
            GameEvent.query.filter_by(game_id=game_id)
            .order_by(GameEvent.id.desc())
            .offset(max(0, limit - 1))
            .first()
        )
        if oldest_kept is not None:
            GameEvent.query.filter(
                GameEvent.game_id == game_id, GameEvent.id < oldest_kept.id
            ).delete(synchronize_session=False)
        db.session.commit()
        return event.to_dict()

    @fail_open(list)
    def events_after(self, game_id, cursor: int = 0, limit: int = 50) -> list:
        events = (
            GameEvent.query.filter(
                GameEvent.game_id == game_id,
                GameEvent.id > (cursor or 0),
                GameEvent.expires_at > now_ms(),
            )
            .order_by(GameEvent.id.asc())
            .limit(limit)
            .all()
        )
        return [e.to_dict() for e in events]

    @fail_open(list)
    def recent_events(self, game_id, limit: int = 20) -> list:
        events = (
            GameEvent.query.filter(GameEvent.game_id == game_id, GameEvent.expires_at > now_ms())
            .order_by(GameEvent.id.desc())
            .limit(limit)
            .all()
        )
        return [e.to_dict() for e in reversed(events)]

    @fail_open(0)
    def latest_event_id(self, game_id) -> int:
        latest = db.session.query(func.max(GameEvent.id)).filter(GameEvent.game_id == game_id).scalar()
        return latest or 0

    def refresh(self) -> None:
        """End the current read transaction so the next query sees fresh rows."""
        db.session.rollback()

    # ---- phrase trackers ----

    @fail_closed
    def get_tracker(self, game_id):
        tracker = db.session.get(SessionPhraseTracker, game_id)
        if tracker is None:
            tracker = SessionPhraseTracker(game_id=game_id, expires_at=self.game_expiry())
        return tracker

    @fail_closed
    def save_tracker(self, tracker):
        tracker.expires_at = self.game_expiry()
        tracker = db.session.merge(tracker)
        db.session.commit()
        return tracker

    # ---- leaderboard ----

    def _entry(self, community, username):
        entry = LeaderboardEntry.query.filter_by(community=community, username=username).first()
        if entry is None:
            entry = LeaderboardEntry(community=community, username=username, score=0, games_played=0, games_won=0)
            db.session.add(entry)
        return entry

    @fail_open(False)
    def add_leaderboard_points(self, community, username, points: int) -> bool:
        entry = self._entry(community, username)
        entry.score = (entry.score or 0) + points
        entry.last_played = now_ms()
        db.session.commit()
        return True

    @fail_open(False)
    def record_games_played(self, community, usernames, winners=()) -> bool:
        for username in usernames:
            entry = self._entry(community, username)
            entry.games_played = (entry.games_played or 0) + 1
            if username in winners:
                entry.games_won = (entry.games_won or 0) + 1
            entry.last_played = now_ms()
        db.session.commit()
        return True

    @fail_open(list)
    def top_scores(self, community, limit: int) -> list:
        return (
            LeaderboardEntry.query.filter_by(community=community)
            .order_by(LeaderboardEntry.score.desc(), LeaderboardEntry.username.asc())
            .limit(limit)
            .all()
        )

    @fail_open(None)
    def leaderboard_rank(self, community, username):
        """(entry, 1-based rank) or None when the user has no entry."""
        entry = LeaderboardEntry.query.filter_by(community=community, username=username).first()
        if entry is None:
            return None
        try:
            ranked = (
                db.session.query(
                    LeaderboardEntry.username.label('username'),
                    func.rank().over(order_by=LeaderboardEntry.score.desc()).label('rank'),
                )
                .filter(LeaderboardEntry.community == community)
                .subquery()
            )
            rank = db.session.query(ranked.c.rank).filter(ranked.c.username == username).scalar()
        except OperationalError:
            # Backends without window functions: walk the board in score order
            db.session.rollback()
            current_app.logger.info(f"[leaderboard-rank] community={community} window functions unavailable, scanning")
            rank = None
            ahead = 0
            for other in LeaderboardEntry.query.filter_by(community=community).order_by(LeaderboardEntry.score.desc()):
                if other.score > entry.score:
                    ahead += 1
                elif other.username == username:
                    rank = ahead + 1
                    break
        return (entry, rank) if rank is not None else None

    # ---- maintenance ----

    @fail_closed
    def purge_expired(self) -> dict:
        now = now_ms()
        removed = {}
        expired_games = [g.id for g in Game.query.filter(Game.expires_at <= now).all()]
        if expired_games:
            round_ids = [r.id for r in Round.query.filter(Round.game_id.in_(expired_games)).all()]
            if round_ids:
                Guess.query.filter(Guess.round_id.in_(round_ids)).delete(synchronize_session=False)
            for model in (RoundTimerMarker, LobbyTimer, GameEvent, SessionPhraseTracker, Round, Player):
                removed[model.__tablename__] = model.query.filter(
                    model.game_id.in_(expired_games)
                ).delete(synchronize_session=False)
            removed['game'] = Game.query.filter(Game.id.in_(expired_games)).delete(synchronize_session=False)
        for model in (Guess, RoundTimerMarker, LobbyTimer, GameEvent):
            count = model.query.filter(model.expires_at <= now).delete(synchronize_session=False)
            removed[model.__tablename__] = removed.get(model.__tablename__, 0) + count
        db.session.commit()
        current_app.logger.info(f"[purge] removed={removed}")
        return removed
