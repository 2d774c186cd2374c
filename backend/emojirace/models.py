from emojirace import db
import time
import uuid

GAME_LOBBY = 'lobby'
GAME_ACTIVE = 'active'
GAME_PAUSED = 'paused'
GAME_ENDED = 'ended'

ROUND_WAITING = 'waiting'
ROUND_ACTIVE = 'active'
ROUND_ENDED = 'ended'
OPEN_ROUND_STATUSES = (ROUND_WAITING, ROUND_ACTIVE)


def now_ms() -> int:
    return int(time.time() * 1000)


def generate_id(prefix: str) -> str:
    """Generate a short, url-safe id such as ``game_3f9a1c0b2d4e``."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def player_id_for(username: str) -> str:
    return f"player_{username}"


class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.String(64), primary_key=True)
    community = db.Column(db.String(64), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default=GAME_LOBBY)  # lobby, active, paused, ended
    current_round_number = db.Column(db.Integer, nullable=False, default=0)
    max_rounds = db.Column(db.Integer, nullable=False, default=5)
    moderator_id = db.Column(db.String(96), nullable=True)
    current_round_id = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.BigInteger, nullable=False)
    updated_at = db.Column(db.BigInteger, nullable=False)
    expires_at = db.Column(db.BigInteger, nullable=False, index=True)
    players = db.relationship('Player', back_populates='game', order_by='Player.joined_at')

    def __init__(self, **kwargs):
        super(Game, self).__init__(**kwargs)
        if not self.id:
            self.id = generate_id('game')
        now = now_ms()
        if self.created_at is None:
            self.created_at = now
        if self.updated_at is None:
            self.updated_at = now

    def to_dict(self):
        return {
            'id': self.id,
            'community': self.community,
            'status': self.status,
            'current_round_number': self.current_round_number,
            'max_rounds': self.max_rounds,
            'moderator_id': self.moderator_id,
            'current_round_id': self.current_round_id,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }


class Player(db.Model):
    __tablename__ = 'player'
    __table_args__ = (db.UniqueConstraint('game_id', 'player_id', name='uq_player_game_player'),)
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.String(64), db.ForeignKey('game.id'), nullable=False, index=True)
    player_id = db.Column(db.String(96), nullable=False)
    username = db.Column(db.String(64), nullable=False)
    score = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_moderator = db.Column(db.Boolean, nullable=False, default=False)
    joined_at = db.Column(db.BigInteger, nullable=False)
    last_seen = db.Column(db.BigInteger, nullable=True)
    game = db.relationship('Game', back_populates='players')

    def to_dict(self):
        return {
            'id': self.player_id,
            'username': self.username,
            'score': self.score,
            'is_active': self.is_active,
            'is_moderator': self.is_moderator,
            'joined_at': self.joined_at,
        }


class Round(db.Model):
    __tablename__ = 'round'
    __table_args__ = (db.UniqueConstraint('game_id', 'round_number', name='uq_round_game_number'),)
    id = db.Column(db.String(64), primary_key=True)
    game_id = db.Column(db.String(64), db.ForeignKey('game.id'), nullable=False, index=True)
    round_number = db.Column(db.Integer, nullable=False)
    presenter_id = db.Column(db.String(96), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=ROUND_WAITING)  # waiting, active, ended
    phrase_id = db.Column(db.String(64), nullable=True)
    phrase_text = db.Column(db.String(200), nullable=False, default='')
    phrase_category = db.Column(db.String(32), nullable=False, default='')
    phrase_difficulty = db.Column(db.String(16), nullable=False, default='easy')
    phrase_hints = db.Column(db.JSON, nullable=True)
    emoji_sequence = db.Column(db.JSON, nullable=True)
    start_time = db.Column(db.BigInteger, nullable=False)
    end_time = db.Column(db.BigInteger, nullable=True)
    winner_id = db.Column(db.String(96), nullable=True)
    end_reason = db.Column(db.String(16), nullable=True)
    expires_at = db.Column(db.BigInteger, nullable=False, index=True)
    guesses = db.relationship('Guess', backref='round', order_by='Guess.id', lazy='select')

    def __init__(self, **kwargs):
        super(Round, self).__init__(**kwargs)
        if not self.id:
            self.id = generate_id('round')
        if self.start_time is None:
            self.start_time = now_ms()

    @property
    def phrase(self):
        return {
            'id': self.phrase_id or '',
            'text': self.phrase_text or '',
            'category': self.phrase_category or '',
            'difficulty': self.phrase_difficulty or 'easy',
            'hints': list(self.phrase_hints or []),
        }

    def to_dict(self, reveal_phrase=True):
        phrase = self.phrase
        if not reveal_phrase:
            # Guessers only learn the shape of the answer until the round is over
            phrase = {
                'id': phrase['id'],
                'text': '',
                'category': phrase['category'],
                'difficulty': phrase['difficulty'],
                'hints': [],
                'word_count': len(phrase['text'].split()),
            }
        return {
            'id': self.id,
            'game_id': self.game_id,
            'round_number': self.round_number,
            'presenter_id': self.presenter_id,
            'phrase': phrase,
            'emoji_sequence': list(self.emoji_sequence or []),
            'guesses': [g.to_dict() for g in self.guesses],
            'status': self.status,
            'start_time': self.start_time,
            'end_time': self.end_time,
            'winner_id': self.winner_id,
            'end_reason': self.end_reason,
        }


class Guess(db.Model):
    __tablename__ = 'guess'
    # One row per player per distinct normalized guess
    __table_args__ = (db.UniqueConstraint('round_id', 'player_id', 'normalized_text', name='uq_guess_round_player_text'),)
    id = db.Column(db.Integer, primary_key=True)
    round_id = db.Column(db.String(64), db.ForeignKey('round.id'), nullable=False, index=True)
    player_id = db.Column(db.String(96), nullable=False)
    username = db.Column(db.String(64), nullable=False)
    text = db.Column(db.String(200), nullable=False)
    normalized_text = db.Column(db.String(200), nullable=False)
    similarity = db.Column(db.Float, nullable=False, default=0.0)
    is_correct = db.Column(db.Boolean, nullable=False, default=False)
    timestamp = db.Column(db.BigInteger, nullable=False)
    expires_at = db.Column(db.BigInteger, nullable=False, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'player_id': self.player_id,
            'username': self.username,
            'text': self.text,
            'similarity': round(self.similarity, 4),
            'is_correct': self.is_correct,
            'timestamp': self.timestamp,
        }


class RoundTimerMarker(db.Model):
    __tablename__ = 'round_timer'
    round_id = db.Column(db.String(64), primary_key=True)
    game_id = db.Column(db.String(64), nullable=False, index=True)
    start_time = db.Column(db.BigInteger, nullable=False)
    end_time = db.Column(db.BigInteger, nullable=False)
    duration_ms = db.Column(db.Integer, nullable=False)
    expires_at = db.Column(db.BigInteger, nullable=False, index=True)

    def remaining(self, now=None) -> int:
        return max(0, self.end_time - (now if now is not None else now_ms()))


class LobbyTimer(db.Model):
    __tablename__ = 'lobby_timer'
    game_id = db.Column(db.String(64), primary_key=True)
    is_active = db.Column(db.Boolean, nullable=False, default=False)
    start_time = db.Column(db.BigInteger, nullable=False)
    duration = db.Column(db.Integer, nullable=False)
    remaining_time = db.Column(db.Integer, nullable=False)
    last_sync_time = db.Column(db.BigInteger, nullable=False)
    player_count = db.Column(db.Integer, nullable=False, default=0)
    expires_at = db.Column(db.BigInteger, nullable=False, index=True)

    def to_dict(self):
        return {
            'is_active': self.is_active,
            'start_time': self.start_time,
            'duration': self.duration,
            'remaining_time': self.remaining_time,
            'last_sync_time': self.last_sync_time,
            'player_count': self.player_count,
        }


class GameEvent(db.Model):
    __tablename__ = 'game_event'
    # The autoincrement id doubles as the replay cursor handed to clients
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.String(64), nullable=False, index=True)
    type = db.Column(db.String(32), nullable=False)
    payload = db.Column(db.JSON, nullable=False)
    timestamp = db.Column(db.BigInteger, nullable=False)
    expires_at = db.Column(db.BigInteger, nullable=False, index=True)

    def to_dict(self):
        event = dict(self.payload or {})
        event.update({
            'id': self.id,
            'type': self.type,
            'game_id': self.game_id,
            'timestamp': self.timestamp,
        })
        return event


class SessionPhraseTracker(db.Model):
    __tablename__ = 'phrase_tracker'
    game_id = db.Column(db.String(64), primary_key=True)
    used_phrase_ids = db.Column(db.JSON, nullable=False)
    category_usage = db.Column(db.JSON, nullable=False)
    difficulty_usage = db.Column(db.JSON, nullable=False)
    created_at = db.Column(db.BigInteger, nullable=False)
    last_used = db.Column(db.BigInteger, nullable=False)
    expires_at = db.Column(db.BigInteger, nullable=False, index=True)

    def __init__(self, **kwargs):
        super(SessionPhraseTracker, self).__init__(**kwargs)
        now = now_ms()
        if self.used_phrase_ids is None:
            self.used_phrase_ids = []
        if self.category_usage is None:
            self.category_usage = {}
        if self.difficulty_usage is None:
            self.difficulty_usage = {}
        if self.created_at is None:
            self.created_at = now
        if self.last_used is None:
            self.last_used = now
        if self.expires_at is None:
            self.expires_at = now

    def to_dict(self):
        return {
            'game_id': self.game_id,
            'total_phrases_used': len(self.used_phrase_ids or []),
            'category_usage': dict(self.category_usage or {}),
            'difficulty_usage': dict(self.difficulty_usage or {}),
        }


class LeaderboardEntry(db.Model):
    __tablename__ = 'leaderboard_entry'
    __table_args__ = (db.UniqueConstraint('community', 'username', name='uq_leaderboard_community_username'),)
    id = db.Column(db.Integer, primary_key=True)
    community = db.Column(db.String(64), nullable=False, index=True)
    username = db.Column(db.String(64), nullable=False)
    score = db.Column(db.Integer, nullable=False, default=0)
    games_played = db.Column(db.Integer, nullable=False, default=0)
    games_won = db.Column(db.Integer, nullable=False, default=0)
    last_played = db.Column(db.BigInteger, nullable=True)

    def to_dict(self, rank=None):
        data = {
            'username': self.username,
            'score': self.score,
            'games_played': self.games_played,
            'games_won': self.games_won,
            'last_played': self.last_played,
        }
        if rank is not None:
            data['rank'] = rank
        return data
