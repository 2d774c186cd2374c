import os


def _flag(name, default):
    return os.environ.get(name, default).lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///emojirace.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Identity is supplied by the host; these headers carry it on every request
    IDENTITY_HEADER = os.environ.get('IDENTITY_HEADER', 'X-Username')
    COMMUNITY_HEADER = os.environ.get('COMMUNITY_HEADER', 'X-Community')
    DEFAULT_COMMUNITY = os.environ.get('DEFAULT_COMMUNITY', 'general')
    # Round timing (seconds)
    ROUND_DURATION_SEC = int(os.environ.get('ROUND_DURATION_SEC', '120'))
    TIMER_TICK_SEC = float(os.environ.get('TIMER_TICK_SEC', '1'))
    TIMER_MARKER_BUFFER_SEC = int(os.environ.get('TIMER_MARKER_BUFFER_SEC', '10'))
    # Delay before the next round starts on its own. 0 disables.
    ROUND_TRANSITION_DELAY_SEC = int(os.environ.get('ROUND_TRANSITION_DELAY_SEC', '5'))
    # Optional: heartbeat interval for timer worker logs (sec). 0 disables.
    TIMER_HEARTBEAT_SEC = int(os.environ.get('TIMER_HEARTBEAT_SEC', '0'))
    # Players and rounds
    MIN_PLAYERS = int(os.environ.get('MIN_PLAYERS', '2'))
    MAX_PLAYERS = int(os.environ.get('MAX_PLAYERS', '8'))
    DEFAULT_MAX_ROUNDS = int(os.environ.get('DEFAULT_MAX_ROUNDS', '5'))
    MAX_ROUNDS_LIMIT = int(os.environ.get('MAX_ROUNDS_LIMIT', '10'))
    # Scoring and matching
    CORRECT_GUESS_POINTS = int(os.environ.get('CORRECT_GUESS_POINTS', '10'))
    PRESENTER_POINTS = int(os.environ.get('PRESENTER_POINTS', '5'))
    FUZZY_MATCH_THRESHOLD = float(os.environ.get('FUZZY_MATCH_THRESHOLD', '0.8'))
    PHRASE_ALLOW_REPEATS = _flag('PHRASE_ALLOW_REPEATS', 'false')
    # Lobby countdown
    LOBBY_COUNTDOWN_SEC = int(os.environ.get('LOBBY_COUNTDOWN_SEC', '30'))
    LOBBY_MIN_PLAYERS = int(os.environ.get('LOBBY_MIN_PLAYERS', '2'))
    LOBBY_RESET_ON_JOIN = _flag('LOBBY_RESET_ON_JOIN', 'true')
    # Long-poll subscription
    LONG_POLL_TIMEOUT_SEC = float(os.environ.get('LONG_POLL_TIMEOUT_SEC', '25'))
    LONG_POLL_INTERVAL_SEC = float(os.environ.get('LONG_POLL_INTERVAL_SEC', '1'))
    EVENT_HISTORY_LIMIT = int(os.environ.get('EVENT_HISTORY_LIMIT', '50'))
    # A player counts as connected while heartbeats keep arriving within this window
    CONNECTION_WINDOW_SEC = int(os.environ.get('CONNECTION_WINDOW_SEC', '30'))
    # Expiry windows (seconds); nothing keyed by a game may outlive the game itself
    GAME_SESSION_TTL_SEC = int(os.environ.get('GAME_SESSION_TTL_SEC', str(4 * 60 * 60)))
    GUESS_HISTORY_TTL_SEC = int(os.environ.get('GUESS_HISTORY_TTL_SEC', str(30 * 60)))
    EVENT_HISTORY_TTL_SEC = int(os.environ.get('EVENT_HISTORY_TTL_SEC', str(60 * 60)))
    LOBBY_TIMER_TTL_SEC = int(os.environ.get('LOBBY_TIMER_TTL_SEC', str(10 * 60)))
