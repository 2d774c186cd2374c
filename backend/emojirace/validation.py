import re

from emojirace.errors import GameError

USERNAME_RE = re.compile(r'^[a-zA-Z0-9_-]+$')
GAME_ID_RE = re.compile(r'^[a-zA-Z0-9_-]+$')
GUESS_RE = re.compile(r"^[a-zA-Z0-9\s\-'.,!?]+$")

MIN_USERNAME_LENGTH = 3
MAX_USERNAME_LENGTH = 20
MAX_GUESS_LENGTH = 100
MAX_EMOJI_SEQUENCE_LENGTH = 20
MAX_EMOJI_LENGTH = 10


def is_valid_username(username) -> bool:
    if not isinstance(username, str):
        return False
    if not (MIN_USERNAME_LENGTH <= len(username) <= MAX_USERNAME_LENGTH):
        return False
    return bool(USERNAME_RE.match(username))


def validate_game_id(game_id) -> str:
    if not isinstance(game_id, str) or not game_id or len(game_id) > 64 or not GAME_ID_RE.match(game_id):
        raise GameError('INVALID_INPUT', 'Invalid game id')
    return game_id


def validate_guess(text) -> str:
    """Return the trimmed guess or raise INVALID_GUESS."""
    if not isinstance(text, str):
        raise GameError('INVALID_GUESS', 'Guess must be a string')
    trimmed = text.strip()
    if not trimmed:
        raise GameError('INVALID_GUESS', 'Guess cannot be empty')
    if len(trimmed) > MAX_GUESS_LENGTH:
        raise GameError('INVALID_GUESS', f'Guess must be at most {MAX_GUESS_LENGTH} characters')
    if not GUESS_RE.match(trimmed):
        raise GameError('INVALID_GUESS', 'Guess contains invalid characters')
    return trimmed


def validate_emoji_sequence(sequence) -> list:
    if not isinstance(sequence, list) or not sequence:
        raise GameError('INVALID_INPUT', 'Emoji sequence must be a non-empty list')
    if len(sequence) > MAX_EMOJI_SEQUENCE_LENGTH:
        raise GameError('INVALID_INPUT', f'Emoji sequence must have at most {MAX_EMOJI_SEQUENCE_LENGTH} entries')
    cleaned = []
    for emoji in sequence:
        if not isinstance(emoji, str) or not emoji.strip():
            raise GameError('INVALID_INPUT', 'Emoji entries must be non-empty strings')
        if len(emoji) > MAX_EMOJI_LENGTH:
            raise GameError('INVALID_INPUT', 'Emoji entry is too long')
        cleaned.append(emoji.strip())
    return cleaned


def validate_max_rounds(value, default: int, limit: int) -> int:
    if value is None:
        return default
    try:
        rounds = int(value)
    except (TypeError, ValueError):
        raise GameError('INVALID_INPUT', 'max_rounds must be an integer')
    if rounds < 1 or rounds > limit:
        raise GameError('INVALID_INPUT', f'max_rounds must be between 1 and {limit}')
    return rounds


def parse_int_arg(value, default=None, minimum=None, maximum=None):
    """Lenient query-string integer parsing; bad input falls back to the default."""
    if value is None or value == '':
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    if minimum is not None:
        parsed = max(minimum, parsed)
    if maximum is not None:
        parsed = min(maximum, parsed)
    return parsed
