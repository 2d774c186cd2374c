from flask import Blueprint, request
from flask_login import login_required

from emojirace.api import ok, register_error_handler
from emojirace.errors import GameError
from emojirace.services import get_services
from emojirace.validation import parse_int_arg, is_valid_username, GAME_ID_RE

leaderboard = Blueprint('leaderboard', __name__)
register_error_handler(leaderboard)


def _community(name):
    if not GAME_ID_RE.match(name or '') or len(name) > 64:
        raise GameError('INVALID_INPUT', 'Invalid community')
    return name


@leaderboard.route('/<string:community>', methods=['GET'])
@login_required
def top(community):
    limit = parse_int_arg(request.args.get('limit'), default=10, minimum=1, maximum=100)
    entries = get_services().leaderboard.top(_community(community), limit)
    return ok({'community': community, 'entries': entries})


@leaderboard.route('/<string:community>/rank/<string:username>', methods=['GET'])
@login_required
def rank(community, username):
    if not is_valid_username(username):
        raise GameError('INVALID_INPUT', 'Invalid username')
    entry = get_services().leaderboard.rank(_community(community), username)
    return ok({'community': community, 'entry': entry})
