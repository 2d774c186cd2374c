from flask import Blueprint, request
from flask_login import login_required, current_user

from emojirace.api import ok, register_error_handler
from emojirace.auth import request_community
from emojirace.errors import GameError
from emojirace.services import get_services
from emojirace.services.games.rounds import END_EXPLICIT
from emojirace.validation import validate_game_id

games = Blueprint('games', __name__)
register_error_handler(games)


def _body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise GameError('INVALID_INPUT', 'Request body must be a JSON object')
    return data


@games.route('/create', methods=['POST'])
@login_required
def create_game():
    data = _body()
    joined = get_services().sessions.create_game(request_community(), current_user.username, data.get('max_rounds'))
    return ok(joined, 201)


@games.route('/join', methods=['POST'])
@login_required
def join_game():
    data = _body()
    game_id = data.get('game_id')
    if game_id is not None:
        validate_game_id(game_id)
    joined = get_services().sessions.join_game(request_community(), current_user.username, game_id=game_id)
    return ok(joined)


@games.route('/<string:game_id>/leave', methods=['POST'])
@login_required
def leave_game(game_id):
    validate_game_id(game_id)
    return ok(get_services().sessions.leave_game(game_id, current_user.username))


@games.route('/<string:game_id>/start', methods=['POST'])
@login_required
def start_game(game_id):
    validate_game_id(game_id)
    return ok(get_services().sessions.start_game(game_id, current_user.username))


@games.route('/<string:game_id>/state', methods=['GET'])
@login_required
def get_game_state(game_id):
    validate_game_id(game_id)
    return ok(get_services().sessions.get_state(game_id, current_user.username))


@games.route('/<string:game_id>/rounds/start', methods=['POST'])
@login_required
def start_round(game_id):
    validate_game_id(game_id)
    services = get_services()
    services.sessions.require_moderator(game_id, current_user.username)
    round_number = _body().get('round_number')
    if round_number is not None:
        try:
            round_number = int(round_number)
        except (TypeError, ValueError):
            raise GameError('INVALID_INPUT', 'round_number must be an integer')
        if round_number < 1:
            raise GameError('INVALID_INPUT', 'round_number must be positive')
    return ok(services.orchestrator.start_round(game_id, round_number), 201)


@games.route('/<string:game_id>/rounds/<string:round_id>/emojis', methods=['POST'])
@login_required
def submit_emojis(game_id, round_id):
    validate_game_id(game_id)
    validate_game_id(round_id)
    data = _body()
    services = get_services()
    services.sessions.require_player(game_id, current_user.username)
    rnd = services.orchestrator.submit_emojis(
        game_id, round_id, data.get('emojis'), player_id=current_user.player_id
    )
    return ok(rnd)


@games.route('/<string:game_id>/rounds/<string:round_id>/guess', methods=['POST'])
@login_required
def submit_guess(game_id, round_id):
    validate_game_id(game_id)
    validate_game_id(round_id)
    data = _body()
    result = get_services().evaluator.submit_guess(
        game_id, round_id, data.get('guess'), current_user.player_id, current_user.username
    )
    return ok(result)


@games.route('/<string:game_id>/rounds/<string:round_id>/end', methods=['POST'])
@login_required
def end_round(game_id, round_id):
    validate_game_id(game_id)
    validate_game_id(round_id)
    services = get_services()
    services.sessions.require_round_control(game_id, round_id, current_user.username)
    return ok(services.orchestrator.end_round(game_id, round_id, END_EXPLICIT))


@games.route('/<string:game_id>/next-round', methods=['POST'])
@login_required
def next_round(game_id):
    validate_game_id(game_id)
    services = get_services()
    services.sessions.require_player(game_id, current_user.username)
    expected = _body().get('expected_round_number')
    if expected is not None:
        try:
            expected = int(expected)
        except (TypeError, ValueError):
            raise GameError('INVALID_INPUT', 'expected_round_number must be an integer')
    return ok(services.orchestrator.next_round(game_id, expected_round_number=expected))
