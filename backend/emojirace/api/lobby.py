from flask import Blueprint, request
from flask_login import login_required, current_user

from emojirace.api import ok, register_error_handler
from emojirace.services import get_services
from emojirace.validation import validate_game_id

lobby = Blueprint('lobby', __name__)
register_error_handler(lobby)


@lobby.route('/<string:game_id>/timer', methods=['GET'])
@login_required
def get_timer(game_id):
    validate_game_id(game_id)
    return ok({'timer': get_services().lobby.get(game_id)})


@lobby.route('/<string:game_id>/timer/sync', methods=['POST'])
@login_required
def sync_timer(game_id):
    validate_game_id(game_id)
    data = request.get_json(silent=True) or {}
    return ok(get_services().lobby.sync(game_id, data.get('client_time')))


@lobby.route('/<string:game_id>/timer/reset', methods=['POST'])
@login_required
def reset_timer(game_id):
    validate_game_id(game_id)
    services = get_services()
    services.sessions.require_player(game_id, current_user.username)
    count = len(services.store.active_players(game_id))
    return ok({'timer': services.lobby.reset(game_id, count)})


@lobby.route('/<string:game_id>/timer/check-auto-start', methods=['POST'])
@login_required
def check_auto_start(game_id):
    validate_game_id(game_id)
    services = get_services()
    started = services.lobby.try_auto_start(game_id)
    game = services.store.get_game(game_id)
    return ok({
        'started': started,
        'game': game.to_dict() if game else None,
        'timer': services.lobby.get(game_id),
    })
