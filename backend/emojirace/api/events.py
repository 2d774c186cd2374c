from flask import Blueprint, request
from flask_login import login_required, current_user

from emojirace.api import ok, register_error_handler
from emojirace.services import get_services
from emojirace.validation import validate_game_id, parse_int_arg

events = Blueprint('events', __name__)
register_error_handler(events)


@events.route('/<string:game_id>', methods=['GET'])
@login_required
def subscribe(game_id):
    """Long-poll: answers once events newer than ``last_event_id`` exist or the poll times out."""
    validate_game_id(game_id)
    cursor = parse_int_arg(request.args.get('last_event_id'), default=0, minimum=0)
    return ok(get_services().broadcaster.subscribe(game_id, cursor))


@events.route('/<string:game_id>/history', methods=['GET'])
@login_required
def history(game_id):
    validate_game_id(game_id)
    since = parse_int_arg(request.args.get('since'), default=None, minimum=0)
    limit = parse_int_arg(request.args.get('limit'), default=20, minimum=1, maximum=50)
    batch = get_services().broadcaster.history(game_id, since=since, limit=limit)
    last_id = batch[-1]['id'] if batch else (since or 0)
    return ok({'events': batch, 'last_event_id': last_id})


@events.route('/<string:game_id>/heartbeat', methods=['POST'])
@login_required
def heartbeat(game_id):
    validate_game_id(game_id)
    return ok(get_services().sessions.heartbeat(game_id, current_user.username))


@events.route('/<string:game_id>/connections', methods=['GET'])
@login_required
def connections(game_id):
    validate_game_id(game_id)
    connected = get_services().sessions.connections(game_id)
    return ok({'game_id': game_id, 'connections': connected, 'active_connections': len(connected)})
