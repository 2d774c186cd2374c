from flask_socketio import join_room, leave_room, emit

from emojirace import socketio
from emojirace.models import now_ms
from emojirace.services.games.broadcast import room_for
from emojirace.validation import GAME_ID_RE


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def _game_id(data):
    game_id = data.get('game_id') if isinstance(data, dict) else None
    if not isinstance(game_id, str) or not GAME_ID_RE.match(game_id):
        emit('error', {'message': 'game_id is required'})
        return None
    return game_id


def handle_join_game(data):
    game_id = _game_id(data)
    if not game_id:
        return
    room = room_for(game_id)
    join_room(room)
    emit('joined', {'room': room, 'game_id': game_id})


def handle_leave_game(data):
    game_id = _game_id(data)
    if not game_id:
        return
    room = room_for(game_id)
    leave_room(room)
    emit('left', {'room': room, 'game_id': game_id})


def handle_ping(data):
    payload = dict(data) if isinstance(data, dict) else {}
    payload['server_time'] = now_ms()
    emit('pong', payload)


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    handlers = {
        'connect': handle_connect,
        'join_game': handle_join_game,
        'leave_game': handle_leave_game,
        'ping': handle_ping,
    }
    for name, handler in handlers.items():
        socketio.on_event(name, handler, namespace='/ws')
    if testing:
        for name, handler in handlers.items():
            socketio.on_event(name, handler, namespace='/')
