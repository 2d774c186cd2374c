"""HTTP blueprints. Every route answers with the same envelope."""
from flask import jsonify

from emojirace.errors import GameError
from emojirace.models import now_ms


def ok(data=None, status: int = 200):
    return jsonify({'success': True, 'data': data, 'timestamp': now_ms()}), status


def fail(err: GameError):
    body = {'success': False, 'error': err.message, 'kind': err.kind, 'timestamp': now_ms()}
    return jsonify(body), err.status_code


def register_error_handler(blueprint) -> None:
    @blueprint.errorhandler(GameError)
    def _handle_game_error(err):
        return fail(err)
