from flask import Blueprint, jsonify, current_app

from emojirace.models import now_ms

main = Blueprint('main', __name__)


@main.route('/api/health', methods=['GET'])
def health():
    services = current_app.extensions['emojirace']
    return jsonify({
        'success': True,
        'data': {
            'status': 'ok',
            'active_timers': len(services.timer.active_rounds()),
            'phrases': services.selector.counts()['total'],
            'counters': services.telemetry.snapshot(),
        },
        'timestamp': now_ms(),
    })
