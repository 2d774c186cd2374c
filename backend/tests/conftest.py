import os
import sys
import pytest
from flask import g

# Ensure the backend root (containing the `emojirace` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from config import Config
from emojirace import create_app, db, socketio
from emojirace.services import shutdown_services

TEST_PHRASES = [
    {'id': 'food_001', 'text': 'Apple pie', 'category': 'food', 'difficulty': 'easy', 'hints': ['Dessert']},
    {'id': 'animals_001', 'text': 'Polar bear', 'category': 'animals', 'difficulty': 'easy', 'hints': ['Arctic']},
    {'id': 'places_001', 'text': 'Paris', 'category': 'places', 'difficulty': 'medium', 'hints': []},
]


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    PHRASE_CATALOG = TEST_PHRASES
    LONG_POLL_TIMEOUT_SEC = 0
    LONG_POLL_INTERVAL_SEC = 0
    ROUND_TRANSITION_DELAY_SEC = 0


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)

    # The fixture keeps one app context open, so `g` (and flask-login's
    # cached user in it) would otherwise leak between test-client requests.
    @application.before_request
    def _reset_request_user():
        g.pop('_login_user', None)

    with application.app_context():
        # Ensure models are imported so tables are created
        import emojirace.models  # noqa: F401
        db.create_all()
        yield application
        shutdown_services(application)
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def services(flask_app):
    return flask_app.extensions['emojirace']


@pytest.fixture()
def as_user():
    def _headers(username, community=None):
        headers = {'X-Username': username}
        if community:
            headers['X-Community'] = community
        return headers
    return _headers


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def started_game(services):
    """Two-player game (alice then bob) with round 1 waiting for alice's emojis."""
    created = services.sessions.create_game('general', 'alice')
    game_id = created['game']['id']
    services.sessions.join_game('general', 'bob', game_id=game_id)
    begun = services.orchestrator.begin_game(game_id)
    return {'game_id': game_id, 'round': begun['round']}
