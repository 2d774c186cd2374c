from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from emojirace.auth import register_identity_loader
    register_identity_loader(login_manager)

    from emojirace.services import init_services
    init_services(flask_app)

    from emojirace.main import main
    flask_app.register_blueprint(main)

    from emojirace.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from emojirace.api.lobby import lobby
    flask_app.register_blueprint(lobby, url_prefix='/api/lobby')

    from emojirace.api.events import events
    flask_app.register_blueprint(events, url_prefix='/api/events')

    from emojirace.api.leaderboard import leaderboard
    flask_app.register_blueprint(leaderboard, url_prefix='/api/leaderboard')

    from emojirace.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates every table."""
        import emojirace.models  # noqa: F401
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    @click.command('purge-expired')
    def purge_expired_command():
        """Deletes expired games, rounds, timers and event history."""
        with flask_app.app_context():
            removed = flask_app.extensions['emojirace'].store.purge_expired()
            print(f'Purged {sum(removed.values())} rows: {removed}')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(purge_expired_command)

    return flask_app
