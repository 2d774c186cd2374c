from flask import current_app, request
from flask_login import UserMixin

from emojirace.errors import GameError
from emojirace.models import player_id_for
from emojirace.validation import is_valid_username


class Identity(UserMixin):
    """The username handed to us by the host for the current request."""

    def __init__(self, username: str, community: str):
        self.id = username
        self.username = username
        self.community = community

    @property
    def player_id(self) -> str:
        return player_id_for(self.username)


def request_community() -> str:
    header = current_app.config.get('COMMUNITY_HEADER', 'X-Community')
    community = (request.headers.get(header) or '').strip()
    return community or current_app.config.get('DEFAULT_COMMUNITY', 'general')


def load_identity_from_request(req):
    header = current_app.config.get('IDENTITY_HEADER', 'X-Username')
    username = (req.headers.get(header) or '').strip()
    if not is_valid_username(username):
        return None
    return Identity(username, request_community())


def register_identity_loader(login_manager) -> None:
    login_manager.request_loader(load_identity_from_request)

    @login_manager.user_loader
    def _load_user(user_id):
        # Sessions are not used; identity comes with every request
        return None

    @login_manager.unauthorized_handler
    def _unauthorized():
        from emojirace.api import fail
        return fail(GameError('UNAUTHORIZED', 'A valid username is required'))
