"""Domain error type shared by the services and the HTTP layer."""

STATUS_BY_KIND = {
    'INVALID_INPUT': 400,
    'INVALID_GUESS': 400,
    'UNAUTHORIZED': 401,
    'NOT_MODERATOR': 403,
    'NOT_PRESENTER': 403,
    'PRESENTER_CANNOT_GUESS': 403,
    'NOT_IN_GAME': 403,
    'GAME_NOT_FOUND': 404,
    'ROUND_NOT_FOUND': 404,
    'GAME_NOT_ACTIVE': 409,
    'GAME_ALREADY_STARTED': 409,
    'GAME_FULL': 409,
    'INSUFFICIENT_PLAYERS': 409,
    'NO_ACTIVE_PLAYERS': 409,
    'GAME_COMPLETE': 409,
    'ROUND_NOT_WAITING': 409,
    'ROUND_NOT_ACTIVE': 409,
    'ROUND_IN_PROGRESS': 409,
    'ROUND_ALREADY_ENDED': 409,
    'DUPLICATE_GUESS': 409,
    'ROUND_EXPIRED': 410,
    'SERVER_ERROR': 500,
}


class GameError(Exception):
    def __init__(self, kind: str, message: str = ''):
        super().__init__(message or kind)
        self.kind = kind if kind in STATUS_BY_KIND else 'SERVER_ERROR'
        self.message = message or kind.replace('_', ' ').capitalize()

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]

    def to_dict(self):
        return {'kind': self.kind, 'error': self.message}

    def __repr__(self):
        return f"GameError({self.kind!r}, {self.message!r})"
