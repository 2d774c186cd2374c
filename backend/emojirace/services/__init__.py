from types import SimpleNamespace

from flask import current_app

from .telemetry import Telemetry
from .games.store import GameStore
from .games.broadcast import EventBroadcaster
from .games.phrases import PhraseSelector
from .games.rounds import RoundOrchestrator
from .games.guesses import GuessEvaluator
from .games.lobby import LobbyTimerController
from .games.sessions import GameSessions
from .games.leaderboard import Leaderboard


def init_services(app, telemetry=None):
    """Wire the game components for this app and hang them off ``app.extensions``."""
    telemetry = telemetry or Telemetry()
    telemetry.init(app)
    store = GameStore(telemetry)
    broadcaster = EventBroadcaster(store, telemetry)
    selector = PhraseSelector.from_config(app.config)
    orchestrator = RoundOrchestrator(app, store, broadcaster, selector, telemetry)
    evaluator = GuessEvaluator(store, broadcaster, orchestrator, telemetry)
    lobby = LobbyTimerController(store, orchestrator, telemetry)
    sessions = GameSessions(store, broadcaster, orchestrator, lobby, telemetry)
    leaderboard = Leaderboard(store, telemetry)

    services = SimpleNamespace(
        telemetry=telemetry,
        store=store,
        broadcaster=broadcaster,
        selector=selector,
        orchestrator=orchestrator,
        timer=orchestrator.timer,
        evaluator=evaluator,
        lobby=lobby,
        sessions=sessions,
        leaderboard=leaderboard,
    )
    app.extensions['emojirace'] = services
    return services


def get_services():
    return current_app.extensions['emojirace']


def shutdown_services(app):
    """Stop background timers and flush telemetry. Returns the final counters."""
    services = app.extensions.get('emojirace')
    if services is None:
        return {}
    cancelled = services.timer.cancel_all()
    app.logger.info(f"[shutdown] cancelled timers={cancelled}")
    return services.telemetry.shutdown()
