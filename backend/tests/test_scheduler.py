import time

import pytest

from emojirace import create_app, db
from emojirace.models import RoundTimerMarker, now_ms
from emojirace.services import shutdown_services
from conftest import TestConfig


@pytest.fixture()
def flask_app(tmp_path):
    class SchedulerConfig(TestConfig):
        # Timer loops run on their own threads, each needs its own connection
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'scheduler.db'}"
        ENABLE_SCHEDULER_IN_TESTS = True
        TIMER_TICK_SEC = 0.05

    application = create_app(SchedulerConfig)
    with application.app_context():
        import emojirace.models  # noqa: F401
        db.create_all()
        yield application
        shutdown_services(application)
        time.sleep(0.2)
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def _wait_for(check, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        db.session.rollback()
        if check():
            return True
        time.sleep(0.02)
    return False


def _updates(services, game_id):
    return [e for e in services.broadcaster.history(game_id, limit=50) if e['type'] == 'TIMER_UPDATE']


def _counting_ticks(services, monkeypatch):
    calls = []
    original = services.timer.tick

    def tick(game_id, round_id):
        calls.append(round_id)
        return original(game_id, round_id)

    monkeypatch.setattr(services.timer, 'tick', tick)
    return calls


def _activate(services, started_game):
    game_id, round_id = started_game['game_id'], started_game['round']['id']
    services.orchestrator.submit_emojis(game_id, round_id, ['🍎'])
    return game_id, round_id


def test_loop_ticks_until_stopped(services, started_game, monkeypatch):
    calls = _counting_ticks(services, monkeypatch)
    game_id, round_id = _activate(services, started_game)
    assert services.timer.active_rounds() == [round_id]
    assert _wait_for(lambda: len(_updates(services, game_id)) >= 2)

    services.timer.stop(round_id)
    assert services.timer.active_rounds() == []
    time.sleep(0.2)
    settled = len(calls)
    time.sleep(0.3)
    assert len(calls) == settled
    assert services.store.get_timer_marker(round_id) is None


def test_cancelled_loop_leaves_marker(services, started_game, monkeypatch):
    calls = _counting_ticks(services, monkeypatch)
    game_id, round_id = _activate(services, started_game)
    assert _wait_for(lambda: len(calls) >= 1)

    assert services.timer.cancel_all() == 1
    time.sleep(0.2)
    settled = len(calls)
    time.sleep(0.3)
    assert len(calls) == settled
    assert services.store.get_timer_marker(round_id) is not None
    assert services.store.get_round(round_id).status == 'active'


def test_loop_exits_once_marker_is_gone(services, started_game):
    game_id, round_id = _activate(services, started_game)
    assert services.timer.active_rounds() == [round_id]

    # Marker removed without touching the cancel signal
    assert services.store.delete_timer_marker(round_id) is True
    assert _wait_for(lambda: services.timer.active_rounds() == [])
    assert services.store.get_round(round_id).status == 'active'


def test_loop_ends_round_on_timeout(services, started_game):
    game_id, round_id = _activate(services, started_game)
    marker = db.session.get(RoundTimerMarker, round_id)
    marker.end_time = now_ms() - 1
    db.session.commit()

    assert _wait_for(lambda: services.store.get_round(round_id).status == 'ended')
    rnd = services.store.get_round(round_id)
    assert rnd.end_reason == 'timeout'
    assert rnd.winner_id is None
    assert _wait_for(lambda: services.timer.active_rounds() == [])
    types = [e['type'] for e in services.broadcaster.history(game_id, limit=50)]
    assert types.count('ROUND_ENDED') == 1


def test_shutdown_flushes_counters(flask_app, services, started_game):
    _activate(services, started_game)
    final = shutdown_services(flask_app)
    assert final['timer.started'] == 1
    assert final['games.started'] == 1
    assert services.timer.active_rounds() == []

    services.telemetry.incr('games.started')
    assert services.telemetry.snapshot() == {}
