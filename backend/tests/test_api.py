def _data(res):
    body = res.get_json()
    assert body['success'] is True, body
    return body['data']


def _create(client, as_user, username='alice', **body):
    res = client.post('/api/games/create', json=body, headers=as_user(username))
    assert res.status_code == 201
    return _data(res)


def _join(client, as_user, game_id, username):
    res = client.post('/api/games/join', json={'game_id': game_id}, headers=as_user(username))
    assert res.status_code == 200
    return _data(res)


def _started(client, as_user, max_rounds=None):
    body = {'max_rounds': max_rounds} if max_rounds else {}
    game_id = _create(client, as_user, **body)['game']['id']
    _join(client, as_user, game_id, 'bob')
    res = client.post(f'/api/games/{game_id}/start', headers=as_user('alice'))
    assert res.status_code == 200
    return game_id, _data(res)['round']


def test_requires_identity(client):
    res = client.post('/api/games/create')
    assert res.status_code == 401
    body = res.get_json()
    assert body['success'] is False
    assert body['kind'] == 'UNAUTHORIZED'


def test_rejects_malformed_username(client, as_user):
    res = client.post('/api/games/create', headers=as_user('a!'))
    assert res.status_code == 401


def test_create_game(client, as_user):
    data = _create(client, as_user)
    assert data['game']['status'] == 'lobby'
    assert data['game']['max_rounds'] == 5
    assert data['player']['id'] == 'player_alice'
    assert data['player']['is_moderator'] is True
    # One player is not enough to run the countdown
    assert data['lobby_timer']['is_active'] is False


def test_create_game_rejects_bad_round_count(client, as_user):
    res = client.post('/api/games/create', json={'max_rounds': 11}, headers=as_user('alice'))
    assert res.status_code == 400
    assert res.get_json()['kind'] == 'INVALID_INPUT'


def test_join_and_state(client, as_user):
    game_id = _create(client, as_user)['game']['id']
    joined = _join(client, as_user, game_id, 'bob')
    assert [p['username'] for p in joined['players']] == ['alice', 'bob']
    assert joined['player']['is_moderator'] is False
    assert joined['lobby_timer']['is_active'] is True

    state = _data(client.get(f'/api/games/{game_id}/state', headers=as_user('bob')))
    assert state['game']['id'] == game_id
    assert state['is_moderator'] is False
    assert state['current_round'] is None
    assert any(p['username'] == 'alice' for p in state['players'])


def test_join_without_id_uses_open_lobby(client, as_user):
    game_id = _create(client, as_user, 'alice')['game']['id']
    joined = _data(client.post('/api/games/join', json={}, headers=as_user('bob')))
    assert joined['game']['id'] == game_id


def test_join_without_id_creates_lobby_per_community(client, as_user):
    game_id = _create(client, as_user, 'alice')['game']['id']
    res = client.post('/api/games/join', json={}, headers=as_user('bob', community='other'))
    joined = _data(res)
    assert joined['game']['id'] != game_id
    assert joined['game']['community'] == 'other'


def test_game_not_found(client, as_user):
    res = client.get('/api/games/game_missing/state', headers=as_user('alice'))
    assert res.status_code == 404
    assert res.get_json()['kind'] == 'GAME_NOT_FOUND'


def test_game_full(client, as_user):
    game_id = _create(client, as_user, 'player0')['game']['id']
    for i in range(1, 8):
        _join(client, as_user, game_id, f'player{i}')
    res = client.post('/api/games/join', json={'game_id': game_id}, headers=as_user('player8'))
    assert res.status_code == 409
    assert res.get_json()['kind'] == 'GAME_FULL'


def test_start_rules(client, as_user):
    game_id = _create(client, as_user)['game']['id']
    res = client.post(f'/api/games/{game_id}/start', headers=as_user('alice'))
    assert res.status_code == 409
    assert res.get_json()['kind'] == 'INSUFFICIENT_PLAYERS'

    _join(client, as_user, game_id, 'bob')
    res = client.post(f'/api/games/{game_id}/start', headers=as_user('bob'))
    assert res.status_code == 403
    assert res.get_json()['kind'] == 'NOT_MODERATOR'

    res = client.post(f'/api/games/{game_id}/start', headers=as_user('alice'))
    assert res.status_code == 200
    started = _data(res)
    assert started['game']['status'] == 'active'
    assert started['round']['round_number'] == 1
    assert started['round']['status'] == 'waiting'

    res = client.post('/api/games/join', json={'game_id': game_id}, headers=as_user('carol'))
    assert res.status_code == 409
    assert res.get_json()['kind'] == 'GAME_ALREADY_STARTED'


def test_full_round_flow(client, as_user):
    game_id, rnd = _started(client, as_user)
    round_id = rnd['id']
    # Players in join order: alice presents round 1
    assert rnd['presenter_id'] == 'player_alice'

    res = client.post(f'/api/games/{game_id}/rounds/{round_id}/guess', json={'guess': 'anything'},
                      headers=as_user('bob'))
    assert res.status_code == 409
    assert res.get_json()['kind'] == 'ROUND_NOT_ACTIVE'

    res = client.post(f'/api/games/{game_id}/rounds/{round_id}/emojis', json={'emojis': ['🍎', '🥧']},
                      headers=as_user('bob'))
    assert res.status_code == 403
    assert res.get_json()['kind'] == 'NOT_PRESENTER'

    res = client.post(f'/api/games/{game_id}/rounds/{round_id}/emojis', json={'emojis': ['🍎', '🥧']},
                      headers=as_user('alice'))
    assert res.status_code == 200
    active = _data(res)
    assert active['status'] == 'active'
    assert active['emoji_sequence'] == ['🍎', '🥧']
    answer = active['phrase']['text']
    assert answer

    bob_view = _data(client.get(f'/api/games/{game_id}/state', headers=as_user('bob')))
    assert bob_view['user_role'] == 'guesser'
    assert bob_view['current_round']['phrase']['text'] == ''
    assert bob_view['current_round']['remaining_ms'] > 0
    alice_view = _data(client.get(f'/api/games/{game_id}/state', headers=as_user('alice')))
    assert alice_view['user_role'] == 'presenter'
    assert alice_view['current_round']['phrase']['text'] == answer

    res = client.post(f'/api/games/{game_id}/rounds/{round_id}/guess', json={'guess': answer},
                      headers=as_user('alice'))
    assert res.status_code == 403
    assert res.get_json()['kind'] == 'PRESENTER_CANNOT_GUESS'

    res = client.post(f'/api/games/{game_id}/rounds/{round_id}/guess', json={'guess': 'zzz qqq xxx'},
                      headers=as_user('bob'))
    wrong = _data(res)
    assert wrong['is_correct'] is False

    res = client.post(f'/api/games/{game_id}/rounds/{round_id}/guess', json={'guess': '  ZZZ qqq   XXX '},
                      headers=as_user('bob'))
    assert res.status_code == 409
    assert res.get_json()['kind'] == 'DUPLICATE_GUESS'

    res = client.post(f'/api/games/{game_id}/rounds/{round_id}/guess', json={'guess': answer.lower()},
                      headers=as_user('bob'))
    right = _data(res)
    assert right['is_correct'] is True
    result = right['round_result']
    assert result['winner_id'] == 'player_bob'
    assert result['winner_username'] == 'bob'
    assert result['end_reason'] == 'correct-guess'
    assert result['correct_answer'] == answer
    assert result['total_guesses'] == 2
    assert result['scores'] == {'player_alice': 5, 'player_bob': 10}

    res = client.post(f'/api/games/{game_id}/rounds/{round_id}/end', headers=as_user('alice'))
    assert res.status_code == 409
    assert res.get_json()['kind'] == 'ROUND_ALREADY_ENDED'

    ended_view = _data(client.get(f'/api/games/{game_id}/state', headers=as_user('bob')))
    assert ended_view['current_round']['phrase']['text'] == answer

    nxt = _data(client.post(f'/api/games/{game_id}/next-round', json={}, headers=as_user('bob')))
    assert nxt['advanced'] is True
    assert nxt['round']['round_number'] == 2
    assert nxt['round']['presenter_id'] == 'player_bob'

    board = _data(client.get('/api/leaderboard/general', headers=as_user('alice')))
    assert [(e['username'], e['score'], e['rank']) for e in board['entries']] == [('bob', 10, 1), ('alice', 5, 2)]


def test_invalid_guess(client, as_user):
    game_id, rnd = _started(client, as_user)
    client.post(f"/api/games/{game_id}/rounds/{rnd['id']}/emojis", json={'emojis': ['🐻']}, headers=as_user('alice'))
    res = client.post(f"/api/games/{game_id}/rounds/{rnd['id']}/guess", json={'guess': 'pie<script>'},
                      headers=as_user('bob'))
    assert res.status_code == 400
    assert res.get_json()['kind'] == 'INVALID_GUESS'
    res = client.post(f"/api/games/{game_id}/rounds/{rnd['id']}/guess", json={'guess': 'x' * 101},
                      headers=as_user('bob'))
    assert res.status_code == 400


def test_invalid_emojis(client, as_user):
    game_id, rnd = _started(client, as_user)
    url = f"/api/games/{game_id}/rounds/{rnd['id']}/emojis"
    assert client.post(url, json={'emojis': []}, headers=as_user('alice')).status_code == 400
    assert client.post(url, json={'emojis': ['🍎'] * 21}, headers=as_user('alice')).status_code == 400
    assert client.post(url, json={'emojis': 'not-a-list'}, headers=as_user('alice')).status_code == 400


def test_next_round_requires_ended_round(client, as_user):
    game_id, _ = _started(client, as_user)
    res = client.post(f'/api/games/{game_id}/next-round', headers=as_user('alice'))
    assert res.status_code == 409
    assert res.get_json()['kind'] == 'ROUND_IN_PROGRESS'


def test_start_round_while_open(client, as_user):
    game_id, _ = _started(client, as_user)
    res = client.post(f'/api/games/{game_id}/rounds/start', json={}, headers=as_user('alice'))
    assert res.status_code == 409
    assert res.get_json()['kind'] == 'ROUND_IN_PROGRESS'


def test_explicit_end_permissions(client, as_user):
    game_id = _create(client, as_user)['game']['id']
    _join(client, as_user, game_id, 'bob')
    _join(client, as_user, game_id, 'carol')
    rnd = _data(client.post(f'/api/games/{game_id}/start', headers=as_user('alice')))['round']

    res = client.post(f"/api/games/{game_id}/rounds/{rnd['id']}/end", headers=as_user('carol'))
    assert res.status_code == 403
    assert res.get_json()['kind'] == 'NOT_MODERATOR'

    res = client.post(f"/api/games/{game_id}/rounds/{rnd['id']}/end", headers=as_user('alice'))
    result = _data(res)
    assert result['end_reason'] == 'explicit'
    assert result['winner_id'] is None
    assert result['scores'] == {'player_alice': 0, 'player_bob': 0, 'player_carol': 0}


def test_game_completes_after_last_round(client, as_user):
    game_id, rnd = _started(client, as_user, max_rounds=1)
    client.post(f"/api/games/{game_id}/rounds/{rnd['id']}/end", headers=as_user('alice'))
    done = _data(client.post(f'/api/games/{game_id}/next-round', headers=as_user('alice')))
    assert done['game']['status'] == 'ended'
    assert done['round'] is None

    history = _data(client.get(f'/api/events/{game_id}/history?limit=50', headers=as_user('alice')))
    assert history['events'][-1]['type'] == 'GAME_ENDED'

    res = client.post(f'/api/games/{game_id}/next-round', headers=as_user('alice'))
    assert res.status_code == 409
    assert res.get_json()['kind'] == 'GAME_COMPLETE'

    rank = _data(client.get('/api/leaderboard/general/rank/bob', headers=as_user('alice')))
    assert rank['entry']['games_played'] == 1


def test_leave_reassigns_moderator_and_last_leave_ends_game(client, as_user):
    game_id = _create(client, as_user)['game']['id']
    _join(client, as_user, game_id, 'bob')

    left = _data(client.post(f'/api/games/{game_id}/leave', headers=as_user('alice')))
    assert left['game']['moderator_id'] == 'player_bob'
    assert [p['username'] for p in left['players']] == ['bob']

    left = _data(client.post(f'/api/games/{game_id}/leave', headers=as_user('bob')))
    assert left['game']['status'] == 'ended'

    res = client.post(f'/api/games/{game_id}/leave', headers=as_user('bob'))
    assert res.status_code == 403
    assert res.get_json()['kind'] == 'NOT_IN_GAME'


def test_returning_player_is_reactivated(client, as_user):
    game_id = _create(client, as_user)['game']['id']
    _join(client, as_user, game_id, 'bob')
    client.post(f'/api/games/{game_id}/leave', headers=as_user('bob'))
    joined = _join(client, as_user, game_id, 'bob')
    assert joined['player']['is_active'] is True
    assert len(joined['players']) == 2


def test_heartbeat(client, as_user):
    game_id = _create(client, as_user)['game']['id']
    res = client.post(f'/api/events/{game_id}/heartbeat', headers=as_user('alice'))
    assert res.status_code == 200
    assert _data(res)['active_connections'] == 1
    res = client.post(f'/api/events/{game_id}/heartbeat', headers=as_user('stranger'))
    assert res.status_code == 403


def test_health(client):
    res = client.get('/api/health')
    assert res.status_code == 200
    assert res.get_json()['data']['status'] == 'ok'


def test_connections(client, as_user):
    game_id = _create(client, as_user)['game']['id']
    _join(client, as_user, game_id, 'bob')
    res = client.get(f'/api/events/{game_id}/connections', headers=as_user('alice'))
    assert res.status_code == 200
    data = _data(res)
    assert data['active_connections'] == 2
    assert set(data['connections']) == {'player_alice', 'player_bob'}

    client.post(f'/api/games/{game_id}/leave', headers=as_user('bob'))
    data = _data(client.get(f'/api/events/{game_id}/connections', headers=as_user('alice')))
    assert list(data['connections']) == ['player_alice']

    res = client.get('/api/events/game_missing/connections', headers=as_user('alice'))
    assert res.status_code == 404
