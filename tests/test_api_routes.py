import pytest

from notestack_app import db
from notestack_app.modules.fsrs.models import CardState
from notestack_app.modules.learning_history.models import ReviewLog


def _login(client, user_id):
    with client.session_transaction() as session:
        session['_user_id'] = str(user_id)
        session['_fresh'] = True


@pytest.fixture
def unit(user, make_unit):
    return make_unit(user)


@pytest.fixture
def logged_in(client, user):
    _login(client, user.user_id)
    return client


def _create_state(client, block_id, direction='forward'):
    response = client.post('/api/cards/states', json={'block_id': block_id, 'direction': direction})
    assert response.status_code == 200
    return response.get_json()['data']


@pytest.mark.parametrize('method,url', [
    ('get', '/api/cards/due'),
    ('get', '/api/cards/session'),
    ('post', '/api/cards/states/1/review'),
    ('get', '/api/stats/summary'),
])
def test_requires_login(client, method, url):
    response = getattr(client, method)(url)
    assert response.status_code == 401
    assert response.get_json()['success'] is False


def test_review_and_undo_round_trip(logged_in, unit):
    state = _create_state(logged_in, unit.block_id)
    assert state['state'] == 'new'

    response = logged_in.post(f"/api/cards/states/{state['card_state_id']}/review", json={'rating': 3})
    assert response.status_code == 200
    review = response.get_json()['data']
    assert review['previous_state'] == 'new'
    assert review['reps'] == 1

    response = logged_in.post(
        f"/api/cards/states/{state['card_state_id']}/undo",
        json={'previous_state': state, 'review_log_id': review['review_log_id']},
    )
    assert response.status_code == 200
    restored = response.get_json()['data']['card_state']
    for key in ('state', 'stability', 'difficulty', 'due', 'last_review', 'reps', 'lapses'):
        assert restored[key] == state[key]

    db.session.expire_all()
    assert ReviewLog.query.count() == 0


def test_invalid_rating_is_400(logged_in, unit):
    state = _create_state(logged_in, unit.block_id)

    response = logged_in.post(f"/api/cards/states/{state['card_state_id']}/review", json={'rating': 9})

    assert response.status_code == 400
    body = response.get_json()
    assert body['code'] == 'VALIDATION_ERROR'
    assert body['message'] == 'Rating must be 1-4, got 9'


def test_stale_undo_is_409(logged_in, unit):
    state = _create_state(logged_in, unit.block_id)
    url = f"/api/cards/states/{state['card_state_id']}"
    first = logged_in.post(f'{url}/review', json={'rating': 3}).get_json()['data']
    logged_in.post(f'{url}/review', json={'rating': 3})

    response = logged_in.post(
        f'{url}/undo', json={'previous_state': state, 'review_log_id': first['review_log_id']}
    )

    assert response.status_code == 409
    body = response.get_json()
    assert body['code'] == 'CONFLICT'
    assert body['details'] == {'reason': 'stale_log'}


def test_foreign_card_is_403(client, user, other_user, unit, make_card_state):
    card_state = make_card_state(user, unit)

    _login(client, other_user.user_id)
    response = client.post(f'/api/cards/states/{card_state.card_state_id}/review', json={'rating': 3})

    assert response.status_code == 403
    assert response.get_json()['message'] == 'Not authorized to review this card'


def test_missing_card_is_404(logged_in):
    response = logged_in.get('/api/cards/states/999/preview')
    assert response.status_code == 404
    assert response.get_json()['message'] == 'Card state not found'


def test_preview(logged_in, unit):
    state = _create_state(logged_in, unit.block_id)

    response = logged_in.get(f"/api/cards/states/{state['card_state_id']}/preview")

    assert response.status_code == 200
    assert set(response.get_json()['data']['previews']) == {'again', 'hard', 'good', 'easy'}


def test_session_lists_new_cards(logged_in, unit):
    logged_in.post('/api/cards/states/ensure', json={'block_id': unit.block_id, 'directions': ['forward', 'reverse']})

    response = logged_in.get('/api/cards/session?new_limit=1')

    data = response.get_json()['data']
    assert data['new_count'] == 1
    assert data['cards'][0]['block']['front_text'] == unit.front_text


def test_bad_limit_is_400(logged_in):
    response = logged_in.get('/api/cards/new?limit=many')
    assert response.status_code == 400


@pytest.mark.parametrize('field,value', [
    ('stability', float('nan')),
    ('due', 1e20),
    ('reps', -1),
])
def test_undo_with_unusable_snapshot_is_400(logged_in, unit, field, value):
    state = _create_state(logged_in, unit.block_id)
    url = f"/api/cards/states/{state['card_state_id']}"
    review = logged_in.post(f'{url}/review', json={'rating': 3}).get_json()['data']
    state[field] = value

    response = logged_in.post(
        f'{url}/undo', json={'previous_state': state, 'review_log_id': review['review_log_id']}
    )

    assert response.status_code == 400
    body = response.get_json()
    assert body['code'] == 'VALIDATION_ERROR'
    assert field in body['details']['errors']
    db.session.expire_all()
    assert ReviewLog.query.count() == 1


def test_undo_without_snapshot_is_400(logged_in, unit):
    state = _create_state(logged_in, unit.block_id)
    response = logged_in.post(f"/api/cards/states/{state['card_state_id']}/undo", json={'review_log_id': 1})
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Invalid snapshot'


@pytest.mark.parametrize('url,payload', [
    ('/api/cards/states', {'block_id': 'one'}),
    ('/api/cards/states', {'direction': 'forward'}),
    ('/api/cards/states/ensure', {'block_id': 1, 'directions': []}),
    ('/api/cards/states/ensure', {'block_id': 1, 'directions': 'forward'}),
    ('/api/cards/suspend', {'card_state_ids': 5}),
    ('/api/cards/suspend', {'card_state_ids': [1], 'suspend': 'maybe'}),
])
def test_malformed_body_is_400(logged_in, url, payload):
    response = logged_in.post(url, json=payload)
    assert response.status_code == 400
    assert response.get_json()['code'] == 'VALIDATION_ERROR'


def test_disabled_direction_is_400(logged_in, user, make_unit):
    unit = make_unit(user, card_type='cloze')
    response = logged_in.post('/api/cards/states', json={'block_id': unit.block_id, 'direction': 'reverse'})
    assert response.status_code == 400
    assert response.get_json()['message'] == "Direction 'reverse' is not enabled for this block"


@pytest.mark.parametrize('query', ['limit=-1', 'limit=2.5'])
def test_bad_limit_values_are_400(logged_in, query):
    assert logged_in.get(f'/api/cards/due?{query}').status_code == 400


def test_unknown_bucket_is_400(logged_in):
    response = logged_in.get('/api/cards/buckets/11-12')
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Unknown difficulty bucket: 11-12'


def test_document_initialize_and_session(logged_in, user, make_unit):
    make_unit(user, document_id=5, position=0)
    make_unit(user, document_id=5, card_type='cloze', position=1)

    response = logged_in.post('/api/cards/documents/5/initialize')
    assert response.get_json()['data'] == {'created_count': 3}

    response = logged_in.get('/api/cards/documents/5/session')
    assert response.get_json()['data']['new_count'] == 3


def test_bulk_suspend(logged_in, unit):
    state = _create_state(logged_in, unit.block_id)

    response = logged_in.post('/api/cards/suspend', json={'card_state_ids': [state['card_state_id'], 5000], 'suspend': True})

    assert response.get_json()['data'] == {
        'suspend': True,
        'count': 1,
        'succeeded': [state['card_state_id']],
        'skipped': [5000],
    }
    db.session.expire_all()
    assert db.session.get(CardState, state['card_state_id']).suspended is True


def test_leech_endpoints(logged_in):
    assert logged_in.get('/api/cards/leeches').get_json()['data'] == []
    stats = logged_in.get('/api/cards/leeches/stats').get_json()['data']
    assert stats['total_leeches'] == 0


def test_delete_block_states(logged_in, unit):
    _create_state(logged_in, unit.block_id)

    response = logged_in.delete(f'/api/cards/blocks/{unit.block_id}/states')

    assert response.get_json()['data'] == {'deleted_count': 1}


def test_stats_summary(logged_in, unit):
    _create_state(logged_in, unit.block_id)

    data = logged_in.get('/api/stats/summary').get_json()['data']

    assert data['total_cards'] == 1
    assert data['new_cards'] == 1
    assert data['retention_rate'] is None
    assert set(logged_in.get('/api/stats/difficulty').get_json()['data']) == {'1-2', '3-4', '5-6', '7-8', '9-10'}


def test_login_with_json(client, user):
    response = client.post('/auth/login', json={'username': user.username, 'password': 'password123'})
    assert response.status_code == 200
    assert client.get('/auth/me').get_json()['data']['user_id'] == user.user_id


def test_login_with_bad_password(client, user):
    response = client.post('/auth/login', json={'username': user.username, 'password': 'nope'})
    assert response.status_code == 403
