"""Test the auction HTTP API."""

import pytest
from fastapi.testclient import TestClient

from league_auction import config
from league_auction.auction.api_server import app
from league_auction.auction.services import AuctionServices, get_services

ADMIN = {'Authorization': 'Bearer admin-token'}
OWNER_A = {'Authorization': 'Bearer a-token'}


@pytest.fixture
def services(engine, records, round_log):
    return AuctionServices(engine=engine, records=records, round_log=round_log)


@pytest.fixture
def client(services, monkeypatch):
    monkeypatch.setattr(config, 'API_TOKENS', {'admin-token': 'admin', 'a-token': 'owner-a'})
    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.json()['status'] == 'ok'


def test_status_when_idle(client):
    response = client.get('/auction/status')
    assert response.status_code == 200
    body = response.json()
    assert body['active'] is False
    assert body['current_player'] is None
    assert body['current_bids'] == []


def test_writes_require_token(client, seed_player):
    seed_player('P')

    response = client.post('/auction/start', json={'player_id': 'P'})
    assert response.status_code == 401
    assert response.json()['detail']['reason'] == 'missing_token'

    response = client.post('/auction/start', json={'player_id': 'P'},
                           headers={'Authorization': 'Bearer wrong'})
    assert response.status_code == 401
    assert response.json()['detail']['reason'] == 'invalid_token'

    response = client.post('/auction/start', json={'player_id': 'P'},
                           headers={'Authorization': 'Token admin-token'})
    assert response.status_code == 401
    assert response.json()['detail']['reason'] == 'malformed_token'


def test_full_round_over_http(client, store, seed_team, seed_player):
    seed_team('A')
    seed_team('B')
    seed_player('P', base_price=1000)

    response = client.post('/auction/start', json={'player_id': 'P'}, headers=ADMIN)
    assert response.status_code == 200
    assert response.json()['player']['player_id'] == 'P'

    response = client.post('/auction/bid', json={'team_id': 'A', 'amount': 1000}, headers=OWNER_A)
    assert response.status_code == 409
    detail = response.json()['detail']
    assert detail['reason'] == 'bid_too_low'
    assert detail['current_highest'] == 1000

    response = client.post('/auction/bid', json={'team_id': 'A', 'amount': 1100}, headers=OWNER_A)
    assert response.status_code == 200
    body = response.json()
    assert body['bid']['placed_by'] == 'owner-a'
    assert [b['amount'] for b in body['all_bids']] == [1100]

    response = client.post('/auction/bid', json={'team_id': 'B', 'amount': 1500}, headers=ADMIN)
    assert response.status_code == 200

    status = client.get('/auction/status').json()
    assert status['active'] is True
    assert status['current_highest'] == 1500

    response = client.post('/auction/finalize', headers=ADMIN)
    assert response.status_code == 200
    body = response.json()
    assert body['outcome'] == 'sold'
    assert body['team']['team_id'] == 'B'
    assert body['team']['spent'] == 1500
    assert body['player']['sold_price'] == 1500

    response = client.post('/auction/finalize', headers=ADMIN)
    assert response.status_code == 409
    assert response.json()['detail']['reason'] == 'no_active_auction'


def test_start_errors(client, seed_team, seed_player):
    seed_team('A')
    seed_player('SOLD', team_id='A', sold_price=100)
    seed_player('P')

    assert client.post('/auction/start', json={'player_id': 'ghost'}, headers=ADMIN).status_code == 404

    response = client.post('/auction/start', json={'player_id': 'SOLD'}, headers=ADMIN)
    assert response.status_code == 409
    assert response.json()['detail']['reason'] == 'already_sold'

    client.post('/auction/start', json={'player_id': 'P'}, headers=ADMIN)
    response = client.post('/auction/start', json={'player_id': 'P'}, headers=ADMIN)
    assert response.status_code == 409
    assert response.json()['detail']['reason'] == 'round_active'


def test_bid_errors(client, seed_team, seed_player):
    seed_team('A', budget=500)
    seed_player('P', base_price=100)

    response = client.post('/auction/bid', json={'team_id': 'A', 'amount': 200}, headers=OWNER_A)
    assert response.status_code == 409

    client.post('/auction/start', json={'player_id': 'P'}, headers=ADMIN)

    response = client.post('/auction/bid', json={'team_id': 'A', 'amount': 600}, headers=OWNER_A)
    assert response.status_code == 400
    assert response.json()['detail']['budget_remaining'] == 500

    response = client.post('/auction/bid', json={'team_id': 'ghost', 'amount': 200}, headers=OWNER_A)
    assert response.status_code == 404

    response = client.post('/auction/bid', json={'team_id': 'A', 'amount': 'lots'}, headers=OWNER_A)
    assert response.status_code == 422

    response = client.post('/auction/bid', json={'team_id': 'A', 'amount': -5}, headers=OWNER_A)
    assert response.status_code == 422


def test_finalize_unsold_and_stop(client, seed_player):
    seed_player('P1')
    seed_player('P2')

    client.post('/auction/start', json={'player_id': 'P1'}, headers=ADMIN)
    response = client.post('/auction/finalize', headers=ADMIN)
    assert response.status_code == 200
    assert response.json()['outcome'] == 'unsold'
    assert response.json()['winning_bid'] is None

    assert client.post('/auction/stop', headers=ADMIN).status_code == 409

    client.post('/auction/start', json={'player_id': 'P2'}, headers=ADMIN)
    response = client.post('/auction/stop', headers=ADMIN)
    assert response.status_code == 200
    assert response.json()['player_id'] == 'P2'


def test_history(client, seed_team, seed_player):
    seed_team('A')
    seed_player('P1', base_price=100)
    seed_player('P2', base_price=100)

    client.post('/auction/start', json={'player_id': 'P1'}, headers=ADMIN)
    client.post('/auction/bid', json={'team_id': 'A', 'amount': 300}, headers=OWNER_A)
    client.post('/auction/finalize', headers=ADMIN)
    client.post('/auction/start', json={'player_id': 'P2'}, headers=ADMIN)
    client.post('/auction/stop', headers=ADMIN)

    body = client.get('/auction/history').json()
    assert body['count'] == 2
    assert [r['outcome'] for r in body['rounds']] == ['sold', 'stopped']
    assert body['rounds'][0]['amount'] == 300
    assert body['rounds'][0]['actor'] == 'admin'


def test_status_wait_returns_on_timeout(client):
    response = client.get('/auction/status/wait', params={'since_version': 0, 'timeout': 0})
    assert response.status_code == 200
    assert response.json()['version'] == 0


def test_status_wait_returns_immediately_when_stale(client, seed_player):
    seed_player('P')
    client.post('/auction/start', json={'player_id': 'P'}, headers=ADMIN)

    response = client.get('/auction/status/wait', params={'since_version': 0, 'timeout': 5})
    assert response.json()['version'] == 1
    assert response.json()['active'] is True


def test_team_and_player_crud(client):
    response = client.post('/teams', json={'name': 'Aces', 'budget': 7000}, headers=ADMIN)
    assert response.status_code == 200
    team_id = response.json()['team']['team_id']

    response = client.put(f'/teams/{team_id}', json={'owner_name': 'Sam'}, headers=ADMIN)
    assert response.status_code == 200
    assert response.json()['team']['owner_name'] == 'Sam'
    assert response.json()['team']['budget'] == 7000

    assert client.put('/teams/ghost', json={'name': 'X'}, headers=ADMIN).status_code == 404

    response = client.post('/players', json={'name': 'Kai', 'base_price': 300}, headers=ADMIN)
    assert response.status_code == 200
    player_id = response.json()['player']['player_id']

    players = client.get('/players').json()['players']
    assert [p['name'] for p in players] == ['Kai']

    assert client.delete(f'/players/{player_id}', headers=ADMIN).status_code == 200
    assert client.delete(f'/teams/{team_id}', headers=ADMIN).status_code == 200
    assert client.get('/teams').json()['teams'] == []


def test_record_writes_locked_during_round(client, seed_team, seed_player):
    seed_team('A')
    seed_player('P', base_price=100)
    client.post('/auction/start', json={'player_id': 'P'}, headers=ADMIN)
    client.post('/auction/bid', json={'team_id': 'A', 'amount': 200}, headers=OWNER_A)

    response = client.put('/players/P', json={'base_price': 50}, headers=ADMIN)
    assert response.status_code == 409
    assert response.json()['detail']['reason'] == 'record_locked'

    response = client.put('/teams/A', json={'budget': 1}, headers=ADMIN)
    assert response.status_code == 409


def test_bulk_import(client):
    response = client.post(
        '/players/bulk-import',
        json={'players': [{'name': 'One', 'base_price': 700}, {'name': 'Two'}]},
        headers=ADMIN
    )
    assert response.status_code == 200
    assert response.json()['count'] == 2

    response = client.post('/players/bulk-import', json={'players': []}, headers=ADMIN)
    assert response.status_code == 422


def test_reports(client, seed_team, seed_player):
    seed_team('A', name='Aces')
    seed_player('P1', base_price=100, name='Kai')
    seed_player('P2', base_price=100, name='Bo')

    client.post('/auction/start', json={'player_id': 'P1'}, headers=ADMIN)
    client.post('/auction/bid', json={'team_id': 'A', 'amount': 400}, headers=OWNER_A)
    client.post('/auction/finalize', headers=ADMIN)
    client.post('/auction/start', json={'player_id': 'P2'}, headers=ADMIN)
    client.post('/auction/finalize', headers=ADMIN)

    teams = client.get('/reports/teams').json()['teams']
    assert teams[0]['team_name'] == 'Aces'
    assert teams[0]['spent'] == 400
    assert teams[0]['budget_remaining'] == 9600

    response = client.get('/reports/sales.csv')
    assert response.status_code == 200
    assert response.headers['content-type'].startswith('text/csv')
    lines = response.text.strip().splitlines()
    assert lines[1].startswith('Aces,Kai,400,SOLD')
    assert lines[2].startswith('UNSOLD POOL,Bo,0,UNSOLD')


def test_frontend_config(client):
    body = client.get('/config').json()
    assert body['status_poll_interval_seconds'] == config.STATUS_POLL_INTERVAL_SECONDS
    assert body['deadline_seconds'] is None


@pytest.mark.parametrize('changes', [{'name': None}, {'active': None}, {'budget': None}])
def test_team_update_rejects_null_fields(client, store, seed_team, seed_player, changes):
    """An explicit null is refused before anything is written, so bidding keeps working."""
    seed_team('A', budget=5000)
    seed_player('P', base_price=100)
    before = store.get('team:A')

    response = client.put('/teams/A', json=changes, headers=ADMIN)
    assert response.status_code == 422
    assert store.get('team:A') == before

    client.post('/auction/start', json={'player_id': 'P'}, headers=ADMIN)
    response = client.post('/auction/bid', json={'team_id': 'A', 'amount': 200}, headers=OWNER_A)
    assert response.status_code == 200
    assert client.get('/auction/status').status_code == 200


def test_player_update_rejects_null_fields(client, store, seed_player):
    seed_player('P')
    before = store.get('player:P')

    response = client.put('/players/P', json={'games': None}, headers=ADMIN)
    assert response.status_code == 422
    assert store.get('player:P') == before


@pytest.mark.parametrize('method, path, body', [
    ('put', '/teams/A', {'owner_name': 'Kim'}),
    ('delete', '/teams/A', None),
    ('put', '/players/P', {'base_price': 50}),
    ('delete', '/players/P', None),
])
def test_record_writes_time_out_on_busy_round_lock(client, engine, store, seed_team, seed_player, method, path, body):
    seed_team('A')
    seed_player('P')
    before_team = store.get('team:A')
    before_player = store.get('player:P')
    engine.lock_timeout = 0

    with engine.round_lock('held by test'):
        response = client.request(method, path, json=body, headers=ADMIN)

    assert response.status_code == 503
    assert store.get('team:A') == before_team
    assert store.get('player:P') == before_player


def test_team_logo(client):
    response = client.post('/teams', json={'name': 'Aces', 'logo': 'ace-of-spades'}, headers=ADMIN)
    team_id = response.json()['team']['team_id']
    assert response.json()['team']['logo'] == 'ace-of-spades'

    response = client.put(f'/teams/{team_id}', json={'logo': 'crown'}, headers=ADMIN)
    assert response.status_code == 200
    assert response.json()['team']['logo'] == 'crown'
