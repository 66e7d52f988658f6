"""
Platform-level tests: app factory, health, JSON errors and rate limiting.
"""

from unittest.mock import patch

from fanhub import seed_categories
from fanhub.models import Category


def test_health_endpoint(client, db_session):
    response = client.get('/health')
    assert response.status_code == 200
    data = response.get_json()
    assert data['status'] == 'healthy'
    assert data['environment'] == 'staging'
    assert data['version'] == '1.0.0-test'
    assert data['checks']['database']['status'] == 'healthy'


def test_health_degraded_when_database_down(client, db_session):
    with patch('fanhub.routes.main.check_database', return_value={'status': 'unhealthy', 'error': 'gone'}):
        response = client.get('/health')
    assert response.status_code == 503
    assert response.get_json()['status'] == 'degraded'


def test_404_error(client, db_session):
    response = client.get('/nonexistent-page')
    assert response.status_code == 404
    data = response.get_json()
    assert data['success'] is False
    assert data['code'] == 'NOT_FOUND'


def test_405_error(client, db_session):
    response = client.get('/api/coins/purchase')
    assert response.status_code == 405
    assert response.get_json()['code'] == 'METHOD_NOT_ALLOWED'


def test_categories_seeded_once(db_session):
    seed_categories()
    seed_categories()
    assert Category.query.filter_by(slug='general').count() == 1


def test_rate_limit_returns_429(app, client, db_session):
    app.config['RATE_LIMIT_PER_MINUTE'] = 2
    payload = {'email': 'ghost@example.com', 'password': 'whatever1'}

    responses = [client.post('/auth/login', json=payload) for _ in range(3)]

    assert [response.status_code for response in responses[:2]] == [401, 401]
    limited = responses[2]
    assert limited.status_code == 429
    assert limited.get_json()['code'] == 'RATE_LIMIT_EXCEEDED'
    assert int(limited.headers['Retry-After']) >= 1


def test_rate_limit_buckets_are_separate(app, client, auth_headers):
    app.config['RATE_LIMIT_PER_MINUTE'] = 1
    client.post('/auth/login', json={'email': 'ghost@example.com', 'password': 'whatever1'})
    response = client.post('/api/coins/purchase', headers=auth_headers, json={
        'reference': 'bucket_ref', 'amount': 50, 'coins': 100,
    })
    assert response.status_code == 200


def test_forwarded_for_identifies_client(app, client, db_session):
    app.config['RATE_LIMIT_PER_MINUTE'] = 1
    payload = {'email': 'ghost@example.com', 'password': 'whatever1'}
    first = client.post('/auth/login', json=payload, headers={'X-Forwarded-For': '10.0.0.1'})
    second = client.post('/auth/login', json=payload, headers={'X-Forwarded-For': '10.0.0.2'})
    assert first.status_code == 401
    assert second.status_code == 401
