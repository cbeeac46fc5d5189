import logging

import pytest

from healthbuddy import create_app
from healthbuddy.config import Config


def register(client, name='Ann', email='ann@x.com', password='pw'):
    return client.post('/api/users/register',
                       json={'name': name, 'email': email, 'password': password})


def test_health(client):
    response = client.get('/api/health')

    assert response.status_code == 200
    assert response.get_json()['status'] == 'ok'
    assert client.get('/health').status_code == 404


def test_unexpected_error_logged_with_traceback(app, caplog):
    def explode():
        raise RuntimeError('boom')

    app.add_url_rule('/explode', 'explode', explode)
    app.config['PROPAGATE_EXCEPTIONS'] = False

    with caplog.at_level(logging.ERROR, logger='healthbuddy'):
        response = app.test_client().get('/explode')

    assert response.status_code == 500
    assert response.get_json() == {'error': 'Internal server error'}
    record = next(r for r in caplog.records if r.getMessage().startswith('Unhandled error'))
    assert record.exc_info is not None
    assert record.exc_info[0] is RuntimeError


def test_security_headers(client):
    response = client.get('/api/health')

    assert response.headers['X-Content-Type-Options'] == 'nosniff'
    assert response.headers['X-Frame-Options'] == 'DENY'


def test_api_storage_is_rejected_for_the_server():
    with pytest.raises(RuntimeError):
        create_app(config=Config(storage='api'))


def test_non_json_body_rejected(client):
    response = client.post('/api/users/register', data='name=Ann',
                           content_type='application/x-www-form-urlencoded')

    assert response.status_code == 415


class TestUsers:

    def test_register_returns_user_without_password(self, client):
        response = register(client)

        assert response.status_code == 200
        body = response.get_json()
        assert body['name'] == 'Ann'
        assert body['email'] == 'ann@x.com'
        assert body['height'] is None
        assert body['createdAt'].endswith('Z')
        assert 'password' not in body
        assert 'passwordHash' not in body

    def test_register_missing_fields(self, client):
        response = client.post('/api/users/register', json={'name': 'Ann'})

        assert response.status_code == 400
        assert response.get_json() == {'error': 'Missing required fields'}

    def test_register_invalid_email(self, client):
        response = register(client, email='not-an-email')

        assert response.status_code == 400
        assert response.get_json()['error'] == ['Invalid email format']

    def test_register_duplicate(self, client):
        register(client)

        response = register(client, name='Other', password='other')

        assert response.status_code == 400
        assert response.get_json() == {'error': 'User already exists'}

    def test_login(self, client):
        user = register(client).get_json()

        response = client.post('/api/users/login',
                               json={'email': 'ann@x.com', 'password': 'pw'})

        assert response.status_code == 200
        assert response.get_json() == user

    def test_login_missing_credentials(self, client):
        response = client.post('/api/users/login', json={'email': 'ann@x.com'})

        assert response.status_code == 400
        assert response.get_json() == {'error': 'Missing credentials'}

    def test_login_invalid_credentials(self, client):
        register(client)

        wrong = client.post('/api/users/login', json={'email': 'ann@x.com', 'password': 'x'})
        unknown = client.post('/api/users/login', json={'email': 'bob@x.com', 'password': 'pw'})

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.get_json() == unknown.get_json() == {'error': 'Invalid credentials'}

    def test_get_user(self, client):
        user = register(client).get_json()

        response = client.get(f'/api/users/{user["id"]}')

        assert response.status_code == 200
        assert response.get_json()['email'] == 'ann@x.com'

    @pytest.mark.parametrize('user_id', ['999999', 'not-an-id'])
    def test_get_unknown_user(self, client, user_id):
        response = client.get(f'/api/users/{user_id}')

        assert response.status_code == 404
        assert response.get_json() == {'error': 'User not found'}

    def test_update_profile(self, client):
        user = register(client).get_json()

        response = client.put(f'/api/users/{user["id"]}/profile', json={
            'height': 170, 'weight': 65, 'age': 34,
            'bloodGroup': 'O+', 'allergies': 'None known',
        })

        assert response.status_code == 200
        body = response.get_json()
        assert body['height'] == 170.0
        assert body['bloodGroup'] == 'O+'
        assert body['updatedAt'] is not None

    def test_update_profile_invalid(self, client):
        user = register(client).get_json()

        response = client.put(f'/api/users/{user["id"]}/profile', json={'age': 'old'})

        assert response.status_code == 400
        assert response.get_json()['error'] == ['Age must be an integer']

    def test_update_profile_rejects_non_finite_numbers(self, client):
        user = register(client).get_json()

        response = client.put(f'/api/users/{user["id"]}/profile',
                              json={'height': 'nan', 'weight': 'inf'})

        assert response.status_code == 400
        assert response.get_json()['error'] == ['Height must be a number', 'Weight must be a number']
        assert client.get(f'/api/users/{user["id"]}').get_json()['height'] is None

    def test_update_profile_unknown_user(self, client):
        response = client.put('/api/users/999999/profile', json={'height': 170})

        assert response.status_code == 404


class TestSessions:

    def test_lifecycle(self, client):
        user = register(client).get_json()

        assert client.get('/api/sessions/active').status_code == 404

        created = client.post('/api/sessions', json={'userId': user['id']})
        assert created.status_code == 200
        assert set(created.get_json()) == {'sessionId', 'createdAt'}

        active = client.get('/api/sessions/active')
        assert active.status_code == 200
        assert active.get_json()['id'] == user['id']

        cleared = client.post('/api/sessions/clear', json={})
        assert cleared.get_json() == {'success': True}
        assert client.get('/api/sessions/active').get_json() == {'error': 'No active session'}

    def test_user_id_required(self, client):
        response = client.post('/api/sessions', json={})

        assert response.status_code == 400
        assert response.get_json() == {'error': 'userId required'}

    def test_unknown_user(self, client):
        response = client.post('/api/sessions', json={'userId': '999999'})

        assert response.status_code == 404


class TestReadings:

    def test_add_list_delete(self, client):
        user = register(client).get_json()
        for systolic in (118, 125):
            response = client.post('/api/blood-pressure', json={
                'userId': user['id'], 'systolic': systolic, 'diastolic': 80, 'heartRate': 70,
            })
            assert response.status_code == 200

        listed = client.get(f'/api/blood-pressure/{user["id"]}').get_json()
        assert [r['systolic'] for r in listed] == [125, 118]
        assert set(listed[0]) == {'id', 'userId', 'systolic', 'diastolic',
                                  'heartRate', 'timestamp'}

        deleted = client.delete(f'/api/blood-pressure/{listed[0]["id"]}')
        assert deleted.get_json() == {'success': True}
        remaining = client.get(f'/api/blood-pressure/{user["id"]}').get_json()
        assert [r['systolic'] for r in remaining] == [118]

    def test_missing_user_id(self, client):
        response = client.post('/api/blood-pressure',
                               json={'systolic': 120, 'diastolic': 80, 'heartRate': 70})

        assert response.status_code == 400
        assert response.get_json() == {'error': 'Missing required fields'}

    def test_invalid_values(self, client):
        user = register(client).get_json()

        response = client.post('/api/blood-pressure', json={
            'userId': user['id'], 'systolic': 'high', 'diastolic': 80,
        })

        assert response.status_code == 400
        assert response.get_json()['error'] == [
            'Systolic must be an integer', 'Heart rate is required',
        ]

    def test_unknown_user(self, client):
        response = client.post('/api/blood-pressure', json={
            'userId': '999999', 'systolic': 120, 'diastolic': 80, 'heartRate': 70,
        })

        assert response.status_code == 404

    def test_list_for_unknown_or_malformed_user_is_empty(self, client):
        assert client.get('/api/blood-pressure/999999').get_json() == []
        assert client.get('/api/blood-pressure/not-an-id').get_json() == []

    def test_delete_unknown(self, client):
        response = client.delete('/api/blood-pressure/999999')

        assert response.status_code == 404
        assert response.get_json() == {'error': 'Reading not found'}
