import mongomock
import pytest

from healthbuddy import create_app
from healthbuddy.config import Config
from healthbuddy.data_access import DataAccess
from healthbuddy.storage.api import ApiBackend
from healthbuddy.storage.keyvalue import KeyValueBackend
from healthbuddy.storage.mongo import MongoBackend
from healthbuddy.storage.sql import SqlBackend

API_BASE_URL = 'http://testserver/api'

# An id of the right shape that no record uses, per backend.
MISSING_IDS = {
    'sql': '999999',
    'keyvalue': 'f' * 32,
    'mongo': '0' * 24,
    'api': '999999',
}


class FlaskTransport:
    """Stands in for requests.Session, sending calls to a Flask test client."""

    def __init__(self, client, prefix='http://testserver'):
        self.client = client
        self.prefix = prefix
        self.calls = []

    def request(self, method, url, json=None, timeout=None):
        assert url.startswith(self.prefix)
        path = url[len(self.prefix):]
        self.calls.append((method, path))
        return TransportResponse(self.client.open(path, method=method, json=json))

    def close(self):
        pass


class TransportResponse:
    def __init__(self, response):
        self.status_code = response.status_code
        self._response = response

    def json(self):
        data = self._response.get_json(silent=True)
        if data is None:
            raise ValueError('Response body is not JSON')
        return data


def sql_url(tmp_path, name='healthbuddy.db'):
    return f'sqlite:///{tmp_path / name}'


@pytest.fixture
def sql_config(tmp_path):
    return Config(storage='sql', database_url=sql_url(tmp_path, 'server.db'))


@pytest.fixture
def app(sql_config):
    app = create_app(config=sql_config)
    app.config['TESTING'] = True
    yield app
    app.extensions['healthbuddy'].close()


@pytest.fixture
def client(app):
    return app.test_client()


def _build_backend(kind, tmp_path, app=None):
    if kind == 'sql':
        return SqlBackend(sql_url(tmp_path))
    if kind == 'keyvalue':
        return KeyValueBackend()
    if kind == 'mongo':
        return MongoBackend('mongodb://localhost:27017', 'healthbuddy_test',
                            client=mongomock.MongoClient())
    if kind == 'api':
        return ApiBackend(API_BASE_URL, http=FlaskTransport(app.test_client()))
    raise ValueError(kind)


@pytest.fixture(params=['sql', 'keyvalue', 'mongo', 'api'])
def backend(request, tmp_path):
    app = None
    if request.param == 'api':
        app = create_app(config=Config(storage='sql',
                                       database_url=sql_url(tmp_path, 'server.db')))
        app.config['TESTING'] = True
    store = _build_backend(request.param, tmp_path, app)
    store.initialize()
    yield store
    store.close()
    if app is not None:
        app.extensions['healthbuddy'].close()


@pytest.fixture
def missing_id(backend):
    return MISSING_IDS[backend.name]


@pytest.fixture
def data_access(backend):
    return DataAccess(backend=backend)
