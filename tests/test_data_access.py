from unittest.mock import MagicMock

import pytest

from healthbuddy.config import Config
from healthbuddy.data_access import DataAccess
from healthbuddy.errors import UserExists
from healthbuddy.storage import create_backend
from healthbuddy.storage.api import ApiBackend
from healthbuddy.storage.keyvalue import KeyValueBackend
from healthbuddy.storage.mongo import MongoBackend
from healthbuddy.storage.sql import SqlBackend


class StoreConflict(Exception):
    pass


@pytest.mark.parametrize('storage, expected', [
    ('sql', SqlBackend),
    ('keyvalue', KeyValueBackend),
    ('mongo', MongoBackend),
    ('api', ApiBackend),
])
def test_create_backend_picks_class_from_config(storage, expected):
    assert isinstance(create_backend(Config(storage=storage)), expected)


def test_backend_created_lazily_from_config():
    data = DataAccess(Config(storage='keyvalue'))

    user = data.create_user('Ann', 'ann@x.com', 'pw')

    assert data.initialized
    assert data.backend.name == 'keyvalue'
    assert data.find_user_by_id(user.id) == user


def test_initialize_is_idempotent():
    backend = MagicMock()
    data = DataAccess(backend=backend)

    assert data.initialize() is data
    data.initialize()

    backend.initialize.assert_called_once_with()


def test_store_specific_duplicate_error_becomes_user_exists():
    backend = MagicMock()
    backend.duplicate_errors = (StoreConflict,)
    backend.create_user.side_effect = StoreConflict('E11000 duplicate key')
    data = DataAccess(backend=backend)

    with pytest.raises(UserExists):
        data.create_user('Ann', 'ann@x.com', 'pw')


def test_user_exists_passes_through(data_access):
    data_access.create_user('Ann', 'ann@x.com', 'pw')

    with pytest.raises(UserExists):
        data_access.create_user('Ann', 'ann@x.com', 'pw')


def test_operations_delegate_to_backend(data_access):
    ann = data_access.create_user('Ann', 'ann@x.com', 'pw')
    data_access.create_session(ann.id)
    reading = data_access.add_reading(ann.id, 120, 80, 70)

    assert data_access.get_active_session().id == ann.id
    assert data_access.find_user_by_credentials('ann@x.com', 'pw').id == ann.id
    assert data_access.get_readings(ann.id) == [reading]

    data_access.delete_reading(reading.id)
    data_access.clear_session()

    assert data_access.get_readings(ann.id) == []
    assert data_access.get_active_session() is None


def test_context_manager_closes_owned_backend(tmp_path):
    config = Config(storage='sql', database_url=f'sqlite:///{tmp_path / "ctx.db"}')

    with DataAccess(config) as data:
        data.create_user('Ann', 'ann@x.com', 'pw')
        assert data.initialized

    assert not data.initialized

    with DataAccess(config) as reopened:
        assert reopened.find_user_by_credentials('ann@x.com', 'pw') is not None


def test_close_keeps_injected_backend():
    backend = MagicMock()
    data = DataAccess(backend=backend)
    data.initialize()

    data.close()

    backend.close.assert_called_once_with()
    assert data.backend is backend
