import pytest

from healthbuddy.config import Config, load_config

ENV_VARS = (
    'HEALTHBUDDY_STORAGE', 'DATABASE_URL', 'KEYVALUE_PATH', 'MONGODB_URI',
    'MONGODB_DB', 'API_BASE_URL', 'API_TIMEOUT', 'ALLOWED_ORIGINS',
    'FLASK_ENV', 'LOG_LEVEL', 'AUDIT_LOG_FILE',
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = load_config()

    assert config == Config()
    assert config.storage == 'sql'
    assert config.database_url == 'sqlite:///healthbuddy.db'
    assert config.allowed_origins == ()
    assert not config.is_production


def test_reads_environment(monkeypatch):
    monkeypatch.setenv('HEALTHBUDDY_STORAGE', 'Mongo')
    monkeypatch.setenv('MONGODB_URI', 'mongodb://db:27017')
    monkeypatch.setenv('MONGODB_DB', 'hb')
    monkeypatch.setenv('API_BASE_URL', 'https://hb.example.org/api/')
    monkeypatch.setenv('API_TIMEOUT', '3')
    monkeypatch.setenv('ALLOWED_ORIGINS', 'https://a.example.org, https://b.example.org,')
    monkeypatch.setenv('FLASK_ENV', 'production')

    config = load_config()

    assert config.storage == 'mongo'
    assert config.mongodb_uri == 'mongodb://db:27017'
    assert config.mongodb_db == 'hb'
    assert config.api_base_url == 'https://hb.example.org/api'
    assert config.api_timeout == 3
    assert config.allowed_origins == ('https://a.example.org', 'https://b.example.org')
    assert config.is_production


def test_blank_values_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv('DATABASE_URL', '   ')

    assert load_config().database_url == 'sqlite:///healthbuddy.db'


def test_unknown_storage(monkeypatch):
    monkeypatch.setenv('HEALTHBUDDY_STORAGE', 'firebase')

    with pytest.raises(ValueError, match='HEALTHBUDDY_STORAGE'):
        load_config()


def test_non_integer_timeout(monkeypatch):
    monkeypatch.setenv('API_TIMEOUT', 'soon')

    with pytest.raises(ValueError, match='API_TIMEOUT'):
        load_config()
