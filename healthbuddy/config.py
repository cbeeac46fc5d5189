"""
Environment-driven configuration.

The storage backend is chosen here once per process; nothing else in the
package branches on which backend is active.
"""
import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

STORAGE_BACKENDS = ('sql', 'keyvalue', 'mongo', 'api')


def _env(name: str, default: str = None) -> str:
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    return value.strip()


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f'Environment variable {name} must be an integer') from exc


@dataclass(frozen=True)
class Config:
    storage: str = 'sql'
    database_url: str = 'sqlite:///healthbuddy.db'
    keyvalue_path: str = None
    mongodb_uri: str = 'mongodb://localhost:27017'
    mongodb_db: str = 'healthbuddy'
    api_base_url: str = 'http://localhost:5000/api'
    api_timeout: int = 10
    allowed_origins: tuple = ()
    is_production: bool = False
    log_level: str = 'INFO'
    audit_log_file: str = None

    def __post_init__(self):
        if self.storage not in STORAGE_BACKENDS:
            raise ValueError(
                f'HEALTHBUDDY_STORAGE must be one of {", ".join(STORAGE_BACKENDS)}, '
                f'got {self.storage!r}'
            )


def load_config() -> Config:
    origins = _env('ALLOWED_ORIGINS', '')
    return Config(
        storage=_env('HEALTHBUDDY_STORAGE', 'sql').lower(),
        database_url=_env('DATABASE_URL', 'sqlite:///healthbuddy.db'),
        keyvalue_path=_env('KEYVALUE_PATH'),
        mongodb_uri=_env('MONGODB_URI', 'mongodb://localhost:27017'),
        mongodb_db=_env('MONGODB_DB', 'healthbuddy'),
        api_base_url=_env('API_BASE_URL', 'http://localhost:5000/api').rstrip('/'),
        api_timeout=_env_int('API_TIMEOUT', 10),
        allowed_origins=tuple(o.strip() for o in origins.split(',') if o.strip()),
        is_production=_env('FLASK_ENV') == 'production',
        log_level=_env('LOG_LEVEL', 'INFO'),
        audit_log_file=_env('AUDIT_LOG_FILE'),
    )
