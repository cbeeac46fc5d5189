"""
Interchangeable storage backends and the factory that picks one from
configuration.
"""
from .base import StorageBackend


def create_backend(config) -> StorageBackend:
    """Build the backend named by ``config.storage``. Drivers are imported lazily."""
    if config.storage == 'sql':
        from .sql import SqlBackend
        return SqlBackend(config.database_url)
    if config.storage == 'keyvalue':
        from .keyvalue import KeyValueBackend
        return KeyValueBackend(path=config.keyvalue_path)
    if config.storage == 'mongo':
        from .mongo import MongoBackend
        return MongoBackend(config.mongodb_uri, config.mongodb_db)
    if config.storage == 'api':
        from .api import ApiBackend
        return ApiBackend(config.api_base_url, timeout=config.api_timeout)
    raise ValueError(f'Unknown storage backend: {config.storage!r}')
