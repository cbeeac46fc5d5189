"""
Data-access facade: the single entry point the rest of the application
uses for persistence.
"""
import logging

from healthbuddy.config import load_config
from healthbuddy.errors import UserExists
from healthbuddy.storage import create_backend

logger = logging.getLogger(__name__)


class DataAccess:
    """
    Owns one storage backend handle for the lifetime of the process.

    The backend is created from configuration on first use unless one is
    passed in. Every operation initializes the backend on demand, so
    callers may skip ``initialize()``; calling it early surfaces
    connection problems at startup instead of on the first user action.
    """

    def __init__(self, config=None, backend=None):
        self._config = config
        self._backend = backend
        self._owns_backend = backend is None
        self.initialized = False

    @property
    def backend(self):
        if self._backend is None:
            self._backend = create_backend(self._config or load_config())
        return self._backend

    def initialize(self):
        if not self.initialized:
            self.backend.initialize()
            self.initialized = True
            logger.info('Data access ready (%s backend)', self.backend.name)
        return self

    def close(self):
        if self._backend is not None:
            self._backend.close()
        if self._owns_backend:
            self._backend = None
        self.initialized = False

    def __enter__(self):
        return self.initialize()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _ready(self):
        if not self.initialized:
            self.initialize()
        return self._backend

    # Users

    def create_user(self, name: str, email: str, password: str):
        backend = self._ready()
        try:
            return backend.create_user(name, email, password)
        except backend.duplicate_errors as exc:
            logger.info('Duplicate email rejected by %s store', backend.name)
            raise UserExists() from exc

    def find_user_by_credentials(self, email: str, password: str):
        return self._ready().find_user_by_credentials(email, password)

    def find_user_by_id(self, user_id: str):
        return self._ready().find_user_by_id(user_id)

    def update_user_profile(self, user_id: str, profile: dict):
        return self._ready().update_user_profile(user_id, profile)

    # Sessions

    def create_session(self, user_id: str):
        return self._ready().create_session(user_id)

    def get_active_session(self):
        return self._ready().get_active_session()

    def clear_session(self):
        return self._ready().clear_session()

    # Readings

    def add_reading(self, user_id: str, systolic: int, diastolic: int, heart_rate: int):
        return self._ready().add_reading(user_id, systolic, diastolic, heart_rate)

    def get_readings(self, user_id: str) -> list:
        return self._ready().get_readings(user_id)

    def delete_reading(self, reading_id: str):
        return self._ready().delete_reading(reading_id)
