"""
Storage backend contract.

Every backend stores users, device sessions and blood pressure readings
and must behave identically, so the facade and the auth manager never
need to know which one is active.
"""
import logging
import threading
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class StorageBackend(ABC):
    """Abstract storage backend.

    Subclasses implement every abstract operation. ``get_readings`` is
    concrete here: it wraps ``_query_readings`` so that no backend ever
    raises from a readings listing.
    """

    name = 'abstract'

    # Store-specific exception types that signal a uniqueness violation
    # on user creation. The facade turns these into UserExists.
    duplicate_errors = ()

    def __init__(self):
        # Guards the deactivate-then-insert sequence in create_session.
        self._session_lock = threading.Lock()

    @abstractmethod
    def initialize(self):
        """Open the store and create schema / indexes. Raises BackendUnavailable."""

    def close(self):
        """Release the underlying handle."""

    # Users

    @abstractmethod
    def create_user(self, name: str, email: str, password: str):
        """Insert a user. Raises UserExists when the email is taken."""

    @abstractmethod
    def find_user_by_credentials(self, email: str, password: str):
        """Return the User whose email and password match, or None."""

    @abstractmethod
    def find_user_by_id(self, user_id: str):
        """Return the User or None. Stores with typed ids raise InvalidId for
        malformed ids; the api backend returns None, as its server does not
        tell the two apart."""

    @abstractmethod
    def update_user_profile(self, user_id: str, profile: dict):
        """Apply the profile keys present in ``profile`` and refresh updated_at.
        Raises NotFound when the user does not exist."""

    # Sessions

    @abstractmethod
    def create_session(self, user_id: str):
        """Deactivate every active session, then activate a new one for ``user_id``."""

    @abstractmethod
    def get_active_session(self):
        """Return the User of the active session, or None."""

    @abstractmethod
    def clear_session(self):
        """Deactivate the active session. Idempotent."""

    # Readings

    @abstractmethod
    def add_reading(self, user_id: str, systolic: int, diastolic: int, heart_rate: int):
        """Insert a reading stamped with the current time."""

    def get_readings(self, user_id: str) -> list:
        """Readings for ``user_id``, newest first. Never raises."""
        try:
            return self._query_readings(user_id)
        except Exception:
            logger.error('Error loading readings for user_id=%s from %s backend',
                         user_id, self.name, exc_info=True)
            return []

    @abstractmethod
    def _query_readings(self, user_id: str) -> list:
        """Readings for ``user_id``, newest first; may raise."""

    @abstractmethod
    def delete_reading(self, reading_id: str):
        """Delete one reading. Raises NotFound for unknown ids."""

    def __repr__(self):
        return f'<{type(self).__name__}>'
