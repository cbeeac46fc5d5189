"""
Session/auth manager: the login, registration, profile and readings
workflows a client application drives, plus the "current user" state.
"""
import logging

from healthbuddy.errors import (
    BackendUnavailable, HealthBuddyError, InvalidCredentials, ValidationError,
)
from healthbuddy.utils.audit_logger import audit_log
from healthbuddy.utils.validators import (
    clean_profile_update, validate_login, validate_profile_update,
    validate_reading, validate_registration,
)

logger = logging.getLogger(__name__)


class AuthManager:
    """
    Wraps a DataAccess with the user-facing workflows.

    Call ``start()`` once at process start: it opens the store and restores
    the previously active session, so ``current_user`` is populated before
    any authenticated screen is shown.
    """

    def __init__(self, data_access):
        self._data = data_access
        self.current_user = None
        self.initialized = False

    @property
    def is_authenticated(self) -> bool:
        return self.current_user is not None

    def start(self):
        """Initialize storage (fatal on failure) and restore the active session."""
        try:
            self._data.initialize()
        except BackendUnavailable:
            logger.error('Error initializing database', exc_info=True)
            raise
        self.initialized = True
        try:
            self.current_user = self._data.get_active_session()
        except HealthBuddyError:
            logger.error('Error restoring session', exc_info=True)
            self.current_user = None
        if self.current_user is not None:
            audit_log('READ', 'session', details={'action': 'session_restored'},
                      user_id=self.current_user.id)
        return self.current_user

    def _require_started(self):
        if not self.initialized:
            raise BackendUnavailable('Database not initialized')

    def _require_user(self):
        self._require_started()
        if self.current_user is None:
            raise InvalidCredentials('Not logged in')
        return self.current_user

    def register(self, name: str, email: str, password: str):
        """Create an account. Does not log the new user in."""
        errors = validate_registration({'name': name, 'email': email, 'password': password})
        if errors:
            raise ValidationError(errors)
        self._require_started()

        user = self._data.create_user(name.strip(), email.strip(), password)
        audit_log('CREATE', 'user', resource_id=user.id,
                  details={'action': 'registration'}, user_id=user.id)
        return user

    def login(self, email: str, password: str):
        errors = validate_login({'email': email, 'password': password})
        if errors:
            raise ValidationError(errors)
        self._require_started()

        user = self._data.find_user_by_credentials(email.strip(), password)
        if user is None:
            audit_log('LOGIN_FAILED', 'user', details={'reason': 'invalid_credentials'})
            raise InvalidCredentials()

        self._data.create_session(user.id)
        self.current_user = user
        audit_log('LOGIN', 'user', resource_id=user.id,
                  details={'action': 'login'}, user_id=user.id)
        return user

    def logout(self):
        """Clear the active session. Never raises."""
        user_id = self.current_user.id if self.current_user else None
        try:
            self._data.clear_session()
        except Exception:
            logger.error('Error logging out', exc_info=True)
        self.current_user = None
        audit_log('LOGOUT', 'user', resource_id=user_id,
                  details={'action': 'logout'}, user_id=user_id)

    def update_profile(self, data: dict):
        """Apply profile form values; ``current_user`` is replaced with the result."""
        user = self._require_user()
        errors = validate_profile_update(data)
        if errors:
            raise ValidationError(errors)

        profile = clean_profile_update(data)
        updated = self._data.update_user_profile(user.id, profile)
        self.current_user = updated
        audit_log('UPDATE', 'user', resource_id=user.id,
                  details={'action': 'profile_update', 'fields_changed': sorted(profile)},
                  user_id=user.id)
        return updated

    def add_reading(self, systolic, diastolic, heart_rate):
        user = self._require_user()
        errors = validate_reading({
            'systolic': systolic,
            'diastolic': diastolic,
            'heartRate': heart_rate,
        })
        if errors:
            raise ValidationError(errors)

        reading = self._data.add_reading(user.id, int(systolic), int(diastolic), int(heart_rate))
        audit_log('CREATE', 'reading', resource_id=reading.id, user_id=user.id)
        return reading

    def get_readings(self) -> list:
        """Current user's readings, newest first. Empty when logged out or on failure."""
        if not self.initialized or self.current_user is None:
            return []
        try:
            return self._data.get_readings(self.current_user.id)
        except Exception:
            logger.error('Error loading readings', exc_info=True)
            return []

    def delete_reading(self, reading_id: str):
        user = self._require_user()
        self._data.delete_reading(reading_id)
        audit_log('DELETE', 'reading', resource_id=str(reading_id), user_id=user.id)
