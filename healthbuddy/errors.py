"""
Error taxonomy shared by the storage backends, the facade, the auth
manager and the API server.
"""


class HealthBuddyError(Exception):
    """Base class. Carries a user-facing message and an HTTP status."""
    status_code = 500

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    default_message = 'Internal server error'


class ValidationError(HealthBuddyError):
    """Missing or malformed input, rejected before any storage call."""
    status_code = 400
    default_message = 'Invalid input'

    def __init__(self, errors):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__('; '.join(self.errors) if self.errors else None)


class UserExists(HealthBuddyError):
    status_code = 400
    default_message = 'User already exists'


class InvalidCredentials(HealthBuddyError):
    # Same message for unknown email and wrong password.
    status_code = 401
    default_message = 'Invalid credentials'


class NotFound(HealthBuddyError):
    status_code = 404
    default_message = 'Not found'


class InvalidId(NotFound):
    default_message = 'Invalid id'


class BackendUnavailable(HealthBuddyError):
    status_code = 503
    default_message = 'Storage backend unavailable'
