from .audit_logger import audit_log, configure_logging
from .passwords import hash_password, verify_password
from .validators import (
    clean_profile_update, validate_login, validate_profile_update,
    validate_reading, validate_registration,
)
