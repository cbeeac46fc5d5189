"""
Salted password hashing for stored credentials.
"""
from werkzeug.security import generate_password_hash, check_password_hash


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    """Constant-time check of a password against a stored hash.
    A missing hash never matches."""
    if not password_hash or password is None:
        return False
    return check_password_hash(password_hash, password)
