"""
Input validation for registration, login, readings, and profile updates.

Each validator returns a list of error strings (empty = valid) so callers
can report every problem at once.
"""
import math

from email_validator import validate_email, EmailNotValidError

# Plausible ranges accepted from the reading form.
SYSTOLIC_RANGE = (40, 250)
DIASTOLIC_RANGE = (30, 150)
HEART_RATE_RANGE = (30, 200)

HEIGHT_RANGE_CM = (30, 300)
WEIGHT_RANGE_KG = (1, 700)
AGE_RANGE = (0, 150)

# camelCase wire names accepted alongside the snake_case field names.
_PROFILE_KEYS = {
    'height': 'height',
    'weight': 'weight',
    'age': 'age',
    'bloodGroup': 'blood_group',
    'blood_group': 'blood_group',
    'allergies': 'allergies',
}


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_registration(data: dict) -> list:
    """Validate registration input. Returns list of error strings (empty = valid)."""
    errors = []

    name = data.get('name')
    name = name.strip() if isinstance(name, str) else ''
    if not name:
        errors.append('Name is required')
    elif len(name) > 200:
        errors.append('Name must be 200 characters or fewer')

    email = data.get('email')
    email = email.strip() if isinstance(email, str) else ''
    if not email:
        errors.append('Email is required')
    else:
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError:
            errors.append('Invalid email format')

    password = data.get('password')
    if not isinstance(password, str) or not password:
        errors.append('Password is required')

    return errors


def validate_login(data: dict) -> list:
    """Login only checks presence; a wrong pair is reported as invalid credentials."""
    errors = []
    if _blank(data.get('email')):
        errors.append('Email is required')
    if not isinstance(data.get('password'), str) or not data.get('password'):
        errors.append('Password is required')
    return errors


def _check_int(errors, data, key, label, bounds):
    value = data.get(key)
    if _blank(value):
        errors.append(f'{label} is required')
        return
    if isinstance(value, bool):
        errors.append(f'{label} must be an integer')
        return
    try:
        number = int(value)
    except (ValueError, TypeError, OverflowError):
        errors.append(f'{label} must be an integer')
        return
    if isinstance(value, float) and value != number:
        errors.append(f'{label} must be an integer')
        return
    low, high = bounds
    if number < low or number > high:
        errors.append(f'{label} must be between {low} and {high}')


def validate_reading(data: dict) -> list:
    """Validate blood pressure reading input. Returns list of error strings."""
    errors = []
    _check_int(errors, data, 'systolic', 'Systolic', SYSTOLIC_RANGE)
    _check_int(errors, data, 'diastolic', 'Diastolic', DIASTOLIC_RANGE)
    _check_int(errors, data, 'heartRate', 'Heart rate', HEART_RATE_RANGE)
    return errors


def validate_profile_update(data: dict) -> list:
    """Validate profile update input. Blank values are allowed and clear the field."""
    errors = []

    if 'email' in data:
        errors.append('Email cannot be changed via profile update')
    if 'password' in data:
        errors.append('Password cannot be changed via profile update')

    for key, label, bounds in (('height', 'Height', HEIGHT_RANGE_CM),
                               ('weight', 'Weight', WEIGHT_RANGE_KG)):
        value = data.get(key)
        if _blank(value):
            continue
        try:
            number = float(value)
        except (ValueError, TypeError):
            errors.append(f'{label} must be a number')
            continue
        if not math.isfinite(number):
            errors.append(f'{label} must be a number')
            continue
        if number < bounds[0] or number > bounds[1]:
            errors.append(f'{label} must be between {bounds[0]} and {bounds[1]}')

    age = data.get('age')
    if not _blank(age):
        try:
            a = int(age)
            if isinstance(age, float) and age != a:
                raise ValueError(age)
            if a < AGE_RANGE[0] or a > AGE_RANGE[1]:
                errors.append(f'Age must be between {AGE_RANGE[0]} and {AGE_RANGE[1]}')
        except (ValueError, TypeError, OverflowError):
            errors.append('Age must be an integer')

    blood_group = data.get('bloodGroup', data.get('blood_group'))
    if not _blank(blood_group) and len(str(blood_group).strip()) > 10:
        errors.append('Blood group must be 10 characters or fewer')

    allergies = data.get('allergies')
    if not _blank(allergies) and len(str(allergies)) > 1000:
        errors.append('Allergies must be 1000 characters or fewer')

    return errors


def clean_profile_update(data: dict) -> dict:
    """
    Convert validated form input into typed profile fields.

    Only keys present in ``data`` are returned; blank strings become None
    so the field is cleared.
    """
    profile = {}
    for key, field in _PROFILE_KEYS.items():
        if key not in data:
            continue
        value = data[key]
        if _blank(value):
            profile[field] = None
        elif field in ('height', 'weight'):
            profile[field] = float(value)
        elif field == 'age':
            profile[field] = int(value)
        else:
            profile[field] = str(value).strip()
    return profile
