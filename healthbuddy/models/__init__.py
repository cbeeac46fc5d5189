from .user import User, PROFILE_FIELDS, profile_to_wire
from .session import Session
from .reading import BloodPressureReading
from .timestamps import utc_now, utc_timestamp, format_timestamp, parse_timestamp
