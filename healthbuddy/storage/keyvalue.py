"""
Key-value on-device storage.

Each collection (users, sessions, blood_pressure) is one key holding a
JSON array of documents, the layout a browser local store uses. The
mapping is in-memory by default or a ``shelve`` file when a path is
configured.
"""
import json
import logging
import shelve
import threading
import uuid

from healthbuddy.errors import BackendUnavailable, NotFound, UserExists
from healthbuddy.models import BloodPressureReading, PROFILE_FIELDS, Session, User, utc_timestamp
from healthbuddy.utils.passwords import hash_password, verify_password
from .base import StorageBackend

logger = logging.getLogger(__name__)

USERS = 'users'
SESSIONS = 'sessions'
READINGS = 'blood_pressure'
COLLECTIONS = (USERS, SESSIONS, READINGS)


def _user_from_doc(doc: dict) -> User:
    return User(
        id=doc['id'],
        name=doc['name'],
        email=doc['email'],
        height=doc.get('height'),
        weight=doc.get('weight'),
        age=doc.get('age'),
        blood_group=doc.get('bloodGroup'),
        allergies=doc.get('allergies'),
        created_at=doc['createdAt'],
        updated_at=doc.get('updatedAt'),
    )


def _reading_from_doc(doc: dict) -> BloodPressureReading:
    return BloodPressureReading(
        id=doc['id'],
        user_id=doc['userId'],
        systolic=doc['systolic'],
        diastolic=doc['diastolic'],
        heart_rate=doc['heartRate'],
        timestamp=doc['timestamp'],
    )


class KeyValueBackend(StorageBackend):
    """Key-value collection implementation of the storage contract."""

    name = 'keyvalue'

    def __init__(self, path: str = None, store=None):
        super().__init__()
        self._path = path
        self._store = store
        self._owns_store = store is None
        self._lock = threading.RLock()

    def initialize(self):
        with self._lock:
            if self._store is None:
                if self._path:
                    try:
                        self._store = shelve.open(self._path)
                    except Exception as exc:
                        logger.error('Key-value storage initialization failed: %s', exc)
                        raise BackendUnavailable(f'Could not open {self._path}: {exc}') from exc
                else:
                    self._store = {}
            for collection in COLLECTIONS:
                if collection not in self._store:
                    self._store[collection] = '[]'
        logger.info('Key-value storage ready')

    def close(self):
        with self._lock:
            if self._owns_store and hasattr(self._store, 'close'):
                self._store.close()
            if self._owns_store:
                self._store = None

    def _load(self, collection: str) -> list:
        if self._store is None:
            raise BackendUnavailable('Database not initialized')
        return json.loads(self._store.get(collection, '[]'))

    def _save(self, collection: str, docs: list):
        self._store[collection] = json.dumps(docs)
        if hasattr(self._store, 'sync'):
            self._store.sync()

    def _find_user_doc(self, users: list, user_id):
        return next((u for u in users if u['id'] == user_id), None)

    # Users

    def create_user(self, name, email, password):
        with self._lock:
            users = self._load(USERS)
            if any(u['email'] == email for u in users):
                raise UserExists()
            doc = {
                'id': uuid.uuid4().hex,
                'name': name,
                'email': email,
                'passwordHash': hash_password(password),
                'height': None,
                'weight': None,
                'age': None,
                'bloodGroup': None,
                'allergies': None,
                'createdAt': utc_timestamp(),
                'updatedAt': None,
            }
            users.append(doc)
            self._save(USERS, users)
        return _user_from_doc(doc)

    def find_user_by_credentials(self, email, password):
        doc = next((u for u in self._load(USERS) if u['email'] == email), None)
        if doc is None or not verify_password(doc.get('passwordHash'), password):
            return None
        return _user_from_doc(doc)

    def find_user_by_id(self, user_id):
        doc = self._find_user_doc(self._load(USERS), user_id)
        return _user_from_doc(doc) if doc else None

    def update_user_profile(self, user_id, profile):
        with self._lock:
            users = self._load(USERS)
            doc = self._find_user_doc(users, user_id)
            if doc is None:
                raise NotFound('User not found')
            for field, wire_name in PROFILE_FIELDS.items():
                if field in profile:
                    doc[wire_name] = profile[field]
            doc['updatedAt'] = utc_timestamp()
            self._save(USERS, users)
        return _user_from_doc(doc)

    # Sessions

    def create_session(self, user_id):
        with self._session_lock, self._lock:
            if self._find_user_doc(self._load(USERS), user_id) is None:
                raise NotFound('User not found')
            sessions = self._load(SESSIONS)
            for doc in sessions:
                doc['isActive'] = False
            doc = {
                'id': uuid.uuid4().hex,
                'userId': user_id,
                'isActive': True,
                'createdAt': utc_timestamp(),
            }
            sessions.append(doc)
            self._save(SESSIONS, sessions)
        return Session(id=doc['id'], user_id=doc['userId'],
                       is_active=True, created_at=doc['createdAt'])

    def get_active_session(self):
        active = [s for s in self._load(SESSIONS) if s.get('isActive')]
        if not active:
            return None
        return self.find_user_by_id(active[-1]['userId'])

    def clear_session(self):
        with self._session_lock, self._lock:
            sessions = self._load(SESSIONS)
            if not any(s.get('isActive') for s in sessions):
                return
            for doc in sessions:
                doc['isActive'] = False
            self._save(SESSIONS, sessions)

    # Readings

    def add_reading(self, user_id, systolic, diastolic, heart_rate):
        with self._lock:
            if self._find_user_doc(self._load(USERS), user_id) is None:
                raise NotFound('User not found')
            readings = self._load(READINGS)
            doc = {
                'id': uuid.uuid4().hex,
                'userId': user_id,
                'systolic': int(systolic),
                'diastolic': int(diastolic),
                'heartRate': int(heart_rate),
                'timestamp': utc_timestamp(),
            }
            readings.append(doc)
            self._save(READINGS, readings)
        return _reading_from_doc(doc)

    def _query_readings(self, user_id):
        own = [r for r in self._load(READINGS) if r['userId'] == user_id]
        # Later insertions win ties on equal timestamps.
        own = sorted(reversed(own), key=lambda r: r['timestamp'], reverse=True)
        return [_reading_from_doc(r) for r in own]

    def delete_reading(self, reading_id):
        with self._lock:
            readings = self._load(READINGS)
            remaining = [r for r in readings if r['id'] != reading_id]
            if len(remaining) == len(readings):
                raise NotFound('Reading not found')
            self._save(READINGS, remaining)
