"""
Document-store backend talking to MongoDB directly through pymongo.
"""
import logging

from bson import ObjectId
from bson.errors import InvalidId as BsonInvalidId
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from healthbuddy.errors import BackendUnavailable, InvalidId, NotFound, UserExists
from healthbuddy.models import BloodPressureReading, PROFILE_FIELDS, Session, User, utc_timestamp
from healthbuddy.utils.passwords import hash_password, verify_password
from .base import StorageBackend

logger = logging.getLogger(__name__)


def _object_id(value) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (BsonInvalidId, TypeError):
        raise InvalidId(f'Invalid id: {value!r}') from None


def _user_from_doc(doc: dict) -> User:
    return User(
        id=str(doc['_id']),
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
        id=str(doc['_id']),
        user_id=str(doc['userId']),
        systolic=doc['systolic'],
        diastolic=doc['diastolic'],
        heart_rate=doc['heartRate'],
        timestamp=doc['timestamp'],
    )


class MongoBackend(StorageBackend):
    """pymongo implementation of the storage contract.

    ``client`` may be supplied (e.g. a pre-configured or test client);
    otherwise one is created from ``uri`` on initialize.
    """

    name = 'mongo'
    duplicate_errors = (DuplicateKeyError,)

    def __init__(self, uri: str, db_name: str = 'healthbuddy', client=None):
        super().__init__()
        self._uri = uri
        self._db_name = db_name
        self._client = client
        self._owns_client = client is None
        self._db = None

    def initialize(self):
        if self._db is not None:
            return
        try:
            if self._client is None:
                self._client = MongoClient(self._uri, serverSelectionTimeoutMS=5000)
            self._client.admin.command('ping')
            db = self._client[self._db_name]
            db.users.create_index([('email', ASCENDING)], unique=True)
            db.sessions.create_index([('isActive', ASCENDING)])
            db.blood_pressure.create_index([('userId', ASCENDING), ('timestamp', DESCENDING)])
        except PyMongoError as exc:
            logger.error('MongoDB connection failed: %s', exc)
            raise BackendUnavailable(f'Could not connect to MongoDB: {exc}') from exc
        self._db = db
        logger.info('MongoDB storage ready (db=%s)', self._db_name)

    def close(self):
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None
        self._db = None

    @property
    def db(self):
        if self._db is None:
            raise BackendUnavailable('Database not initialized')
        return self._db

    # Users

    def create_user(self, name, email, password):
        users = self.db.users
        if users.find_one({'email': email}, {'_id': 1}) is not None:
            raise UserExists()
        doc = {
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
        result = users.insert_one(doc)
        doc['_id'] = result.inserted_id
        return _user_from_doc(doc)

    def find_user_by_credentials(self, email, password):
        doc = self.db.users.find_one({'email': email})
        if doc is None or not verify_password(doc.get('passwordHash'), password):
            return None
        return _user_from_doc(doc)

    def find_user_by_id(self, user_id):
        doc = self.db.users.find_one({'_id': _object_id(user_id)})
        return _user_from_doc(doc) if doc else None

    def update_user_profile(self, user_id, profile):
        changes = {wire: profile[field] for field, wire in PROFILE_FIELDS.items()
                   if field in profile}
        changes['updatedAt'] = utc_timestamp()
        doc = self.db.users.find_one_and_update(
            {'_id': _object_id(user_id)},
            {'$set': changes},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise NotFound('User not found')
        return _user_from_doc(doc)

    # Sessions

    def create_session(self, user_id):
        oid = _object_id(user_id)
        if self.db.users.find_one({'_id': oid}, {'_id': 1}) is None:
            raise NotFound('User not found')
        with self._session_lock:
            self.db.sessions.update_many({'isActive': True}, {'$set': {'isActive': False}})
            doc = {'userId': oid, 'isActive': True, 'createdAt': utc_timestamp()}
            result = self.db.sessions.insert_one(doc)
        return Session(id=str(result.inserted_id), user_id=str(oid),
                       is_active=True, created_at=doc['createdAt'])

    def get_active_session(self):
        session = self.db.sessions.find_one({'isActive': True}, sort=[('_id', DESCENDING)])
        if session is None:
            return None
        doc = self.db.users.find_one({'_id': session['userId']})
        return _user_from_doc(doc) if doc else None

    def clear_session(self):
        with self._session_lock:
            self.db.sessions.update_many({'isActive': True}, {'$set': {'isActive': False}})

    # Readings

    def add_reading(self, user_id, systolic, diastolic, heart_rate):
        oid = _object_id(user_id)
        if self.db.users.find_one({'_id': oid}, {'_id': 1}) is None:
            raise NotFound('User not found')
        doc = {
            'userId': oid,
            'systolic': int(systolic),
            'diastolic': int(diastolic),
            'heartRate': int(heart_rate),
            'timestamp': utc_timestamp(),
        }
        result = self.db.blood_pressure.insert_one(doc)
        doc['_id'] = result.inserted_id
        return _reading_from_doc(doc)

    def _query_readings(self, user_id):
        cursor = (self.db.blood_pressure
                  .find({'userId': _object_id(user_id)})
                  .sort([('timestamp', DESCENDING), ('_id', DESCENDING)]))
        return [_reading_from_doc(doc) for doc in cursor]

    def delete_reading(self, reading_id):
        result = self.db.blood_pressure.delete_one({'_id': _object_id(reading_id)})
        if result.deleted_count == 0:
            raise NotFound('Reading not found')
