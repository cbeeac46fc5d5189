"""
Relational on-device storage using SQLAlchemy.

Defaults to a local SQLite file; any SQLAlchemy URL works.
"""
import logging

from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text,
    create_engine, event, select, text, update,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from healthbuddy.errors import BackendUnavailable, InvalidId, NotFound, UserExists
from healthbuddy.models import (
    BloodPressureReading, PROFILE_FIELDS, Session, User, format_timestamp, utc_now,
)
from healthbuddy.utils.passwords import hash_password, verify_password
from .base import StorageBackend

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class UserRecord(Base):
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    email = Column(String(320), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    height = Column(Float, nullable=True)
    weight = Column(Float, nullable=True)
    age = Column(Integer, nullable=True)
    blood_group = Column(String(10), nullable=True)
    allergies = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    def to_entity(self) -> User:
        return User(
            id=str(self.id),
            name=self.name,
            email=self.email,
            height=self.height,
            weight=self.weight,
            age=self.age,
            blood_group=self.blood_group,
            allergies=self.allergies,
            created_at=format_timestamp(self.created_at),
            updated_at=format_timestamp(self.updated_at),
        )


class SessionRecord(Base):
    __tablename__ = 'sessions'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    def to_entity(self) -> Session:
        return Session(
            id=str(self.id),
            user_id=str(self.user_id),
            is_active=bool(self.is_active),
            created_at=format_timestamp(self.created_at),
        )


class ReadingRecord(Base):
    __tablename__ = 'blood_pressure_readings'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    systolic = Column(Integer, nullable=False)
    diastolic = Column(Integer, nullable=False)
    heart_rate = Column(Integer, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)

    def to_entity(self) -> BloodPressureReading:
        return BloodPressureReading(
            id=str(self.id),
            user_id=str(self.user_id),
            systolic=self.systolic,
            diastolic=self.diastolic,
            heart_rate=self.heart_rate,
            timestamp=format_timestamp(self.timestamp),
        )


def _parse_id(value) -> int:
    if isinstance(value, bool):
        raise InvalidId(f'Invalid id: {value!r}')
    try:
        return int(value)
    except (ValueError, TypeError):
        raise InvalidId(f'Invalid id: {value!r}') from None


def _engine_options(url: str) -> dict:
    options = {'pool_pre_ping': True}
    if url.startswith('sqlite'):
        options['connect_args'] = {'check_same_thread': False}
    return options


class SqlBackend(StorageBackend):
    """SQLAlchemy implementation of the storage contract."""

    name = 'sql'
    duplicate_errors = (IntegrityError,)

    def __init__(self, database_url: str):
        super().__init__()
        self._database_url = database_url
        self._engine = None
        self._session_factory = None

    def initialize(self):
        if self._session_factory is not None:
            return
        try:
            engine = create_engine(self._database_url, **_engine_options(self._database_url))
            if self._database_url.startswith('sqlite'):
                event.listen(engine, 'connect', _enable_sqlite_foreign_keys)
            Base.metadata.create_all(engine)
            with engine.connect() as conn:
                conn.execute(text('SELECT 1'))
        except SQLAlchemyError as exc:
            logger.error('SQL storage initialization failed: %s', exc)
            raise BackendUnavailable(f'Could not open database: {exc}') from exc
        self._engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        logger.info('SQL storage ready')

    def close(self):
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_factory = None

    def _session(self):
        if self._session_factory is None:
            raise BackendUnavailable('Database not initialized')
        return self._session_factory()

    # Users

    def create_user(self, name, email, password):
        record = UserRecord(
            name=name,
            email=email,
            password_hash=hash_password(password),
            created_at=utc_now(),
        )
        with self._session() as db:
            existing = db.execute(
                select(UserRecord.id).where(UserRecord.email == email)
            ).first()
            if existing is not None:
                raise UserExists()
            db.add(record)
            db.commit()
            return record.to_entity()

    def find_user_by_credentials(self, email, password):
        with self._session() as db:
            record = db.execute(
                select(UserRecord).where(UserRecord.email == email)
            ).scalar_one_or_none()
            if record is None or not verify_password(record.password_hash, password):
                return None
            return record.to_entity()

    def find_user_by_id(self, user_id):
        with self._session() as db:
            record = db.get(UserRecord, _parse_id(user_id))
            return record.to_entity() if record else None

    def update_user_profile(self, user_id, profile):
        with self._session() as db:
            record = db.get(UserRecord, _parse_id(user_id))
            if record is None:
                raise NotFound('User not found')
            for field in PROFILE_FIELDS:
                if field in profile:
                    setattr(record, field, profile[field])
            record.updated_at = utc_now()
            db.commit()
            return record.to_entity()

    # Sessions

    def create_session(self, user_id):
        uid = _parse_id(user_id)
        with self._session_lock, self._session() as db:
            with db.begin():
                if db.get(UserRecord, uid) is None:
                    raise NotFound('User not found')
                db.execute(
                    update(SessionRecord)
                    .where(SessionRecord.is_active.is_(True))
                    .values(is_active=False)
                )
                record = SessionRecord(user_id=uid, is_active=True, created_at=utc_now())
                db.add(record)
            return record.to_entity()

    def get_active_session(self):
        with self._session() as db:
            record = db.execute(
                select(SessionRecord)
                .where(SessionRecord.is_active.is_(True))
                .order_by(SessionRecord.id.desc())
            ).scalars().first()
            if record is None:
                return None
            user = db.get(UserRecord, record.user_id)
            return user.to_entity() if user else None

    def clear_session(self):
        with self._session_lock, self._session() as db:
            db.execute(
                update(SessionRecord)
                .where(SessionRecord.is_active.is_(True))
                .values(is_active=False)
            )
            db.commit()

    # Readings

    def add_reading(self, user_id, systolic, diastolic, heart_rate):
        uid = _parse_id(user_id)
        with self._session() as db:
            if db.get(UserRecord, uid) is None:
                raise NotFound('User not found')
            record = ReadingRecord(
                user_id=uid,
                systolic=int(systolic),
                diastolic=int(diastolic),
                heart_rate=int(heart_rate),
                timestamp=utc_now(),
            )
            db.add(record)
            db.commit()
            return record.to_entity()

    def _query_readings(self, user_id):
        uid = _parse_id(user_id)
        with self._session() as db:
            records = db.execute(
                select(ReadingRecord)
                .where(ReadingRecord.user_id == uid)
                .order_by(ReadingRecord.timestamp.desc(), ReadingRecord.id.desc())
            ).scalars().all()
            return [r.to_entity() for r in records]

    def delete_reading(self, reading_id):
        with self._session() as db:
            record = db.get(ReadingRecord, _parse_id(reading_id))
            if record is None:
                raise NotFound('Reading not found')
            db.delete(record)
            db.commit()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute('PRAGMA foreign_keys=ON')
    cursor.close()
