import logging
from typing import List, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from models.base_model import Base
from models.user import User
from models.refresh_token import RefreshToken
from models.access_token import AccessToken
from services.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

# Map model names for easy querying
classes = {
    "User": User,
    "RefreshToken": RefreshToken,
    "AccessToken": AccessToken,
}


class DBStorage:
    """SQLAlchemy-backed storage for users and issued tokens.

    Every mutating token method commits before returning, so a single logical
    operation always reads its own writes. Failures roll the session back and
    surface as StoreUnavailableError.
    """
    __engine = None
    __session = None

    def __init__(self, database_url: str, echo: bool = False):
        """Initialize engine for the given database url"""
        kwargs = {"echo": echo}
        if database_url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                # one shared connection, otherwise every session sees an empty db
                kwargs["poolclass"] = StaticPool
        else:
            kwargs["pool_pre_ping"] = True
        self.__engine = create_engine(database_url, **kwargs)

        # Enable SQLite foreign keys (needed for ON DELETE CASCADE)
        if self.__engine.url.get_backend_name() == "sqlite":
            @event.listens_for(self.__engine, "connect")
            def _set_sqlite_pragma(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

    def reload(self):
        """Create tables and start session"""
        Base.metadata.create_all(self.__engine)
        session_factory = sessionmaker(bind=self.__engine, expire_on_commit=False)
        Session = scoped_session(session_factory)
        self.__session = Session

    def new(self, obj):
        """Add object to session"""
        self.__session.add(obj)

    def save(self):
        """Commit session"""
        try:
            self.__session.commit()
        except SQLAlchemyError as exc:
            self.__session.rollback()
            logger.exception("Commit failed")
            raise StoreUnavailableError("Could not persist changes") from exc

    def delete(self, obj=None):
        """Delete object if exists (hard delete) and commit"""
        if obj:
            self.__session.delete(obj)
            self.save()

    def get(self, cls, id):
        """Fetch one object by class and ID"""
        if cls in classes.values():
            return self._read(lambda s: s.get(cls, id))
        return None

    def count(self, cls=None):
        """Count objects"""
        if cls:
            return self._read(lambda s: s.query(cls).count())
        return sum(self._read(lambda s: s.query(model).count()) for model in classes.values())

    def close(self):
        """Remove session (for API teardown)"""
        self.__session.remove()

    def _read(self, query):
        try:
            return query(self.__session)
        except SQLAlchemyError as exc:
            self.__session.rollback()
            logger.exception("Query failed")
            raise StoreUnavailableError("Could not read from store") from exc

    # Users

    def create_user(self, email: str, password_hash: str, **fields) -> User:
        user = User(email=email, password_hash=password_hash, **fields)
        self.new(user)
        self.save()
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        return self.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self._read(lambda s: s.query(User).filter(User.email == email).first())

    # Tokens

    def save_refresh(self, record: RefreshToken) -> None:
        self.new(record)
        self.save()

    def save_access(self, record: AccessToken) -> None:
        self.new(record)
        self.save()

    def find_refresh_by_token(self, token: str) -> Optional[RefreshToken]:
        return self._read(
            lambda s: s.query(RefreshToken).filter(RefreshToken.token_string == token).first()
        )

    def find_refresh_by_id(self, refresh_id: str) -> Optional[RefreshToken]:
        return self._read(lambda s: s.query(RefreshToken).filter(RefreshToken.id == refresh_id).first())

    def find_access_by_token(self, token: str) -> Optional[AccessToken]:
        return self._read(
            lambda s: s.query(AccessToken).filter(AccessToken.token_string == token).first()
        )

    def access_tokens_for_refresh(self, refresh_id: str) -> List[AccessToken]:
        return self._read(
            lambda s: s.query(AccessToken).filter(AccessToken.refresh_token_id == refresh_id).all()
        )

    def delete_access_by_token(self, token: str) -> bool:
        session = self.__session
        try:
            deleted = (
                session.query(AccessToken)
                .filter(AccessToken.token_string == token)
                .delete(synchronize_session=False)
            )
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Deleting access token failed")
            raise StoreUnavailableError("Could not delete access token") from exc
        return deleted > 0

    def delete_refresh_cascade(self, refresh_id: str) -> bool:
        session = self.__session
        try:
            # children first, parent second, one transaction
            session.query(AccessToken).filter(
                AccessToken.refresh_token_id == refresh_id
            ).delete(synchronize_session=False)
            deleted = (
                session.query(RefreshToken)
                .filter(RefreshToken.id == refresh_id)
                .delete(synchronize_session=False)
            )
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Cascade delete of refresh token %s failed", refresh_id)
            raise StoreUnavailableError("Could not delete refresh token") from exc
        return deleted > 0
