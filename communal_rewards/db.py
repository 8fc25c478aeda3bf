"""Engine and session handling for the SQL record store"""
import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from communal_rewards.config import settings
from communal_rewards.db_config import DatabaseManager
from communal_rewards.models.db import Base

logger = logging.getLogger(__name__)


class Database:
    """Owns the engine for the users, profiles, events and transactions tables"""

    def __init__(self):
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def initialized(self) -> bool:
        return self._session_factory is not None

    def init(self, url: Optional[str] = None) -> None:
        """
        Connect and create any missing reward tables.

        Args:
            url: Database URL; defaults to DATABASE_URL or the DB_* settings

        Raises:
            ValueError: If no usable connection settings are configured
            SQLAlchemyError: If the tables cannot be created
        """
        try:
            connection_string = DatabaseManager.connection_string(settings, url)
        except ValueError as e:
            logger.error(f"Invalid database settings: {e}")
            raise

        try:
            engine = create_engine(connection_string)
            Base.metadata.create_all(engine)
        except SQLAlchemyError as e:
            logger.error(f"Could not prepare reward tables: {e}")
            raise

        self._engine = engine
        self._session_factory = sessionmaker(bind=engine)
        logger.info(f"Record store ready on {engine.url.render_as_string(hide_password=True)}")

    def get_session(self) -> Session:
        """New session; the caller closes it"""
        if not self.initialized:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._session_factory()

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Session committed on success, rolled back on error, always closed"""
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_factory = None


db = Database()
