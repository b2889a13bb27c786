from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .logging_config import get_logger

logger = get_logger("db")

Base = declarative_base()

# Seconds a SQLite writer waits for the database lock before failing
SQLITE_BUSY_TIMEOUT = 30


class Store:
    """
    Handle on the database: owns the engine and the session factory.

    Created once by the application (or a test) and passed to whatever
    needs a session. There is no module-level engine.
    """

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url
        connect_args = {}
        if database_url.startswith("sqlite"):
            connect_args = {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT}
        self.engine = create_engine(database_url, echo=echo, connect_args=connect_args)
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def create_all(self) -> None:
        # models must be imported so their tables register on Base.metadata
        from . import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        logger.info("Database ready (%s)", self.engine.url.render_as_string(hide_password=True))

    def drop_all(self) -> None:
        from . import models  # noqa: F401

        Base.metadata.drop_all(bind=self.engine)

    def session(self) -> Session:
        return self.session_factory()

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("Database connections closed")


def get_db(request: Request) -> Generator:
    db = request.app.state.store.session()
    try:
        yield db
    finally:
        db.close()
