"""
Registration store handle

The store is constructed explicitly and opened/closed by the application
lifespan. Routes receive sessions through the get_db dependency, which reads
the handle from app.state.
"""
import logging
import re
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()


def mask_url(url: str) -> str:
    """Hide the password part of a database URL for logging"""
    return re.sub(r"//([^:/@]+):([^@]+)@", r"//\1:****@", url)


class Database:
    """Owns the SQLAlchemy engine and session factory for one store"""

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self.engine: Optional[Engine] = None
        self.session_factory: Optional[sessionmaker] = None

    def open(self) -> "Database":
        if self.engine is not None:
            return self

        connect_args = {}
        if self.url.startswith("sqlite"):
            # Sessions are handed across threadpool workers
            connect_args = {"check_same_thread": False, "timeout": 30}

        logger.info("Opening registration store at %s", mask_url(self.url))
        self.engine = create_engine(
            self.url,
            echo=self.echo,
            pool_pre_ping=True,
            connect_args=connect_args,
        )
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

        # Register every model before creating tables
        import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        return self

    def close(self) -> None:
        if self.engine is None:
            return
        logger.info("Closing registration store")
        self.engine.dispose()
        self.engine = None
        self.session_factory = None

    def session(self) -> Session:
        if self.session_factory is None:
            raise RuntimeError("Database is not open")
        return self.session_factory()


def get_db(request: Request) -> Iterator[Session]:
    """Dependency for FastAPI routes"""
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
