"""
Database connection management and ORM session factory built from the database
section of the configuration.
"""
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, URL
from sqlalchemy.orm import Session, sessionmaker
from esg_platform.core.config import DatabaseConfig
from esg_platform.core.logger import logger


def build_database_url(database: DatabaseConfig) -> URL:
    """PostgreSQL URL for the configured host; TLS is required when DB_SSL is set."""
    return URL.create(
        "postgresql+psycopg2",
        username=database.user,
        password=database.password,
        host=database.host,
        port=database.port,
        database=database.name,
        query={"sslmode": "require"} if database.ssl else {},
    )


def create_engine_from_config(database: DatabaseConfig) -> Engine:
    """Engine whose pool keeps `pool.min` connections and grows up to `pool.max`."""
    return create_engine(
        build_database_url(database),
        pool_size=database.pool.min,
        max_overflow=database.pool.max - database.pool.min,
        pool_pre_ping=True,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autoflush=False, bind=engine)


def get_db(request: Request) -> Iterator[Session]:
    """Yields a session from the application's factory. Ensures connection closure upon completion."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def init_db(engine: Engine) -> None:
    """Checks the database is reachable before the server accepts traffic."""
    logger.info("Connecting to database %s", engine.url.render_as_string(hide_password=True))
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))
    logger.info("Database connection established")
