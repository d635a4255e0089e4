# foodchat/database.py
import os
import logging
import sqlite3
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel, create_engine, Session
from dotenv import load_dotenv

from . import models  # noqa: F401  registers the tables on SQLModel.metadata

load_dotenv()

logger = logging.getLogger(__name__)

# Same variables libpq reads, unless DATABASE_URL is set directly
if not os.getenv("DATABASE_URL"):
    db_user = os.getenv("PGUSER", "postgres")
    db_pass = os.getenv("PGPASSWORD", "postgres")
    db_host = os.getenv("PGHOST", "localhost")
    db_port = os.getenv("PGPORT", "5432")
    db_name = os.getenv("PGDATABASE", "foodchat")
    DATABASE_URL = f"postgresql://{db_user}:{db_pass}@{db_host}:{db_port}/{db_name}"
else:
    DATABASE_URL = os.getenv("DATABASE_URL")

engine = create_engine(DATABASE_URL, echo=False)


class StorageError(Exception):
    """Connectivity or query failure in the relational store."""


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless this is on for every connection
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def init_db(bind: Engine = None):
    bind = bind if bind is not None else engine
    try:
        SQLModel.metadata.create_all(bind)
    except SQLAlchemyError as e:
        logger.error("❌ Schema initialization failed: %s", e)
        raise StorageError("schema initialization failed") from e
    logger.info("Database tables ready")


def get_session():
    with Session(engine) as session:
        yield session
