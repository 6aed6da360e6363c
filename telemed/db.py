"""
db.py
=====
SQLite engine and sessions for the telemedicine backend.

The database file comes from TELEMED_DB (see config.py); its directory is
created on import. One engine is shared by the API threads, so SQLite's
same-thread check is off. Sessions never autoflush: services commit
explicitly after each write.

 - get_db:   per-request session for FastAPI dependencies
 - init_db:  create missing tables at startup
 - reset_db: drop and recreate every table (test-suite)
"""

import os
import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from .config import DB_PATH

logger = logging.getLogger(__name__)

DB_DIR = os.path.dirname(DB_PATH)

if DB_DIR and not os.path.exists(DB_DIR):
    os.makedirs(DB_DIR, exist_ok=True)

SQLALCHEMY_DATABASE_URL = f"sqlite:///{DB_PATH}"

engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Session for one request; closed when the request ends."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(Base):
    """
    Creates the tables if missing.
    Called once on FastAPI startup.
    """
    logger.info("Creating tables in %s", SQLALCHEMY_DATABASE_URL)
    Base.metadata.create_all(bind=engine)


def reset_db(Base):
    """Drops and recreates every table. Used by the test-suite."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
