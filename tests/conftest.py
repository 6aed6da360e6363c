"""
conftest.py
===========
Shared fixtures: a temporary SQLite database and a FastAPI test client.
"""

import sys, os
# Ensure the telemed package is discoverable by Python when running from /tests
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import tempfile

# Point the app at a temporary database before it is imported
_db_fd, _db_path = tempfile.mkstemp(suffix=".db")
os.environ["TELEMED_DB"] = _db_path

import pytest
from fastapi.testclient import TestClient

from telemed.main import app
from telemed.db import reset_db
from telemed.models import Base


@pytest.fixture()
def client():
    """
    Test client over a freshly created and seeded database.
    Startup seeding runs when the client is entered.
    """
    reset_db(Base)
    with TestClient(app) as c:
        yield c


def pytest_sessionfinish(session, exitstatus):
    # Clean up the temporary database after the run
    os.close(_db_fd)
    if os.path.exists(_db_path):
        os.unlink(_db_path)
