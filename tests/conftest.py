"""
Shared test setup: an isolated SQLite database seeded before any test runs.
"""

import os
import tempfile

# Must be set before brokerage.db is imported anywhere
_db_dir = tempfile.mkdtemp(prefix="brokerage-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_db_dir, 'test.db')}"

import pytest


@pytest.fixture(scope="session", autouse=True)
def seeded_database():
    from brokerage.db import initialize_database
    initialize_database()
    yield

