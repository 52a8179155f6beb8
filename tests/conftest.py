"""
Shared pytest fixtures and test utilities for the route tracker tests.

This module provides:
- Environment configuration (sqlite file, admin password) before app import
- Table reset between tests
- Factories for the sample Boston / New York / Miami route
- TestClient fixtures (anonymous and admin)
"""
import os
import sqlite3
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

# ─────────────────────────── PATH SETUP ───────────────────────────

TEST_ROOT = Path(__file__).resolve().parent
DATA_DIR = TEST_ROOT / "tmp_data"
DATA_DIR.mkdir(parents=True, exist_ok=True)

DB_FILE = DATA_DIR / "roadtrip.db"

# ─────────────────────────── ENVIRONMENT ───────────────────────────

ADMIN_PASSWORD = "admin-test-password"

def configure_test_environment():
    """Configure environment variables for testing."""
    os.environ["DB_PATH"] = str(DB_FILE)
    os.environ["LOG_FILE"] = str(DATA_DIR / "roadtrip.log")
    os.environ["ADMIN_PASSWORD"] = ADMIN_PASSWORD
    os.environ["DEMO_MODE"] = "0"  # Tests seed their own routes
    os.environ.setdefault("LOG_LEVEL", "WARNING")

configure_test_environment()

sys.path.insert(0, str(TEST_ROOT.parent))

from roadtrip.main import app  # noqa: E402
from roadtrip.auth import init_tables  # noqa: E402
from roadtrip.mileage import LegMileageTable  # noqa: E402
from roadtrip.models import DriveInfo, Stop  # noqa: E402
from roadtrip.route import create_stop  # noqa: E402

# ─────────────────────────── DATABASE HELPERS ───────────────────────────

def get_test_db():
    """Get a database connection for test operations."""
    conn = sqlite3.connect(DB_FILE)
    conn.row_factory = sqlite3.Row
    return conn

def clear_all_test_data():
    """Create tables if needed and empty them."""
    init_tables()
    conn = get_test_db()
    for table in ("stops", "activity"):
        conn.execute(f"DELETE FROM {table}")
    conn.commit()
    conn.close()

# ─────────────────────────── TEST DATA FACTORIES ───────────────────────────

# (city, arrive, depart, miles from previous stop)
SAMPLE_ROUTE = [
    ("Boston", "2026-06-12", "2026-06-15", 0),
    ("New York", "2026-06-15", "2026-06-17", 215),
    ("Miami", "2026-06-17", "2026-06-20", 1300),
]

def build_route(rows=SAMPLE_ROUTE) -> Tuple[List[Stop], LegMileageTable]:
    """In-memory stops and mileage table for resolver tests."""
    stops = [
        Stop(city=city, arrive_date=arrive, depart_date=depart, sort_order=i + 1)
        for i, (city, arrive, depart, _) in enumerate(rows)
    ]
    mileage = LegMileageTable([miles for *_, miles in rows])
    return stops, mileage

def seed_route(rows=SAMPLE_ROUTE, states: Optional[List[str]] = None) -> List[Stop]:
    """Persist a route through the store so it goes through validation."""
    created = []
    for i, (city, arrive, depart, miles) in enumerate(rows):
        created.append(create_stop(
            city=city,
            arrive_date=arrive,
            depart_date=depart,
            sort_order=i + 1,
            state=states[i] if states else None,
            drive_from_prev=DriveInfo(miles=miles) if i else None,
        ))
    return created

def admin_headers() -> dict:
    return {"X-Admin-Password": ADMIN_PASSWORD}

# ─────────────────────────── PYTEST FIXTURES ───────────────────────────

@pytest.fixture(autouse=True)
def fresh_db():
    """Every test starts from empty tables."""
    clear_all_test_data()
    yield

@pytest.fixture
def client():
    """Function-scoped test client."""
    with TestClient(app) as client:
        yield client

@pytest.fixture
def admin_client():
    """
    Test client pre-authenticated as admin.
    """
    with TestClient(app) as client:
        client.headers.update(admin_headers())
        yield client

@pytest.fixture
def sample_route():
    """The Boston / New York / Miami route stored in the database."""
    return seed_route(states=["MA", "NY", "FL"])
