"""
Demo Mode - default route for local testing

Seeds the six-city East Coast road trip when the stops table is empty.
Enable by setting DEMO_MODE=true environment variable.

Usage:
    from roadtrip.demo_data import seed_demo_route, DEMO_MODE

    if DEMO_MODE:
        seed_demo_route()
"""

import os
import logging
from typing import List, Dict, Any

from roadtrip.auth import db
from roadtrip.models import DriveInfo
from roadtrip.route import create_stop

logger = logging.getLogger("roadtrip.demo")

# Demo mode flag - enabled via environment variable
DEMO_MODE = os.getenv("DEMO_MODE", "").lower() in ("true", "1", "yes", "demo")

# ─────────────────────────── DEMO ROUTE ───────────────────────────

DEMO_STOPS: List[Dict[str, Any]] = [
    {
        "city": "Boston", "state": "MA",
        "arrive_date": "2026-06-11", "depart_date": "2026-06-14",
        "lat": 42.3601, "lng": -71.0589,
        "drive_from_prev": None,
        "notes": "Flying in. Staying in New Hampshire area.",
    },
    {
        "city": "New York", "state": "NY",
        "arrive_date": "2026-06-14", "depart_date": "2026-06-17",
        "lat": 40.7128, "lng": -74.006,
        "drive_from_prev": DriveInfo(miles=215, hours=3, minutes=45),
    },
    {
        "city": "Philadelphia", "state": "PA",
        "arrive_date": "2026-06-17", "depart_date": "2026-06-19",
        "lat": 39.9526, "lng": -75.1652,
        "drive_from_prev": DriveInfo(miles=95, hours=1, minutes=45),
    },
    {
        "name": "Washington DC", "city": "Washington", "state": "DC",
        "arrive_date": "2026-06-19", "depart_date": "2026-06-22",
        "lat": 38.9072, "lng": -77.0369,
        "drive_from_prev": DriveInfo(miles=140, hours=2, minutes=30),
    },
    {
        "city": "Atlanta", "state": "GA",
        "arrive_date": "2026-06-22", "depart_date": "2026-06-24",
        "lat": 33.749, "lng": -84.388,
        "drive_from_prev": DriveInfo(miles=640, hours=9, minutes=30),
    },
    {
        "city": "Miami", "state": "FL",
        "arrive_date": "2026-06-24", "depart_date": "2026-06-26",
        "lat": 25.7617, "lng": -80.1918,
        "drive_from_prev": DriveInfo(miles=665, hours=10, minutes=0),
    },
]


def seed_demo_route() -> int:
    """Insert the demo route if no stops exist yet. Returns stops created."""
    conn = db()
    count = conn.execute("SELECT COUNT(*) FROM stops").fetchone()[0]
    conn.close()
    if count:
        logger.info(f"[DEMO] Route already has {count} stops, skipping seed")
        return 0

    for order, stop in enumerate(DEMO_STOPS, start=1):
        create_stop(sort_order=order, actor="demo", **stop)

    logger.info(f"[DEMO] Seeded {len(DEMO_STOPS)} demo stops")
    return len(DEMO_STOPS)
