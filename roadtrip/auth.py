"""
Database access, admin guard and activity log for the route tracker.

Provides:
- sqlite connection helper and table bootstrap
- Admin password check for configuration writes
- Activity logging (who changed or checked in at which stop)
"""

import os
import uuid
import sqlite3
from datetime import datetime
from typing import Optional, List, Dict, Any
import logging

from fastapi import Request, HTTPException

from roadtrip.models import ALL_TABLES, INDEXES

logger = logging.getLogger("roadtrip.auth")

# ─────────────────────────── DATABASE HELPERS ───────────────────────────

def get_db_path():
    """Get database path from environment."""
    return os.getenv("DB_PATH", "/data/roadtrip.db")


def db():
    """Get database connection."""
    conn = sqlite3.connect(get_db_path(), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def init_tables():
    """Create the stop and activity tables if missing."""
    db_dir = os.path.dirname(get_db_path())
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)

    conn = db()
    cur = conn.cursor()

    for table_sql in ALL_TABLES:
        cur.execute(table_sql)

    for index_sql in INDEXES:
        try:
            cur.execute(index_sql)
        except sqlite3.OperationalError as e:
            logger.warning(f"Index creation warning: {e}")

    conn.commit()
    conn.close()


def utc_now_iso() -> str:
    """UTC timestamp with Z suffix and no microseconds."""
    return datetime.utcnow().replace(microsecond=0).isoformat() + "Z"


# ─────────────────────────── ADMIN GUARD ───────────────────────────

def require_admin(request: Request):
    pw = request.headers.get("X-Admin-Password") or request.cookies.get("admin_pw") or ""
    admin_password = os.getenv("ADMIN_PASSWORD", "")
    if not admin_password:
        raise HTTPException(status_code=500, detail="ADMIN_PASSWORD is not set")
    if pw != admin_password:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return True


# ─────────────────────────── ACTIVITY LOG ───────────────────────────

def log_activity(
    action: str,
    entity_type: str,
    entity_id: Optional[str],
    description: str,
    actor: Optional[str] = None,
):
    """Record a change to trip configuration. Failures are logged, not raised."""
    conn = db()
    try:
        conn.execute("""
            INSERT INTO activity (id, created_at, action, entity_type, entity_id, description, actor)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (str(uuid.uuid4()), utc_now_iso(), action, entity_type, entity_id, description, actor))
        conn.commit()
    except sqlite3.Error as e:
        logger.error(f"Failed to write activity log: {e}")
    finally:
        conn.close()


def get_recent_activity(limit: int = 50) -> List[Dict[str, Any]]:
    conn = db()
    rows = conn.execute(
        "SELECT * FROM activity ORDER BY created_at DESC, rowid DESC LIMIT ?",
        (limit,)
    ).fetchall()
    conn.close()
    return [dict(row) for row in rows]
