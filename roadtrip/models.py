"""
Data models and schema definitions for the road trip route tracker.

This module defines:
- Trip phase and per-stop status enums
- Stops along the route (with drive info from the previous stop)
- The computed TripState handed to renderers
- SQL table definitions for the stop configuration store and activity log
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Iterable
from enum import Enum
import json
import math


# ─────────────────────────── ENUMS ───────────────────────────

class TripPhase(str, Enum):
    """Where the trip is relative to its date range"""
    BEFORE = "before"
    DURING = "during"
    AFTER = "after"


class StopStatus(str, Enum):
    """Per-stop status as seen from the evaluation date"""
    VISITED = "visited"
    CURRENT = "current"      # Only while at the city, never in transit
    UPCOMING = "upcoming"


# ─────────────────────────── ERRORS ───────────────────────────

def round_half_up(value: float) -> int:
    """Nearest whole number, halves rounded up (builtin round() goes to even)."""
    return int(math.floor(value + 0.5))


class RouteConfigError(ValueError):
    """The configured route breaks an invariant (fatal, not retried)."""

    def __init__(self, problems: Iterable[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems) or "invalid route configuration")


# ─────────────────────────── DATA CLASSES ───────────────────────────

@dataclass
class DriveInfo:
    """Drive from the previous stop (stored as JSON on the stop row)"""
    miles: float
    hours: int = 0
    minutes: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {'miles': self.miles, 'hours': self.hours, 'minutes': self.minutes}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, raw: Optional[str]) -> Optional["DriveInfo"]:
        if not raw:
            return None
        data = json.loads(raw)
        return cls(
            miles=data.get('miles', 0),
            hours=data.get('hours', 0),
            minutes=data.get('minutes', 0),
        )


@dataclass
class Stop:
    """One city on the route. Dates are inclusive ISO calendar days."""
    city: str          # Display name, also the identity key within a route
    arrive_date: str   # YYYY-MM-DD
    depart_date: str   # YYYY-MM-DD
    sort_order: int

    # Optional fields
    id: Optional[str] = None
    name: Optional[str] = None
    state: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    drive_from_prev: Optional[DriveInfo] = None
    notes: Optional[str] = None
    checked_in_at: Optional[str] = None
    checked_in_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name or self.city,
            'city': self.city,
            'state': self.state,
            'arrive_date': self.arrive_date,
            'depart_date': self.depart_date,
            'sort_order': self.sort_order,
            'lat': self.lat,
            'lng': self.lng,
            'drive_from_prev': self.drive_from_prev.to_dict() if self.drive_from_prev else None,
            'notes': self.notes,
            'checked_in_at': self.checked_in_at,
            'checked_in_by': self.checked_in_by,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }


@dataclass
class TripState:
    """Where the travelers are along the route on a given day.

    Recomputed on every request and never stored. Renderers read it as-is.
    """
    phase: TripPhase
    current_stop_index: int      # -1 before the trip, len(stops) after it
    track_progress: float        # 0 at the first stop, 1 at the last
    day_of_trip: Optional[int]   # 1-indexed, None outside the trip
    total_days: int
    miles_covered: float
    total_miles: float
    stop_statuses: List[StopStatus] = field(default_factory=list)

    @property
    def miles_remaining(self) -> float:
        return self.total_miles - self.miles_covered

    @property
    def progress_pct(self) -> int:
        return round_half_up(self.track_progress * 100)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'phase': self.phase.value,
            'current_stop_index': self.current_stop_index,
            'track_progress': self.track_progress,
            'progress_pct': self.progress_pct,
            'day_of_trip': self.day_of_trip,
            'total_days': self.total_days,
            'miles_covered': self.miles_covered,
            'miles_remaining': self.miles_remaining,
            'total_miles': self.total_miles,
            'stop_statuses': [s.value for s in self.stop_statuses],
        }


# ─────────────────────────── TABLES ───────────────────────────

STOPS_TABLE = """
CREATE TABLE IF NOT EXISTS stops (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    city TEXT NOT NULL,
    state TEXT,
    arrive_date TEXT NOT NULL,
    depart_date TEXT NOT NULL,
    sort_order INTEGER NOT NULL,
    lat REAL,
    lng REAL,
    drive_from_prev TEXT,           -- JSON: {"miles", "hours", "minutes"}
    checked_in_at TEXT,
    checked_in_by TEXT,
    notes TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""

ACTIVITY_TABLE = """
CREATE TABLE IF NOT EXISTS activity (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    action TEXT NOT NULL,           -- created, updated, deleted, checked_in
    entity_type TEXT NOT NULL,
    entity_id TEXT,
    description TEXT NOT NULL,
    actor TEXT
);
"""

INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_stops_sort_order ON stops(sort_order);",
    "CREATE INDEX IF NOT EXISTS idx_activity_created ON activity(created_at);",
]

ALL_TABLES = [
    STOPS_TABLE,
    ACTIVITY_TABLE,
]
