"""
Route configuration and progress API.

Provides:
- Stop storage (sqlite) with check-ins
- Route loading with configuration validation
- JSON endpoints for route progress, stops, stats and recent activity

Stop writes are validated against the whole route before they are committed,
so the progress endpoint only ever sees a broken route if the database was
edited by hand.
"""

import json
import uuid
import logging
from dataclasses import replace
from numbers import Real
from typing import Optional, List, Dict, Any, Tuple

from fastapi import APIRouter, Request, HTTPException, Depends
from fastapi.responses import JSONResponse

from roadtrip.auth import db, require_admin, log_activity, get_recent_activity, utc_now_iso
from roadtrip.dates import normalize_date, day_difference, today
from roadtrip.mileage import LegMileageTable
from roadtrip.models import Stop, DriveInfo, RouteConfigError, round_half_up
from roadtrip.progress import validate_route, resolve_trip_state, summarize

logger = logging.getLogger("roadtrip.route")

# ─────────────────────────── SETUP ───────────────────────────

router = APIRouter(prefix="/route", tags=["route"])

STOP_FIELDS = {
    "name", "city", "state", "arrive_date", "depart_date", "sort_order",
    "lat", "lng", "drive_from_prev", "notes", "checked_in_at", "checked_in_by",
}


def _row_to_stop(row) -> Stop:
    return Stop(
        id=row["id"],
        name=row["name"],
        city=row["city"],
        state=row["state"],
        arrive_date=row["arrive_date"],
        depart_date=row["depart_date"],
        sort_order=row["sort_order"],
        lat=row["lat"],
        lng=row["lng"],
        drive_from_prev=DriveInfo.from_json(row["drive_from_prev"]),
        notes=row["notes"],
        checked_in_at=row["checked_in_at"],
        checked_in_by=row["checked_in_by"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _coerce_drive(value) -> Optional[DriveInfo]:
    if value is None or isinstance(value, DriveInfo):
        return value
    if isinstance(value, dict):
        return DriveInfo(
            miles=value.get("miles", 0),
            hours=value.get("hours", 0),
            minutes=value.get("minutes", 0),
        )
    raise RouteConfigError([f"drive_from_prev must be an object, got {value!r}"])


def _coerce_sort_order(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise RouteConfigError([f"sort_order must be an integer, got {value!r}"])
    return value


def _canonical_or_raw(value):
    """Normalize a date if possible; validation reports whatever is left."""
    try:
        return normalize_date(value)
    except ValueError:
        return value


# ─────────────────────────── ROUTE LOADING ───────────────────────────

def prepare_route(stops: List[Stop]) -> LegMileageTable:
    """Build the mileage table for `stops` and validate the pair."""
    mileage = LegMileageTable.from_stops(stops)
    validate_route(stops, mileage)
    return mileage


def load_route() -> Tuple[List[Stop], Optional[LegMileageTable]]:
    """Load the configured route. Returns ([], None) when nothing is set up.

    Raises RouteConfigError if the stored stops are inconsistent.
    """
    stops = get_route_stops()
    if not stops:
        return stops, None
    return stops, prepare_route(stops)


# ─────────────────────────── STOP CRUD ───────────────────────────

def get_route_stops() -> List[Stop]:
    """All stops in route order."""
    conn = db()
    rows = conn.execute("SELECT * FROM stops ORDER BY sort_order ASC").fetchall()
    conn.close()
    return [_row_to_stop(row) for row in rows]


def get_stop_by_id(stop_id: str) -> Optional[Stop]:
    conn = db()
    row = conn.execute("SELECT * FROM stops WHERE id = ?", (stop_id,)).fetchone()
    conn.close()

    if not row:
        return None
    return _row_to_stop(row)


def create_stop(
    city: str,
    arrive_date: str,
    depart_date: str,
    sort_order: int = None,
    name: str = None,
    state: str = None,
    lat: float = None,
    lng: float = None,
    drive_from_prev: Optional[DriveInfo] = None,
    notes: str = None,
    actor: str = None,
) -> Stop:
    """Add a stop to the route. Raises RouteConfigError if the route would break."""
    existing = get_route_stops()
    if sort_order is None:
        sort_order = max((s.sort_order for s in existing), default=0) + 1
    sort_order = _coerce_sort_order(sort_order)

    candidate = Stop(
        city=city,
        arrive_date=_canonical_or_raw(arrive_date),
        depart_date=_canonical_or_raw(depart_date),
        sort_order=sort_order,
        name=name or city,
        state=state,
        lat=lat,
        lng=lng,
        drive_from_prev=_coerce_drive(drive_from_prev),
        notes=notes,
    )
    prepare_route(sorted(existing + [candidate], key=lambda s: s.sort_order))

    conn = db()
    now = utc_now_iso()
    stop_id = str(uuid.uuid4())
    conn.execute("""
        INSERT INTO stops (id, name, city, state, arrive_date, depart_date, sort_order,
                           lat, lng, drive_from_prev, notes, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    """, (stop_id, candidate.name, candidate.city, candidate.state, candidate.arrive_date,
          candidate.depart_date, candidate.sort_order, candidate.lat, candidate.lng,
          candidate.drive_from_prev.to_json() if candidate.drive_from_prev else None,
          candidate.notes, now, now))
    conn.commit()
    conn.close()

    logger.info(f"Stop created: {city} ({stop_id}) {candidate.arrive_date} to {candidate.depart_date}")
    log_activity("created", "stop", stop_id, f"{actor or 'Admin'} added stop: {city}", actor)
    return get_stop_by_id(stop_id)


def update_stop(stop_id: str, actor: str = None, **kwargs) -> Optional[Stop]:
    """Update allow-listed stop fields.

    Returns None for an unknown stop. Raises RouteConfigError when the change
    would leave the route invalid; nothing is written in that case.
    """
    existing = get_route_stops()
    current = next((s for s in existing if s.id == stop_id), None)
    if current is None:
        return None

    updates = {k: v for k, v in kwargs.items() if k in STOP_FIELDS}
    if not updates:
        return current

    if "arrive_date" in updates:
        updates["arrive_date"] = _canonical_or_raw(updates["arrive_date"])
    if "depart_date" in updates:
        updates["depart_date"] = _canonical_or_raw(updates["depart_date"])
    if "drive_from_prev" in updates:
        updates["drive_from_prev"] = _coerce_drive(updates["drive_from_prev"])
    if "sort_order" in updates:
        updates["sort_order"] = _coerce_sort_order(updates["sort_order"])

    candidate = replace(current, **updates)
    route = [candidate if s.id == stop_id else s for s in existing]
    prepare_route(sorted(route, key=lambda s: s.sort_order))

    columns = dict(updates)
    if "drive_from_prev" in columns:
        drive = columns["drive_from_prev"]
        columns["drive_from_prev"] = drive.to_json() if drive else None
    columns["updated_at"] = utc_now_iso()

    set_clause = ", ".join(f"{k} = ?" for k in columns.keys())
    values = list(columns.values()) + [stop_id]

    conn = db()
    conn.execute(f"UPDATE stops SET {set_clause} WHERE id = ?", values)
    conn.commit()
    conn.close()

    if updates.get("checked_in_at"):
        who = updates.get("checked_in_by") or actor or "Unknown"
        log_activity("checked_in", "stop", stop_id, f"{who} checked in at {current.city}", who)
    else:
        log_activity("updated", "stop", stop_id, f"{actor or 'Admin'} updated stop: {current.city}", actor)

    return get_stop_by_id(stop_id)


def check_in_stop(stop_id: str, traveler: str) -> Optional[Stop]:
    """Record that `traveler` has arrived at the stop."""
    return update_stop(stop_id, checked_in_at=utc_now_iso(), checked_in_by=traveler)


def delete_stop(stop_id: str, actor: str = None) -> bool:
    """Remove a stop. Dropping a stop never creates an overlap, so no validation."""
    stop = get_stop_by_id(stop_id)
    if not stop:
        return False

    conn = db()
    conn.execute("DELETE FROM stops WHERE id = ?", (stop_id,))
    conn.commit()
    conn.close()

    logger.info(f"Stop deleted: {stop.city} ({stop_id})")
    log_activity("deleted", "stop", stop_id, f"{actor or 'Admin'} removed stop: {stop.city}", actor)
    return True


def get_trip_stats(stops: List[Stop]) -> Dict[str, Any]:
    """Headline numbers for the trip: miles, states, days.

    Miles are the sum of every stop's drive info, the first stop included
    (a drive to the trip start counts toward the odometer here, never toward
    route progress).
    """
    total_miles = 0
    for stop in stops:
        miles = stop.drive_from_prev.miles if stop.drive_from_prev else None
        if isinstance(miles, Real) and not isinstance(miles, bool):
            total_miles += miles

    trip_days = 0
    if stops:
        first = min(stops, key=lambda s: s.arrive_date)
        last = max(stops, key=lambda s: s.depart_date)
        trip_days = max(1, day_difference(first.arrive_date, last.depart_date) + 1)

    return {
        "total_miles": round_half_up(total_miles),
        "states_count": len({s.state for s in stops if s.state}),
        "trip_days": trip_days,
        "stop_count": len(stops),
    }


# ─────────────────────────── API ENDPOINTS ───────────────────────────

async def _read_json(request: Request) -> Dict[str, Any]:
    try:
        data = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise HTTPException(status_code=400, detail="Request body must be JSON")
    if not isinstance(data, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")
    return data


@router.get("/api/progress")
async def api_route_progress(date: Optional[str] = None):
    """API: Where the trip stands on `date` (defaults to today)."""
    if date:
        try:
            on_date = normalize_date(date)
        except ValueError as exc:
            return JSONResponse({"error": str(exc)}, status_code=400)
    else:
        on_date = today()

    try:
        stops, mileage = load_route()
    except RouteConfigError as exc:
        logger.error(f"Stored route is invalid: {exc}")
        return JSONResponse(
            {"error": "Route configuration is invalid", "problems": exc.problems},
            status_code=409,
        )

    if not stops:
        return JSONResponse({"error": "No stops configured"}, status_code=404)

    state = resolve_trip_state(stops, mileage, on_date)
    return JSONResponse({
        "date": on_date,
        "state": state.to_dict(),
        "summary": summarize(state),
        "stops": [
            {**stop.to_dict(), "status": status.value}
            for stop, status in zip(stops, state.stop_statuses)
        ],
    })


@router.get("/api/stops")
async def api_list_stops():
    """API: All stops in route order."""
    return JSONResponse({"stops": [s.to_dict() for s in get_route_stops()]})


@router.post("/api/stops")
async def api_create_stop(request: Request, _=Depends(require_admin)):
    """API: Add a stop (admin)."""
    data = await _read_json(request)
    missing = [k for k in ("city", "arrive_date", "depart_date") if not data.get(k)]
    if missing:
        return JSONResponse({"error": f"Missing fields: {', '.join(missing)}"}, status_code=400)

    try:
        stop = create_stop(
            city=data["city"],
            arrive_date=data["arrive_date"],
            depart_date=data["depart_date"],
            sort_order=data.get("sort_order"),
            name=data.get("name"),
            state=data.get("state"),
            lat=data.get("lat"),
            lng=data.get("lng"),
            drive_from_prev=data.get("drive_from_prev"),
            notes=data.get("notes"),
            actor=data.get("actor"),
        )
    except RouteConfigError as exc:
        logger.warning(f"Rejected new stop {data.get('city')}: {exc}")
        return JSONResponse({"error": "Invalid route", "problems": exc.problems}, status_code=400)

    return JSONResponse(stop.to_dict(), status_code=201)


@router.patch("/api/stops/{stop_id}")
async def api_update_stop(request: Request, stop_id: str, _=Depends(require_admin)):
    """API: Update a stop (admin)."""
    data = await _read_json(request)
    fields = {k: v for k, v in data.items() if k in STOP_FIELDS}

    try:
        stop = update_stop(stop_id, actor=data.get("actor"), **fields)
    except RouteConfigError as exc:
        logger.warning(f"Rejected update to stop {stop_id}: {exc}")
        return JSONResponse({"error": "Invalid route", "problems": exc.problems}, status_code=400)

    if not stop:
        raise HTTPException(status_code=404, detail="Stop not found")
    return JSONResponse(stop.to_dict())


@router.post("/api/stops/{stop_id}/check-in")
async def api_check_in(request: Request, stop_id: str, _=Depends(require_admin)):
    """API: Mark the travelers as arrived at a stop (admin)."""
    data = await _read_json(request)
    traveler = data.get("checked_in_by")
    if not isinstance(traveler, str) or not traveler.strip():
        return JSONResponse({"error": "checked_in_by is required"}, status_code=400)

    try:
        stop = check_in_stop(stop_id, traveler.strip())
    except RouteConfigError as exc:
        logger.error(f"Stored route is invalid: {exc}")
        return JSONResponse(
            {"error": "Route configuration is invalid", "problems": exc.problems},
            status_code=409,
        )
    if not stop:
        raise HTTPException(status_code=404, detail="Stop not found")
    return JSONResponse(stop.to_dict())


@router.delete("/api/stops/{stop_id}")
async def api_delete_stop(stop_id: str, _=Depends(require_admin)):
    """API: Remove a stop (admin)."""
    if not delete_stop(stop_id):
        raise HTTPException(status_code=404, detail="Stop not found")
    return JSONResponse({"success": True})


@router.get("/api/stats")
async def api_trip_stats():
    """API: Trip totals (miles, states, days)."""
    try:
        stops, _ = load_route()
        stats = get_trip_stats(stops)
    except RouteConfigError as exc:
        logger.error(f"Stored route is invalid: {exc}")
        return JSONResponse(
            {"error": "Route configuration is invalid", "problems": exc.problems},
            status_code=409,
        )
    return JSONResponse(stats)


@router.get("/api/activity")
async def api_recent_activity(limit: int = 50):
    """API: Most recent configuration changes and check-ins."""
    limit = max(1, min(limit, 200))
    return JSONResponse({"activity": get_recent_activity(limit)})
