"""
Route progress engine.

Given the ordered stops of a trip and an evaluation date, work out the trip
phase, each stop's visited/current/upcoming status, the fractional position
along the route and the miles covered so far.

The resolver is a pure function of its inputs. It never reads the clock and
never validates: the route is checked once with validate_route() when it is
loaded from configuration.
"""

import logging
from typing import List, Sequence

from roadtrip.dates import DateLike, day_difference, normalize_date, to_ordinal_day
from roadtrip.mileage import LegMileageTable
from roadtrip.models import Stop, StopStatus, TripPhase, TripState, RouteConfigError, round_half_up

logger = logging.getLogger("roadtrip.progress")


# ─────────────────────────── VALIDATION ───────────────────────────

def validate_route(stops: Sequence[Stop], mileage: LegMileageTable) -> None:
    """Reject a stop list the resolver cannot reason about.

    Collects every problem before raising RouteConfigError. A gap between a
    departure and the next arrival is fine: that's the drive.
    """
    if not stops:
        raise RouteConfigError(["route has no stops"])

    problems: List[str] = []
    ordinals = []
    for stop in stops:
        try:
            arrive = to_ordinal_day(stop.arrive_date)
            depart = to_ordinal_day(stop.depart_date)
        except ValueError as exc:
            problems.append(f"{stop.city}: {exc}")
            ordinals.append(None)
            continue
        if arrive > depart:
            problems.append(
                f"{stop.city}: arrives {stop.arrive_date} after departing {stop.depart_date}"
            )
        ordinals.append((arrive, depart))

    seen_cities = set()
    for stop in stops:
        if not isinstance(stop.city, str):
            problems.append(f"stop #{stop.sort_order}: city must be text, got {stop.city!r}")
            continue
        if not stop.city.strip():
            problems.append(f"stop #{stop.sort_order} has no city")
        elif stop.city in seen_cities:
            problems.append(f"{stop.city}: city appears more than once")
        seen_cities.add(stop.city)

    for i in range(len(stops) - 1):
        here, nxt = stops[i], stops[i + 1]
        if here.sort_order >= nxt.sort_order:
            problems.append(
                f"{nxt.city}: sort order {nxt.sort_order} does not follow {here.city} ({here.sort_order})"
            )
        if ordinals[i] and ordinals[i + 1] and ordinals[i][1] > ordinals[i + 1][0]:
            problems.append(
                f"{here.city} departs {here.depart_date} after {nxt.city} arrives {nxt.arrive_date}"
            )

    try:
        mileage.check_against(stops)
    except RouteConfigError as exc:
        problems.extend(exc.problems)

    if problems:
        raise RouteConfigError(problems)


# ─────────────────────────── RESOLVER ───────────────────────────

def resolve_trip_state(
    stops: Sequence[Stop],
    mileage: LegMileageTable,
    on_date: DateLike,
) -> TripState:
    """Compute the TripState for `on_date` along an already validated route."""
    n = len(stops)
    day = to_ordinal_day(on_date)
    trip_start = stops[0].arrive_date
    trip_end = stops[-1].depart_date
    total_days = day_difference(trip_start, trip_end)
    total_miles = mileage.total_miles

    if day < to_ordinal_day(trip_start):
        return TripState(
            phase=TripPhase.BEFORE,
            current_stop_index=-1,
            track_progress=0.0,
            day_of_trip=None,
            total_days=total_days,
            miles_covered=0,
            total_miles=total_miles,
            stop_statuses=[StopStatus.UPCOMING] * n,
        )

    if day >= to_ordinal_day(trip_end):
        return TripState(
            phase=TripPhase.AFTER,
            current_stop_index=n,
            track_progress=1.0,
            day_of_trip=None,
            total_days=total_days,
            miles_covered=total_miles,
            total_miles=total_miles,
            stop_statuses=[StopStatus.VISITED] * n,
        )

    day_of_trip = day_difference(trip_start, on_date) + 1

    for i, stop in enumerate(stops):
        arrive = to_ordinal_day(stop.arrive_date)
        depart = to_ordinal_day(stop.depart_date)

        # At the city: departure day already counts as the drive
        if arrive <= day < depart:
            statuses = [
                StopStatus.VISITED if j < i else StopStatus.CURRENT if j == i else StopStatus.UPCOMING
                for j in range(n)
            ]
            return TripState(
                phase=TripPhase.DURING,
                current_stop_index=i,
                track_progress=i / (n - 1) if n > 1 else 0.0,
                day_of_trip=day_of_trip,
                total_days=total_days,
                miles_covered=mileage.miles_at(i),
                total_miles=total_miles,
                stop_statuses=statuses,
            )

        if i < n - 1:
            next_arrive = to_ordinal_day(stops[i + 1].arrive_date)
            if depart <= day < next_arrive:
                travel_span = next_arrive - depart
                elapsed = day - depart
                frac = elapsed / travel_span if travel_span > 0 else 0.0

                leg_start = mileage.miles_at(i)
                leg_end = mileage.miles_at(i + 1)
                statuses = [
                    StopStatus.VISITED if j <= i else StopStatus.UPCOMING
                    for j in range(n)
                ]
                return TripState(
                    phase=TripPhase.DURING,
                    current_stop_index=i,  # last stop reached
                    track_progress=(i + frac) / (n - 1),
                    day_of_trip=day_of_trip,
                    total_days=total_days,
                    miles_covered=round_half_up(leg_start + (leg_end - leg_start) * frac),
                    total_miles=total_miles,
                    stop_statuses=statuses,
                )

    logger.error(
        f"No stop or leg matched {normalize_date(on_date)} on a {n}-stop route "
        f"({trip_start} to {trip_end}); the route should have been rejected at load"
    )
    return TripState(
        phase=TripPhase.DURING,
        current_stop_index=0,
        track_progress=0.0,
        day_of_trip=day_of_trip,
        total_days=total_days,
        miles_covered=0,
        total_miles=total_miles,
        stop_statuses=[StopStatus.UPCOMING] * n,
    )


def summarize(state: TripState) -> str:
    """Header label shown above the progress track."""
    if state.phase == TripPhase.BEFORE:
        return "Trip hasn't started"
    if state.phase == TripPhase.AFTER:
        return "Trip complete!"
    return f"Day {state.day_of_trip} of {state.total_days} ({state.progress_pct}%)"
