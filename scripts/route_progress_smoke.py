#!/usr/bin/env python3
"""
Local smoke test for the route progress API.

Walks every day from two days before the trip to two days after it and
checks the progress invariants against a running server.

Prereqs:
- API server running (default http://127.0.0.1:3000)
- A route configured (DEMO_MODE=1 seeds one)
"""

import os
import sys
from datetime import date, timedelta

import httpx


def fail(message):
    print("FAIL:", message)
    sys.exit(1)


def check_state(day, payload, previous):
    state = payload["state"]
    statuses = state["stop_statuses"]
    n = len(payload["stops"])

    if len(statuses) != n:
        fail(f"{day}: {len(statuses)} statuses for {n} stops")
    if statuses.count("current") > 1:
        fail(f"{day}: more than one current stop: {statuses}")
    if "upcoming" in statuses and "visited" in statuses[statuses.index("upcoming"):]:
        fail(f"{day}: visited stop after an upcoming one: {statuses}")
    if not 0 <= state["track_progress"] <= 1:
        fail(f"{day}: track_progress out of range: {state['track_progress']}")
    if not 0 <= state["miles_covered"] <= state["total_miles"]:
        fail(f"{day}: miles_covered out of range: {state['miles_covered']}")

    if state["phase"] == "before":
        if state["track_progress"] != 0 or state["miles_covered"] != 0 or set(statuses) != {"upcoming"}:
            fail(f"{day}: inconsistent before state: {state}")
    if state["phase"] == "after":
        if state["track_progress"] != 1 or state["miles_covered"] != state["total_miles"] or set(statuses) != {"visited"}:
            fail(f"{day}: inconsistent after state: {state}")

    if previous:
        if state["track_progress"] < previous["track_progress"]:
            fail(f"{day}: track_progress went backwards")
        if state["miles_covered"] < previous["miles_covered"]:
            fail(f"{day}: miles_covered went backwards")


def main():
    base_url = os.getenv("BASE_URL", "http://127.0.0.1:3000").rstrip("/")

    with httpx.Client(base_url=base_url, timeout=10) as client:
        resp = client.get("/route/api/stops")
        if resp.status_code != 200:
            fail(f"stops endpoint returned {resp.status_code}")
        stops = resp.json()["stops"]
        if not stops:
            fail("no stops configured")

        start = date.fromisoformat(stops[0]["arrive_date"]) - timedelta(days=2)
        end = date.fromisoformat(stops[-1]["depart_date"]) + timedelta(days=2)

        previous = None
        day = start
        while day <= end:
            resp = client.get("/route/api/progress", params={"date": day.isoformat()})
            if resp.status_code != 200:
                fail(f"{day}: progress endpoint returned {resp.status_code}: {resp.text}")
            payload = resp.json()
            check_state(day, payload, previous)
            print(f"{day}  {payload['summary']:<28} {payload['state']['miles_covered']:>6} mi")
            previous = payload["state"]
            day += timedelta(days=1)

    print("OK: route progress invariants hold for every day")


if __name__ == "__main__":
    main()
