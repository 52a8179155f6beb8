"""
Static per-leg mileage for the route.

leg_miles[0] is the sentinel "distance to the first stop" and is always 0;
leg_miles[i] is the drive from stop i-1 to stop i, in whole miles.
"""

import logging
from numbers import Integral, Real
from typing import List, Sequence

from roadtrip.models import Stop, RouteConfigError

logger = logging.getLogger("roadtrip.mileage")


class LegMileageTable:
    """Per-leg distances plus the cumulative miles at each stop."""

    def __init__(self, leg_miles: Sequence[float]):
        problems = []
        if not leg_miles:
            problems.append("mileage table is empty")
        for idx, miles in enumerate(leg_miles):
            if isinstance(miles, bool) or not isinstance(miles, Real):
                problems.append(f"leg {idx} is not a number: {miles!r}")
            elif miles < 0:
                problems.append(f"leg {idx} is negative: {miles}")
            elif not isinstance(miles, Integral) and not float(miles).is_integer():
                problems.append(f"leg {idx} is not a whole number of miles: {miles}")
        if leg_miles and not problems and leg_miles[0] != 0:
            problems.append(f"leg 0 must be 0 (distance to the first stop), got {leg_miles[0]}")
        if problems:
            raise RouteConfigError(problems)

        self.leg_miles: List[int] = [int(miles) for miles in leg_miles]
        self.cumulative_miles: List[int] = self._accumulate(self.leg_miles)
        self.total_miles = self.cumulative_miles[-1]

    @staticmethod
    def _accumulate(leg_miles: List[int]) -> List[int]:
        cumulative = [leg_miles[0]]
        for miles in leg_miles[1:]:
            cumulative.append(cumulative[-1] + miles)
        return cumulative

    @classmethod
    def from_stops(cls, stops: Sequence[Stop]) -> "LegMileageTable":
        """Build the table from each stop's drive-from-previous info.

        The first stop always gets the 0 sentinel, whatever drive info it
        still carries from an earlier ordering.
        """
        leg_miles: List[float] = []
        for idx, stop in enumerate(stops):
            if idx == 0:
                leg_miles.append(0)
                continue
            if stop.drive_from_prev is None:
                logger.warning(f"Stop {stop.city} has no drive info; counting its leg as 0 miles")
                leg_miles.append(0)
            else:
                leg_miles.append(stop.drive_from_prev.miles)
        return cls(leg_miles)

    def __len__(self) -> int:
        return len(self.leg_miles)

    def __repr__(self) -> str:
        return f"LegMileageTable({self.leg_miles!r})"

    def miles_at(self, index: int) -> int:
        """Cumulative miles on arrival at stop `index`."""
        return self.cumulative_miles[index]

    def check_against(self, stops: Sequence[Stop]) -> None:
        if len(self.leg_miles) != len(stops):
            raise RouteConfigError([
                f"mileage table has {len(self.leg_miles)} legs for {len(stops)} stops"
            ])
