"""
Round-robin schedule generation.

Pure functions only: callers pass team ids and a start date and get back
the fixtures, grouped by week, without touching the database.
"""

from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple
from padel_backend.utils.constants import (
    DAYS_BETWEEN_WEEKS,
    DEFAULT_MATCH_TIME,
    MIN_TEAMS_FOR_CALENDAR,
)
from padel_backend.utils.datetime_utils import week_start
from padel_backend.utils.exceptions import ValidationError


# Placeholder slot that balances an odd number of teams
BYE = None


class ScheduledMatch:
    """A single generated fixture."""

    def __init__(
        self,
        week_number: int,
        home_team_id: int,
        away_team_id: int,
        match_date: date,
        match_time: str = DEFAULT_MATCH_TIME,
    ):
        self.week_number = week_number
        self.home_team_id = home_team_id
        self.away_team_id = away_team_id
        self.match_date = match_date
        self.match_time = match_time

    @property
    def pairing(self) -> frozenset:
        """Unordered pair of team ids."""
        return frozenset((self.home_team_id, self.away_team_id))

    def to_dict(self) -> Dict:
        return {
            "week_number": self.week_number,
            "home_team_id": self.home_team_id,
            "away_team_id": self.away_team_id,
            "match_date": self.match_date.isoformat(),
            "match_time": self.match_time,
        }

    def __repr__(self) -> str:
        return (
            f"ScheduledMatch(week={self.week_number}, "
            f"{self.home_team_id} vs {self.away_team_id}, {self.match_date})"
        )


class Schedule:
    """Result of a round-robin generation."""

    def __init__(self, matches: List[ScheduledMatch], byes: Dict[int, int], total_weeks: int):
        self.matches = matches
        self.byes = byes  # week_number -> team id resting that week
        self.total_weeks = total_weeks

    @property
    def total_matches(self) -> int:
        return len(self.matches)

    @property
    def last_match_date(self) -> Optional[date]:
        return max(m.match_date for m in self.matches) if self.matches else None

    def matches_for_week(self, week_number: int) -> List[ScheduledMatch]:
        return [m for m in self.matches if m.week_number == week_number]


def validate_team_ids(team_ids: Sequence[int]) -> List[int]:
    """
    Check the input of a generation run.

    Raises:
        ValidationError: Fewer than two teams, or a team listed twice
    """
    team_ids = list(team_ids)
    if len(team_ids) < MIN_TEAMS_FOR_CALENDAR:
        raise ValidationError(
            f"Insufficient teams: at least {MIN_TEAMS_FOR_CALENDAR} teams are required "
            f"to generate a calendar (got {len(team_ids)})"
        )

    seen = set()
    duplicates = []
    for team_id in team_ids:
        if team_id in seen:
            duplicates.append(team_id)
        seen.add(team_id)
    if duplicates:
        raise ValidationError(f"Duplicate team ids in calendar input: {sorted(set(duplicates))}")

    return team_ids


def rotate(slots: List[Optional[int]]) -> List[Optional[int]]:
    """
    Advance the circle by one round.

    The first slot stays fixed; the last slot moves to position 1 and the
    rest shift one place to the right.
    """
    if len(slots) <= 2:
        return list(slots)
    return [slots[0], slots[-1]] + slots[1:-1]


def round_pairings(slots: List[Optional[int]]) -> List[Tuple[Optional[int], Optional[int]]]:
    """Pair slot i with slot n-1-i for the first half of the circle."""
    n = len(slots)
    return [(slots[i], slots[n - 1 - i]) for i in range(n // 2)]


def generate_round_robin(
    team_ids: Sequence[int],
    start_date: date,
    match_time: str = DEFAULT_MATCH_TIME,
    days_between_weeks: int = DAYS_BETWEEN_WEEKS,
) -> Schedule:
    """
    Generate a single round-robin schedule using the circle method.

    Every unordered pair of teams meets exactly once and no team plays
    twice in the same week. With an odd number of teams a bye slot is
    added and the team drawn against it rests that week.

    Args:
        team_ids: Ordered team ids (at least two, no duplicates)
        start_date: Date of week 1
        match_time: Time slot assigned to every generated match
        days_between_weeks: Gap between consecutive weeks

    Returns:
        Schedule with N*(N-1)/2 matches over N'-1 weeks (N' = N rounded up to even)

    Raises:
        ValidationError: On fewer than two teams or duplicate ids
    """
    teams = validate_team_ids(team_ids)

    slots: List[Optional[int]] = list(teams)
    if len(slots) % 2 == 1:
        slots.append(BYE)

    total_weeks = len(slots) - 1
    matches: List[ScheduledMatch] = []
    byes: Dict[int, int] = {}

    for round_index in range(total_weeks):
        week_number = round_index + 1
        match_date = week_start(start_date, week_number, days_between_weeks)

        for home, away in round_pairings(slots):
            if home is BYE or away is BYE:
                byes[week_number] = away if home is BYE else home
                continue
            matches.append(ScheduledMatch(week_number, home, away, match_date, match_time))

        slots = rotate(slots)

    return Schedule(matches, byes, total_weeks)
