"""
Classification (standings) calculation service.
Processes league match results and computes the ranked table.
"""

import logging
from typing import Dict, Iterable, List, Mapping, Optional
from padel_backend.utils.constants import WIN_POINTS, LOSS_POINTS

logger = logging.getLogger(__name__)


# ============================================================================
# Result Helpers
# ============================================================================

def is_complete(home_score: Optional[int], away_score: Optional[int]) -> bool:
    """A result counts only when both scores are recorded and differ."""
    if home_score is None or away_score is None:
        return False
    return home_score != away_score


# ============================================================================
# TeamStats Class
# ============================================================================

class TeamStats:
    """Accumulated results for one team."""

    def __init__(self, team_id: int, team_name: str):
        self.team_id = team_id
        self.team_name = team_name
        self.played = 0
        self.won = 0
        self.lost = 0
        self.points_for = 0
        self.points_against = 0

    @property
    def point_difference(self) -> int:
        return self.points_for - self.points_against

    @property
    def points(self) -> int:
        """Standings points: WIN_POINTS per win, LOSS_POINTS per loss."""
        return self.won * WIN_POINTS + self.lost * LOSS_POINTS

    def record(self, scored: int, conceded: int) -> None:
        """Record one completed match from this team's point of view."""
        self.played += 1
        self.points_for += scored
        self.points_against += conceded
        if scored > conceded:
            self.won += 1
        else:
            self.lost += 1

    def sort_key(self):
        return (-self.points, -self.point_difference, -self.points_for, self.team_name)

    def to_dict(self, position: int) -> Dict:
        return {
            "position": position,
            "team_id": self.team_id,
            "team_name": self.team_name,
            "played": self.played,
            "won": self.won,
            "lost": self.lost,
            "points_for": self.points_for,
            "points_against": self.points_against,
            "point_difference": self.point_difference,
            "points": self.points,
        }


# ============================================================================
# StandingsTracker Class
# ============================================================================

class StandingsTracker:
    """Tracks results for all teams of a league."""

    def __init__(self, teams: Mapping[int, str]):
        # Every team starts with a zeroed row, played or not
        self.teams: Dict[int, TeamStats] = {
            team_id: TeamStats(team_id, name) for team_id, name in teams.items()
        }

    def process_match(self, match) -> bool:
        """
        Apply a single match result.

        Args:
            match: Object with home_team_id, away_team_id, home_score, away_score

        Returns:
            True if the match was counted, False if it was skipped as incomplete
        """
        home_score = match.home_score
        away_score = match.away_score

        if home_score is None or away_score is None:
            return False
        if home_score == away_score:
            logger.warning(
                f"Skipping match {getattr(match, 'id', None)}: tied score "
                f"{home_score}-{away_score} is not a valid padel result"
            )
            return False

        self.teams[match.home_team_id].record(home_score, away_score)
        self.teams[match.away_team_id].record(away_score, home_score)
        return True

    def standings(self) -> List[Dict]:
        """Return the sorted table with 1-based positions."""
        ordered = sorted(self.teams.values(), key=lambda stats: stats.sort_key())
        return [stats.to_dict(position) for position, stats in enumerate(ordered, start=1)]


def calculate_classification(teams: Mapping[int, str], matches: Iterable) -> List[Dict]:
    """
    Compute the standings table for a league.

    Sorted by points desc, then point difference desc, then points for
    desc, then team name asc.

    Args:
        teams: team id -> team name for every team, including every team a match references
        matches: Match rows (scores may be null for unplayed fixtures)

    Returns:
        List of classification rows
    """
    tracker = StandingsTracker(teams)
    counted = 0
    for match in matches:
        if tracker.process_match(match):
            counted += 1
    logger.debug(f"Classification computed from {counted} completed matches for {len(tracker.teams)} teams")
    return tracker.standings()
