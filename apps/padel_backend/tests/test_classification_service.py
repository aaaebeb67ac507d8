"""
Tests for the classification service - standings from match results.
"""
from padel_backend.database.models import Match
from padel_backend.services import classification_service
from padel_backend.utils.constants import WIN_POINTS, LOSS_POINTS


TEAMS = {1: "A", 2: "B", 3: "C"}


def _match(home, away, home_score=None, away_score=None, match_id=None):
    return Match(
        id=match_id,
        league_id=1,
        home_team_id=home,
        away_team_id=away,
        home_score=home_score,
        away_score=away_score,
    )


def _by_name(rows):
    return {row["team_name"]: row for row in rows}


def test_empty_results_sorted_by_name():
    """Every team appears with zeroed stats, ordered by name."""
    teams = {7: "Zeta", 3: "Alpha", 5: "Mid"}
    rows = classification_service.calculate_classification(teams, [])

    assert [row["team_name"] for row in rows] == ["Alpha", "Mid", "Zeta"]
    assert [row["position"] for row in rows] == [1, 2, 3]
    for row in rows:
        assert row["played"] == 0
        assert row["won"] == 0
        assert row["lost"] == 0
        assert row["points_for"] == 0
        assert row["points_against"] == 0
        assert row["point_difference"] == 0
        assert row["points"] == 0


def test_unplayed_matches_do_not_count():
    rows = classification_service.calculate_classification(TEAMS, [_match(1, 2), _match(2, 3)])
    assert all(row["played"] == 0 for row in rows)
    assert [row["team_name"] for row in rows] == ["A", "B", "C"]


def test_cyclic_results_tie_break():
    """A beats B 6-2, B beats C 6-3, C beats A 6-4."""
    matches = [
        _match(1, 2, 6, 2),
        _match(2, 3, 6, 3),
        _match(3, 1, 6, 4),
    ]
    rows = classification_service.calculate_classification(TEAMS, matches)
    stats = _by_name(rows)

    for row in rows:
        assert row["played"] == 2
        assert row["won"] == 1
        assert row["lost"] == 1
        assert row["points"] == WIN_POINTS + LOSS_POINTS

    assert stats["A"]["points_for"] == 10
    assert stats["A"]["points_against"] == 8
    assert stats["A"]["point_difference"] == 2
    assert stats["B"]["point_difference"] == -1
    assert stats["C"]["point_difference"] == -1
    assert stats["B"]["points_for"] == 8
    assert stats["C"]["points_for"] == 9

    # Differential first, then points for
    assert [row["team_name"] for row in rows] == ["A", "C", "B"]
    assert [row["position"] for row in rows] == [1, 2, 3]


def test_points_rank_before_differential():
    matches = [
        _match(1, 2, 6, 5),  # A narrow win
        _match(1, 3, 6, 5),  # A narrow win
        _match(2, 3, 6, 0),  # B big win
    ]
    rows = classification_service.calculate_classification(TEAMS, matches)
    assert [row["team_name"] for row in rows] == ["A", "B", "C"]
    assert rows[0]["points"] == 2 * WIN_POINTS
    assert rows[1]["point_difference"] == 5


def test_full_tie_falls_back_to_name():
    teams = {1: "Delta", 2: "Bravo"}
    rows = classification_service.calculate_classification(teams, [])
    assert [row["team_name"] for row in rows] == ["Bravo", "Delta"]


def test_half_recorded_match_is_excluded():
    """One score set and the other null counts for nothing."""
    matches = [_match(1, 2, 6, None), _match(2, 3, None, 4)]
    rows = classification_service.calculate_classification(TEAMS, matches)
    assert all(row["played"] == 0 and row["points_for"] == 0 for row in rows)


def test_tied_score_is_excluded():
    matches = [_match(1, 2, 5, 5, match_id=9), _match(2, 3, 6, 1)]
    rows = classification_service.calculate_classification(TEAMS, matches)
    stats = _by_name(rows)

    assert stats["A"]["played"] == 0
    assert stats["B"]["played"] == 1
    assert stats["B"]["points_for"] == 6
    assert stats["C"]["lost"] == 1


def test_is_complete():
    assert classification_service.is_complete(6, 4) is True
    assert classification_service.is_complete(6, None) is False
    assert classification_service.is_complete(None, None) is False
    assert classification_service.is_complete(3, 3) is False


def test_team_stats_record():
    stats = classification_service.TeamStats(1, "A")
    stats.record(6, 3)
    stats.record(2, 6)
    assert stats.played == 2
    assert stats.won == 1
    assert stats.lost == 1
    assert stats.point_difference == -1
    assert stats.points == WIN_POINTS + LOSS_POINTS
