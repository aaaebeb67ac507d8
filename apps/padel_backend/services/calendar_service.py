"""
League calendar operations: generation, listing, clearing, match
rescheduling, result recording and the classification table.

The round-robin and standings logic are pure (schedule_service and
classification_service); this module loads their inputs through the
session it is given and persists their outputs in the caller's
transaction.
"""

from datetime import timedelta
from typing import Dict, Iterable, List, Optional
from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from padel_backend.database.models import Match, Team
from padel_backend.services import classification_service, schedule_service
from padel_backend.services.data_service import count_league_matches, get_league_or_404
from padel_backend.utils.constants import DAYS_BETWEEN_WEEKS, DEFAULT_MATCH_TIME
from padel_backend.utils.datetime_utils import isoformat_or_none, parse_iso_date, parse_match_time
from padel_backend.utils.exceptions import ConflictError, NotFoundError, ValidationError
import logging

logger = logging.getLogger(__name__)


def match_to_dict(match: Match, team_names: Dict[int, str]) -> Dict:
    return {
        "id": match.id,
        "league_id": match.league_id,
        "week_number": match.week_number,
        "home_team_id": match.home_team_id,
        "home_team_name": team_names.get(match.home_team_id),
        "away_team_id": match.away_team_id,
        "away_team_name": team_names.get(match.away_team_id),
        "match_date": isoformat_or_none(match.match_date),
        "match_time": match.match_time,
        "home_score": match.home_score,
        "away_score": match.away_score,
        "played": classification_service.is_complete(match.home_score, match.away_score),
    }


def _byes_by_week(team_ids: Iterable[int], matches: List[Match], team_names: Dict[int, str]) -> List[Dict]:
    """Teams of the league without a fixture in each scheduled week."""
    team_ids = list(team_ids)
    playing: Dict[int, set] = {}
    for match in matches:
        if match.week_number is None:
            continue
        week = playing.setdefault(match.week_number, set())
        week.update((match.home_team_id, match.away_team_id))

    byes = []
    for week_number in sorted(playing):
        for team_id in team_ids:
            if team_id not in playing[week_number]:
                byes.append({
                    "week_number": week_number,
                    "team_id": team_id,
                    "team_name": team_names.get(team_id),
                })
    return byes


async def _league_teams(session: AsyncSession, league_id: int) -> List[Team]:
    result = await session.execute(
        select(Team).where(Team.league_id == league_id).order_by(Team.id)
    )
    return list(result.scalars().all())


async def _league_matches(session: AsyncSession, league_id: int) -> List[Match]:
    result = await session.execute(
        select(Match)
        .where(Match.league_id == league_id)
        .order_by(
            Match.week_number.is_(None),
            Match.week_number,
            Match.match_date.is_(None),
            Match.match_date,
            Match.match_time,
            Match.id,
        )
    )
    return list(result.scalars().all())


async def _team_names(session: AsyncSession, team_ids: Iterable[int]) -> Dict[int, str]:
    team_ids = set(team_ids)
    if not team_ids:
        return {}
    result = await session.execute(select(Team.id, Team.name).where(Team.id.in_(team_ids)))
    return {team_id: name for team_id, name in result.all()}


async def _get_league_match(session: AsyncSession, league_id: int, match_id: int) -> Match:
    result = await session.execute(
        select(Match).where(Match.id == match_id, Match.league_id == league_id)
    )
    match = result.scalar_one_or_none()
    if not match:
        raise NotFoundError(f"Match {match_id} not found in league {league_id}")
    return match


# ============================================================================
# Calendar generation
# ============================================================================

async def generate_calendar(session: AsyncSession, league_id: int, start_date) -> Dict:
    """
    Generate the round-robin calendar of a league.

    All matches are added in the caller's transaction and flushed together,
    so a failure leaves no partial calendar once the transaction is rolled
    back. The league's date range is set to span the calendar.

    Args:
        session: Database session
        league_id: League to schedule
        start_date: ISO date of week 1

    Returns:
        Dict with matches, byes, total_weeks, total_matches, start_date, end_date

    Raises:
        NotFoundError: Unknown league
        ValidationError: Bad start date, fewer than two teams
        ConflictError: The league already has matches
    """
    league = await get_league_or_404(session, league_id)
    start = parse_iso_date(start_date, "start_date")

    existing = await count_league_matches(session, league_id)
    if existing > 0:
        raise ConflictError(
            f"League {league_id} already has a calendar ({existing} matches); clear it before regenerating"
        )

    teams = await _league_teams(session, league_id)
    schedule = schedule_service.generate_round_robin([team.id for team in teams], start)

    matches = [
        Match(
            league_id=league_id,
            home_team_id=scheduled.home_team_id,
            away_team_id=scheduled.away_team_id,
            match_date=scheduled.match_date,
            match_time=scheduled.match_time,
            week_number=scheduled.week_number,
            home_score=None,
            away_score=None,
        )
        for scheduled in schedule.matches
    ]
    session.add_all(matches)
    try:
        await session.flush()
    except IntegrityError as e:
        logger.warning(f"Calendar insert for league {league_id} hit a uniqueness violation: {e}")
        raise ConflictError(f"League {league_id} calendar was generated concurrently") from e

    end = schedule.last_match_date + timedelta(days=DAYS_BETWEEN_WEEKS)
    league.start_date = start
    league.end_date = end
    await session.flush()

    team_names = {team.id: team.name for team in teams}
    logger.info(
        f"Generated calendar for league {league_id}: {schedule.total_matches} matches "
        f"over {schedule.total_weeks} weeks from {start.isoformat()}"
    )
    return {
        "league_id": league_id,
        "matches": [match_to_dict(match, team_names) for match in matches],
        "byes": [
            {"week_number": week, "team_id": team_id, "team_name": team_names.get(team_id)}
            for week, team_id in sorted(schedule.byes.items())
        ],
        "total_weeks": schedule.total_weeks,
        "total_matches": schedule.total_matches,
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
    }


async def get_calendar(session: AsyncSession, league_id: int) -> Dict:
    """All matches of a league ordered by week, with unscheduled matches and byes."""
    await get_league_or_404(session, league_id)
    teams = await _league_teams(session, league_id)
    matches = await _league_matches(session, league_id)

    team_names = {team.id: team.name for team in teams}
    missing = {m.home_team_id for m in matches} | {m.away_team_id for m in matches}
    team_names.update(await _team_names(session, missing - set(team_names)))

    match_dicts = [match_to_dict(match, team_names) for match in matches]
    weeks = {m.week_number for m in matches if m.week_number is not None}
    return {
        "league_id": league_id,
        "matches": match_dicts,
        "needs_assignment": [m for m in match_dicts if m["match_date"] is None],
        "byes": _byes_by_week([team.id for team in teams], matches, team_names),
        "total_weeks": max(weeks) if weeks else 0,
        "total_matches": len(match_dicts),
    }


async def clear_calendar(session: AsyncSession, league_id: int) -> Dict:
    """Delete every match of a league."""
    await get_league_or_404(session, league_id)
    result = await session.execute(delete(Match).where(Match.league_id == league_id))
    logger.info(f"Cleared calendar for league {league_id}: {result.rowcount} matches deleted")
    return {"success": True, "league_id": league_id, "deleted": result.rowcount}


# ============================================================================
# Match edits
# ============================================================================

async def update_match_date(
    session: AsyncSession,
    league_id: int,
    match_id: int,
    match_date: Optional[str],
    match_time: Optional[str] = None,
) -> Dict:
    """
    Reschedule a single match.

    Only the format of the date and time is checked. A null date marks the
    match as unscheduled. Without a time the current slot (or the default
    one) is kept.
    """
    match = await _get_league_match(session, league_id, match_id)

    # Parse everything before touching the row
    new_date = parse_iso_date(match_date, "match_date") if match_date is not None else None
    if match_time is not None:
        new_time = parse_match_time(match_time)
    else:
        new_time = match.match_time or DEFAULT_MATCH_TIME

    match.match_date = new_date
    match.match_time = new_time
    await session.flush()

    logger.info(f"Match {match_id} in league {league_id} rescheduled to {new_date} {new_time}")
    team_names = await _team_names(session, (match.home_team_id, match.away_team_id))
    return match_to_dict(match, team_names)


async def record_match_result(
    session: AsyncSession,
    league_id: int,
    match_id: int,
    home_score: Optional[int],
    away_score: Optional[int],
) -> Dict:
    """
    Record (or clear, with both scores null) the result of a match.

    Padel has no draws, so equal scores are rejected.
    """
    match = await _get_league_match(session, league_id, match_id)

    if (home_score is None) != (away_score is None):
        raise ValidationError("Both scores must be provided, or both cleared")
    if home_score is not None:
        if home_score < 0 or away_score < 0:
            raise ValidationError("Scores cannot be negative")
        if home_score == away_score:
            raise ValidationError("A match cannot end in a tie")

    match.home_score = home_score
    match.away_score = away_score
    await session.flush()

    team_names = await _team_names(session, (match.home_team_id, match.away_team_id))
    return match_to_dict(match, team_names)


# ============================================================================
# Classification
# ============================================================================

async def get_classification(session: AsyncSession, league_id: int) -> List[Dict]:
    """Compute the standings table of a league from its current results."""
    await get_league_or_404(session, league_id)
    teams = await _league_teams(session, league_id)

    result = await session.execute(
        select(Match).where(
            Match.league_id == league_id,
            Match.home_score.isnot(None),
            Match.away_score.isnot(None),
        )
    )
    matches = list(result.scalars().all())

    team_names = {team.id: team.name for team in teams}
    # Teams detached after playing keep their results in the table
    referenced = {m.home_team_id for m in matches} | {m.away_team_id for m in matches}
    team_names.update(await _team_names(session, referenced - set(team_names)))

    return classification_service.calculate_classification(team_names, matches)

