"""
Data service layer for league database operations.

Covers leagues, the teams enrolled in them, and league payments. Every
function takes the request's session explicitly and only flushes; the
request dependency owns the commit.
"""

from datetime import date
from typing import Dict, List, Optional, Sequence
from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from padel_backend.database.models import League, LeaguePayment, Match, Team, TeamMember, User
from padel_backend.utils.constants import SKILL_LEVELS, TEAM_GENDERS
from padel_backend.utils.datetime_utils import isoformat_or_none, parse_iso_date, utcnow
from padel_backend.utils.exceptions import ConflictError, NotFoundError, ValidationError
import logging

logger = logging.getLogger(__name__)


def validate_choice(value: Optional[str], choices: Sequence[str], field: str) -> str:
    """Ensure ``value`` is one of ``choices``."""
    if value is None or str(value) not in choices:
        raise ValidationError(f"Invalid {field} '{value}': must be one of {', '.join(choices)}")
    return str(value)


def _validate_date_range(start_date: Optional[date], end_date: Optional[date]) -> None:
    if start_date and end_date and start_date >= end_date:
        raise ValidationError("start_date must be before end_date")


def league_to_dict(league: League, team_count: Optional[int] = None) -> Dict:
    data = {
        "id": league.id,
        "name": league.name,
        "start_date": isoformat_or_none(league.start_date),
        "end_date": isoformat_or_none(league.end_date),
        "level": league.level,
        "gender": league.gender,
        "created_by": league.created_by,
        "created_at": isoformat_or_none(league.created_at),
        "updated_at": isoformat_or_none(league.updated_at),
    }
    if team_count is not None:
        data["team_count"] = team_count
    return data


async def get_league_or_404(session: AsyncSession, league_id: int) -> League:
    """Load a league or raise NotFoundError."""
    result = await session.execute(select(League).where(League.id == league_id))
    league = result.scalar_one_or_none()
    if not league:
        raise NotFoundError(f"League {league_id} not found")
    return league


async def get_team_or_404(session: AsyncSession, team_id: int) -> Team:
    """Load a team or raise NotFoundError."""
    result = await session.execute(select(Team).where(Team.id == team_id))
    team = result.scalar_one_or_none()
    if not team:
        raise NotFoundError(f"Team {team_id} not found")
    return team


async def count_league_matches(session: AsyncSession, league_id: int) -> int:
    result = await session.execute(
        select(func.count(Match.id)).where(Match.league_id == league_id)
    )
    return result.scalar_one()


# ============================================================================
# Leagues
# ============================================================================

async def create_league(
    session: AsyncSession,
    name: str,
    level: str,
    gender: str,
    creator_user_id: Optional[int] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> Dict:
    """Create a new league."""
    if not name or not name.strip():
        raise ValidationError("League name is required")
    level = validate_choice(level, SKILL_LEVELS, "level")
    gender = validate_choice(gender, TEAM_GENDERS, "gender")
    start = parse_iso_date(start_date, "start_date") if start_date else None
    end = parse_iso_date(end_date, "end_date") if end_date else None
    _validate_date_range(start, end)

    league = League(
        name=name.strip(),
        level=level,
        gender=gender,
        start_date=start,
        end_date=end,
        created_by=creator_user_id,
    )
    session.add(league)
    await session.flush()
    await session.refresh(league)

    logger.info(f"League {league.id} '{league.name}' created by user {creator_user_id}")
    return league_to_dict(league, team_count=0)


async def list_leagues(session: AsyncSession) -> List[Dict]:
    """List all leagues, newest first, with their team counts."""
    team_counts = (
        select(Team.league_id, func.count(Team.id).label("team_count"))
        .where(Team.league_id.isnot(None))
        .group_by(Team.league_id)
        .subquery()
    )
    result = await session.execute(
        select(League, func.coalesce(team_counts.c.team_count, 0))
        .outerjoin(team_counts, team_counts.c.league_id == League.id)
        .order_by(League.created_at.desc(), League.id.desc())
    )
    return [league_to_dict(league, team_count=count) for league, count in result.all()]


async def get_league(session: AsyncSession, league_id: int) -> Dict:
    """Get a league with its team and match counts."""
    league = await get_league_or_404(session, league_id)
    result = await session.execute(
        select(func.count(Team.id)).where(Team.league_id == league_id)
    )
    data = league_to_dict(league, team_count=result.scalar_one())
    data["match_count"] = await count_league_matches(session, league_id)
    return data


async def update_league_dates(
    session: AsyncSession,
    league_id: int,
    start_date: Optional[str],
    end_date: Optional[str],
) -> Dict:
    """Update a league's date range. Either bound may be cleared with None."""
    league = await get_league_or_404(session, league_id)
    start = parse_iso_date(start_date, "start_date") if start_date else None
    end = parse_iso_date(end_date, "end_date") if end_date else None
    _validate_date_range(start, end)

    league.start_date = start
    league.end_date = end
    await session.flush()
    await session.refresh(league)
    return league_to_dict(league)


async def delete_league(session: AsyncSession, league_id: int) -> Dict:
    """
    Delete a league together with its calendar and payment records.

    Teams are kept and simply detached from the league.
    """
    league = await get_league_or_404(session, league_id)

    matches = await session.execute(delete(Match).where(Match.league_id == league_id))
    await session.execute(delete(LeaguePayment).where(LeaguePayment.league_id == league_id))
    teams = (await session.execute(select(Team).where(Team.league_id == league_id))).scalars().all()
    for team in teams:
        team.league_id = None
    await session.delete(league)
    await session.flush()

    logger.info(
        f"League {league_id} deleted ({matches.rowcount} matches removed, {len(teams)} teams detached)"
    )
    return {"success": True, "league_id": league_id}


# ============================================================================
# League teams
# ============================================================================

async def list_league_teams(session: AsyncSession, league_id: int) -> List[Dict]:
    """List the teams of a league with their member counts."""
    await get_league_or_404(session, league_id)
    result = await session.execute(
        select(Team, func.count(TeamMember.id))
        .outerjoin(TeamMember, TeamMember.team_id == Team.id)
        .where(Team.league_id == league_id)
        .group_by(Team.id)
        .order_by(Team.id)
    )
    return [
        {
            "id": team.id,
            "name": team.name,
            "level": team.level,
            "gender": team.gender,
            "league_id": team.league_id,
            "member_count": member_count,
        }
        for team, member_count in result.all()
    ]


async def add_team_to_league(session: AsyncSession, league_id: int, team_id: int) -> Dict:
    """
    Enroll a team in a league.

    The team's level and gender must match the league's. A team plays in
    at most one league, and no team can be added once a calendar exists.
    """
    league = await get_league_or_404(session, league_id)
    team = await get_team_or_404(session, team_id)

    if team.league_id == league_id:
        raise ConflictError(f"Team '{team.name}' is already in this league")
    if team.league_id is not None:
        raise ConflictError(f"Team '{team.name}' already belongs to league {team.league_id}")
    if league.level and team.level != league.level:
        raise ValidationError(
            f"Team level {team.level} does not match league level {league.level}"
        )
    if league.gender and team.gender != league.gender:
        raise ValidationError(
            f"Team gender '{team.gender}' does not match league gender '{league.gender}'"
        )
    if await count_league_matches(session, league_id) > 0:
        raise ConflictError("League calendar already generated; clear it before adding teams")

    team.league_id = league_id
    await session.flush()
    logger.info(f"Team {team_id} added to league {league_id}")
    return {"league_id": league_id, "team_id": team_id, "team_name": team.name}


async def remove_team_from_league(session: AsyncSession, league_id: int, team_id: int) -> Dict:
    """Detach a team from a league. Fails while the team still has fixtures there."""
    await get_league_or_404(session, league_id)
    team = await get_team_or_404(session, team_id)
    if team.league_id != league_id:
        raise NotFoundError(f"Team {team_id} is not in league {league_id}")

    result = await session.execute(
        select(func.count(Match.id)).where(
            Match.league_id == league_id,
            (Match.home_team_id == team_id) | (Match.away_team_id == team_id),
        )
    )
    if result.scalar_one() > 0:
        raise ConflictError("Team has matches in the league calendar; clear the calendar first")

    team.league_id = None
    await session.flush()
    logger.info(f"Team {team_id} removed from league {league_id}")
    return {"success": True, "league_id": league_id, "team_id": team_id}


# ============================================================================
# League payments
# ============================================================================

async def list_league_payments(session: AsyncSession, league_id: int) -> List[Dict]:
    """Payment status of every member of every team in the league."""
    await get_league_or_404(session, league_id)

    members = await session.execute(
        select(Team.id, Team.name, User.id, User.first_name, User.last_name, User.email)
        .join(TeamMember, TeamMember.team_id == Team.id)
        .join(User, User.id == TeamMember.user_id)
        .where(Team.league_id == league_id)
        .order_by(Team.name, User.id)
    )
    payments = await session.execute(
        select(LeaguePayment).where(LeaguePayment.league_id == league_id)
    )
    by_key = {(p.team_id, p.user_id): p for p in payments.scalars().all()}

    rows = []
    for team_id, team_name, user_id, first_name, last_name, email in members.all():
        payment = by_key.get((team_id, user_id))
        rows.append({
            "team_id": team_id,
            "team_name": team_name,
            "user_id": user_id,
            "player_name": " ".join(p for p in (first_name, last_name) if p) or email,
            "paid": bool(payment and payment.paid),
            "paid_at": isoformat_or_none(payment.paid_at) if payment else None,
            "paid_amount": payment.paid_amount if payment else None,
        })
    return rows


async def set_league_payment(
    session: AsyncSession,
    league_id: int,
    team_id: int,
    user_id: int,
    paid: bool,
    paid_amount: Optional[float] = None,
) -> Dict:
    """Mark a team member as paid or unpaid for a league."""
    await get_league_or_404(session, league_id)
    team = await get_team_or_404(session, team_id)
    if team.league_id != league_id:
        raise ValidationError(f"Team {team_id} is not in league {league_id}")

    member = await session.execute(
        select(TeamMember).where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
    )
    if member.scalar_one_or_none() is None:
        raise ValidationError(f"User {user_id} is not a member of team {team_id}")
    if paid_amount is not None and paid_amount < 0:
        raise ValidationError("paid_amount cannot be negative")

    result = await session.execute(
        select(LeaguePayment).where(
            LeaguePayment.league_id == league_id,
            LeaguePayment.team_id == team_id,
            LeaguePayment.user_id == user_id,
        )
    )
    payment = result.scalar_one_or_none()
    if payment is None:
        payment = LeaguePayment(league_id=league_id, team_id=team_id, user_id=user_id)
        session.add(payment)

    payment.paid = paid
    payment.paid_at = utcnow() if paid else None
    payment.paid_amount = paid_amount if paid else None
    await session.flush()

    return {
        "league_id": league_id,
        "team_id": team_id,
        "user_id": user_id,
        "paid": payment.paid,
        "paid_at": isoformat_or_none(payment.paid_at),
        "paid_amount": payment.paid_amount,
    }
