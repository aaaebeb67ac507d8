"""
Team service layer: team creation, passcodes and membership rules.
"""

import secrets
from typing import Dict, List, Optional
from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from padel_backend.database.models import (
    League,
    LeaguePayment,
    Match,
    Team,
    TeamAvailability,
    TeamChangeNotification,
    TeamMember,
    User,
    UserRole,
)
from padel_backend.services import notification_service
from padel_backend.services.data_service import (
    get_league_or_404,
    get_team_or_404,
    validate_choice,
)
from padel_backend.utils.constants import (
    DAYS_OF_WEEK,
    MAX_PASSCODE_ATTEMPTS,
    MAX_TEAM_MEMBERS,
    PASSCODE_ALPHABET,
    PASSCODE_LENGTH,
    SKILL_LEVELS,
    TEAM_GENDERS,
)
from padel_backend.utils.datetime_utils import isoformat_or_none, parse_match_time, utcnow
from padel_backend.utils.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
import logging

logger = logging.getLogger(__name__)

GENDER_LABELS = {"male": "masculine", "female": "feminine", "mixed": "mixed"}


def generate_passcode() -> str:
    """Random passcode of PASSCODE_LENGTH characters from A-Z0-9."""
    return "".join(secrets.choice(PASSCODE_ALPHABET) for _ in range(PASSCODE_LENGTH))


def normalize_passcode(passcode: Optional[str]) -> str:
    """Passcodes are matched trimmed and upper-cased."""
    return (passcode or "").strip().upper()


async def _unique_passcode(session: AsyncSession) -> str:
    for _ in range(MAX_PASSCODE_ATTEMPTS):
        passcode = generate_passcode()
        result = await session.execute(select(Team.id).where(Team.passcode == passcode))
        if result.scalar_one_or_none() is None:
            return passcode
    raise RuntimeError("Could not generate a unique team passcode")


async def _team_members(session: AsyncSession, team_id: int) -> List[Dict]:
    result = await session.execute(
        select(User, TeamMember.joined_at)
        .join(TeamMember, TeamMember.user_id == User.id)
        .where(TeamMember.team_id == team_id)
        .order_by(TeamMember.joined_at, TeamMember.id)
    )
    return [
        {
            "user_id": user.id,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "email": user.email,
            "gender": user.gender,
            "joined_at": isoformat_or_none(joined_at),
        }
        for user, joined_at in result.all()
    ]


def team_to_dict(team: Team, members: Optional[List[Dict]] = None, include_passcode: bool = False) -> Dict:
    data = {
        "id": team.id,
        "name": team.name,
        "level": team.level,
        "gender": team.gender,
        "league_id": team.league_id,
        "created_by": team.created_by,
    }
    if include_passcode:
        data["passcode"] = team.passcode
    if members is not None:
        data["members"] = members
        data["member_count"] = len(members)
    return data


async def create_team(
    session: AsyncSession,
    name: str,
    level: str,
    gender: str,
    creator: Dict,
) -> Dict:
    """
    Create a team and, for player creators, add them as its first member.

    Args:
        session: Database session
        name: Team name (unique)
        level: Skill level '1'..'4'
        gender: 'male', 'female' or 'mixed'
        creator: Authenticated user dict

    Returns:
        Team dict including the passcode
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Team name is required")
    level = validate_choice(level, SKILL_LEVELS, "level")
    gender = validate_choice(gender, TEAM_GENDERS, "gender")

    is_admin = creator.get("role") == UserRole.ADMIN.value
    if not is_admin and gender in ("male", "female") and creator.get("gender") != gender:
        raise ForbiddenError(f"You can only create {GENDER_LABELS[gender]} teams if you are {gender}")

    existing = await session.execute(select(Team.id).where(func.lower(Team.name) == name.lower()))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError(f"A team named '{name}' already exists")

    if not is_admin:
        await _check_level_gender_conflict(session, creator["id"], level, gender)

    team = Team(
        name=name,
        level=level,
        gender=gender,
        passcode=await _unique_passcode(session),
        created_by=creator["id"],
    )
    session.add(team)
    await session.flush()
    await session.refresh(team)

    if not is_admin:
        session.add(TeamMember(team_id=team.id, user_id=creator["id"]))
        await session.flush()
        await notification_service.record_team_change(session, creator["id"], team.id, "joined")

    logger.info(f"Team {team.id} '{team.name}' (level {level}, {gender}) created by user {creator['id']}")
    return team_to_dict(team, await _team_members(session, team.id), include_passcode=True)


async def get_team(session: AsyncSession, team_id: int, viewer: Optional[Dict] = None) -> Dict:
    """Get a team with its members. The passcode is shown to members and admins."""
    team = await get_team_or_404(session, team_id)
    members = await _team_members(session, team_id)
    show_passcode = viewer is not None and (
        viewer.get("role") == UserRole.ADMIN.value
        or any(m["user_id"] == viewer["id"] for m in members)
    )
    return team_to_dict(team, members, include_passcode=show_passcode)


async def list_user_teams(session: AsyncSession, user_id: int) -> List[Dict]:
    """Teams the user is a member of."""
    result = await session.execute(
        select(Team)
        .join(TeamMember, TeamMember.team_id == Team.id)
        .where(TeamMember.user_id == user_id)
        .order_by(Team.id)
    )
    teams = result.scalars().all()
    return [
        team_to_dict(team, await _team_members(session, team.id), include_passcode=True)
        for team in teams
    ]


async def _check_level_gender_conflict(
    session: AsyncSession, user_id: int, level: str, gender: str
) -> None:
    """A player may be on only one team per level and gender category."""
    result = await session.execute(
        select(Team.name)
        .join(TeamMember, TeamMember.team_id == Team.id)
        .where(TeamMember.user_id == user_id, Team.level == level, Team.gender == gender)
    )
    conflicting = result.scalars().first()
    if conflicting:
        raise ValidationError(
            f"Player is already on a Level {level} {GENDER_LABELS[gender]} team ({conflicting})"
        )


async def validate_team_join(session: AsyncSession, team: Team, user: Dict) -> None:
    """
    Check whether a user may join a team.

    Raises:
        ValidationError: A membership rule is violated
        ConflictError: The user is already a member
    """
    if user.get("role") == UserRole.ADMIN.value:
        raise ValidationError("Admins cannot join teams")

    members = await _team_members(session, team.id)
    if any(m["user_id"] == user["id"] for m in members):
        raise ConflictError("You are already a member of this team")
    if len(members) >= MAX_TEAM_MEMBERS:
        raise ValidationError(f"Team is full (maximum {MAX_TEAM_MEMBERS} members)")

    player_gender = user.get("gender")
    if not player_gender:
        raise ValidationError("Set your gender in your profile before joining a team")

    if team.gender in ("male", "female") and player_gender != team.gender:
        raise ValidationError(f"Only {team.gender} players can join this team")

    if team.gender == "mixed" and len(members) == MAX_TEAM_MEMBERS - 1:
        # The last spot must leave the team with both genders represented
        genders = {m["gender"] for m in members} | {player_gender}
        if not {"male", "female"} <= genders:
            raise ValidationError("A full mixed team must include both male and female players")

    await _check_level_gender_conflict(session, user["id"], team.level, team.gender)


async def join_team(session: AsyncSession, passcode: str, user: Dict) -> Dict:
    """Join a team by passcode."""
    code = normalize_passcode(passcode)
    if not code:
        raise ValidationError("Passcode is required")

    result = await session.execute(select(Team).where(Team.passcode == code))
    team = result.scalar_one_or_none()
    if not team:
        raise NotFoundError("Invalid passcode")

    await validate_team_join(session, team, user)

    session.add(TeamMember(team_id=team.id, user_id=user["id"]))
    await session.flush()
    await notification_service.record_team_change(session, user["id"], team.id, "joined")

    logger.info(f"User {user['id']} joined team {team.id}")
    return team_to_dict(team, await _team_members(session, team.id), include_passcode=True)


async def remove_team_member(session: AsyncSession, team_id: int, user_id: int) -> Dict:
    """Remove a user from a team (leaving, or removal by an admin)."""
    await get_team_or_404(session, team_id)
    result = await session.execute(
        select(TeamMember).where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
    )
    member = result.scalar_one_or_none()
    if not member:
        raise NotFoundError(f"User {user_id} is not a member of team {team_id}")

    await session.delete(member)
    await session.flush()
    await notification_service.record_team_change(session, user_id, team_id, "removed")
    logger.info(f"User {user_id} removed from team {team_id}")
    return {"success": True, "team_id": team_id, "user_id": user_id}


async def regenerate_passcode(session: AsyncSession, team_id: int) -> Dict:
    """Issue a new passcode for a team, invalidating the old one."""
    team = await get_team_or_404(session, team_id)
    team.passcode = await _unique_passcode(session)
    await session.flush()
    return {"team_id": team_id, "passcode": team.passcode}


# ============================================================================
# Team edits (admin)
# ============================================================================

async def update_team(
    session: AsyncSession,
    team_id: int,
    name: Optional[str] = None,
    level: Optional[str] = None,
) -> Dict:
    """
    Rename a team or change its level.

    A team enrolled in a league keeps the league's level.

    Raises:
        ValidationError: Nothing to update, empty name, bad level or league mismatch
        ConflictError: Another team already has the name
    """
    if name is None and level is None:
        raise ValidationError("At least one field (name or level) must be provided")
    team = await get_team_or_404(session, team_id)

    if name is not None:
        name = name.strip()
        if not name:
            raise ValidationError("Team name cannot be empty")
        existing = await session.execute(
            select(Team.id).where(func.lower(Team.name) == name.lower(), Team.id != team_id)
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError(f"A team named '{name}' already exists")
        team.name = name

    if level is not None:
        level = validate_choice(level, SKILL_LEVELS, "level")
        if level != team.level and team.league_id is not None:
            league = await get_league_or_404(session, team.league_id)
            if league.level and league.level != level:
                raise ValidationError(
                    f"Team is in league '{league.name}' (level {league.level}); "
                    f"remove it from the league before changing its level"
                )
        team.level = level

    await session.flush()
    logger.info(f"Team {team_id} updated: name='{team.name}', level={team.level}")
    return team_to_dict(team, await _team_members(session, team_id), include_passcode=True)


async def delete_team(session: AsyncSession, team_id: int) -> Dict:
    """
    Delete a team with its members, availability, payments and feed entries.

    Raises:
        ConflictError: The team still has fixtures in a league calendar
    """
    team = await get_team_or_404(session, team_id)

    fixtures = await session.execute(
        select(func.count(Match.id)).where(
            (Match.home_team_id == team_id) | (Match.away_team_id == team_id)
        )
    )
    if fixtures.scalar_one() > 0:
        raise ConflictError("Team has matches in a league calendar; clear the calendar first")

    await session.execute(delete(LeaguePayment).where(LeaguePayment.team_id == team_id))
    await session.execute(
        delete(TeamChangeNotification).where(TeamChangeNotification.team_id == team_id)
    )
    await session.delete(team)
    await session.flush()

    logger.info(f"Team {team_id} deleted")
    return {"success": True, "team_id": team_id}


# ============================================================================
# Availability
# ============================================================================

def _is_admin(user: Dict) -> bool:
    return user.get("role") == UserRole.ADMIN.value


async def _require_member_or_admin(session: AsyncSession, team_id: int, user: Dict, action: str) -> None:
    if _is_admin(user):
        return
    result = await session.execute(
        select(TeamMember.id).where(TeamMember.team_id == team_id, TeamMember.user_id == user["id"])
    )
    if result.scalar_one_or_none() is None:
        raise ForbiddenError(f"Only team members can {action}")


async def _team_availability(session: AsyncSession, team_id: int) -> List[Dict]:
    result = await session.execute(
        select(TeamAvailability).where(TeamAvailability.team_id == team_id)
    )
    rows = sorted(result.scalars().all(), key=lambda row: DAYS_OF_WEEK.index(row.day_of_week))
    return [
        {
            "day_of_week": row.day_of_week,
            "is_available": row.is_available,
            "start_time": row.start_time,
            "end_time": row.end_time,
        }
        for row in rows
    ]


async def get_team_availability(session: AsyncSession, team_id: int, viewer: Dict) -> Dict:
    """Weekly availability of a team, Monday first. Members and admins only."""
    await get_team_or_404(session, team_id)
    await _require_member_or_admin(session, team_id, viewer, "view availability")
    return {"team_id": team_id, "availability": await _team_availability(session, team_id)}


async def set_team_availability(
    session: AsyncSession, team_id: int, entries: List[Dict], user: Dict
) -> Dict:
    """
    Replace a team's weekly availability.

    Args:
        session: Database session
        team_id: Team to update
        entries: Dicts with day_of_week, is_available, start_time, end_time
        user: Acting user (a team member or an admin)

    Returns:
        Dict with the stored availability

    Raises:
        ForbiddenError: The user is neither a member nor an admin
        ValidationError: Unknown or repeated day, or bad times for an available day
    """
    await get_team_or_404(session, team_id)
    await _require_member_or_admin(session, team_id, user, "update availability")

    rows = []
    seen = set()
    for entry in entries:
        day = entry.get("day_of_week")
        if day not in DAYS_OF_WEEK:
            raise ValidationError(f"Invalid day: {day}")
        if day in seen:
            raise ValidationError(f"Day '{day}' is listed more than once")
        seen.add(day)

        is_available = bool(entry.get("is_available"))
        start_time = end_time = None
        if is_available:
            if not entry.get("start_time") or not entry.get("end_time"):
                raise ValidationError(f"Start time and end time are required when available ({day})")
            start_time = parse_match_time(entry["start_time"], "start_time")
            end_time = parse_match_time(entry["end_time"], "end_time")
            if start_time >= end_time:
                raise ValidationError(f"start_time must be before end_time ({day})")

        rows.append(TeamAvailability(
            team_id=team_id,
            day_of_week=day,
            is_available=is_available,
            start_time=start_time,
            end_time=end_time,
        ))

    await session.execute(delete(TeamAvailability).where(TeamAvailability.team_id == team_id))
    session.add_all(rows)
    await session.flush()

    logger.info(f"Availability of team {team_id} set for {len(rows)} days by user {user['id']}")
    return {"team_id": team_id, "availability": await _team_availability(session, team_id)}


# ============================================================================
# Admin views
# ============================================================================

async def list_teams(
    session: AsyncSession, level: Optional[str] = None, gender: Optional[str] = None
) -> List[Dict]:
    """All teams with members and availability, optionally filtered by level and gender."""
    query = select(Team)
    if level:
        query = query.where(Team.level == validate_choice(level, SKILL_LEVELS, "level"))
    if gender:
        query = query.where(Team.gender == validate_choice(gender, TEAM_GENDERS, "gender"))
    result = await session.execute(query.order_by(Team.id))

    teams = []
    for team in result.scalars().all():
        data = team_to_dict(team, await _team_members(session, team.id), include_passcode=True)
        data["availability"] = await _team_availability(session, team.id)
        teams.append(data)
    return teams


def _league_status(league: Optional[League], today) -> int:
    """0 = running, 1 = upcoming, 2 = finished, undated or no league."""
    if league is None or league.start_date is None or league.end_date is None:
        return 2
    if league.start_date > today:
        return 1
    if league.end_date >= today:
        return 0
    return 2


async def list_player_teams(session: AsyncSession, user_id: int) -> List[Dict]:
    """
    Teams of a player with their league and the player's payment status.

    Teams in a running league come first, then upcoming leagues, then the
    rest; within a group the latest league start comes first.
    """
    user = await session.execute(select(User.id).where(User.id == user_id))
    if user.scalar_one_or_none() is None:
        raise NotFoundError(f"User {user_id} not found")

    result = await session.execute(
        select(Team, League)
        .join(TeamMember, TeamMember.team_id == Team.id)
        .outerjoin(League, League.id == Team.league_id)
        .where(TeamMember.user_id == user_id)
        .order_by(Team.id)
    )
    payments = await session.execute(select(LeaguePayment).where(LeaguePayment.user_id == user_id))
    paid = {(p.team_id, p.league_id): p for p in payments.scalars().all()}

    today = utcnow().date()
    rows = sorted(
        result.all(),
        key=lambda row: (
            _league_status(row[1], today),
            -(row[1].start_date.toordinal() if row[1] is not None and row[1].start_date else 0),
        ),
    )

    teams = []
    for team, league in rows:
        data = team_to_dict(team)
        data["league"] = None
        data["paid"] = False
        if league is not None:
            data["league"] = {
                "id": league.id,
                "name": league.name,
                "start_date": isoformat_or_none(league.start_date),
                "end_date": isoformat_or_none(league.end_date),
                "level": league.level,
                "gender": league.gender,
            }
            payment = paid.get((team.id, league.id))
            data["paid"] = bool(payment and payment.paid)
        teams.append(data)
    return teams
