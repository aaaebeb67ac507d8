"""
User service layer for player profiles and skill level validation.
"""

import os
from typing import Optional, Dict, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from padel_backend.database.models import Team, TeamMember, User, UserRole, LevelValidationStatus
from padel_backend.services.data_service import get_league_or_404
from padel_backend.utils.constants import PLAYER_GENDERS, SKILL_LEVELS, TEAM_GENDERS
from padel_backend.utils.datetime_utils import isoformat_or_none, utcnow
from padel_backend.utils.exceptions import NotFoundError, ValidationError
import logging

logger = logging.getLogger(__name__)

# Fields a player may edit on their own profile
PROFILE_FIELDS = ("first_name", "last_name", "phone", "gender", "claimed_level")


def admin_emails() -> set:
    """Emails that get the admin role when their account is first created (ADMIN_EMAILS, comma separated)."""
    return {email.strip().lower() for email in os.getenv("ADMIN_EMAILS", "").split(",") if email.strip()}


def user_to_dict(user: User) -> Dict:
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "phone": user.phone,
        "gender": user.gender,
        "role": user.role,
        "claimed_level": user.claimed_level,
        "level_validation_status": user.level_validation_status,
        "level_validated_at": isoformat_or_none(user.level_validated_at),
        "level_validated_by": user.level_validated_by,
        "level_validation_notes": user.level_validation_notes,
    }


async def _get_user_or_404(session: AsyncSession, user_id: int) -> User:
    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError(f"User {user_id} not found")
    return user


async def create_user(
    session: AsyncSession,
    email: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    gender: Optional[str] = None,
    role: str = UserRole.PLAYER.value,
) -> Dict:
    """
    Create a user record for an identity issued by the token provider.

    Args:
        session: Database session
        email: Unique email address
        first_name: Optional first name
        last_name: Optional last name
        gender: Optional 'male' or 'female'
        role: 'admin' or 'player'

    Returns:
        User dictionary
    """
    email = (email or "").strip().lower()
    if not email:
        raise ValidationError("Email is required")
    if gender is not None and gender not in PLAYER_GENDERS:
        raise ValidationError(f"Invalid gender '{gender}'")
    if role not in (UserRole.ADMIN.value, UserRole.PLAYER.value):
        raise ValidationError(f"Invalid role '{role}'")

    existing = await get_user_by_email(session, email)
    if existing:
        raise ValidationError(f"A user with email {email} already exists")

    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        gender=gender,
        role=role,
        level_validation_status=LevelValidationStatus.NONE.value,
    )
    session.add(user)
    await session.flush()
    await session.refresh(user)
    return user_to_dict(user)


async def get_user_by_id(session: AsyncSession, user_id: int) -> Optional[Dict]:
    """
    Get user by ID.

    Args:
        session: Database session
        user_id: User ID

    Returns:
        User dictionary if found, None otherwise
    """
    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    return user_to_dict(user) if user else None


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[Dict]:
    """Get user by email (case-insensitive)."""
    result = await session.execute(select(User).where(User.email == email.strip().lower()))
    user = result.scalar_one_or_none()
    return user_to_dict(user) if user else None


async def get_or_create_user(
    session: AsyncSession,
    email: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> Dict:
    """
    Resolve a token identity to a user, creating the account on first login.

    New accounts are players unless the email is listed in ADMIN_EMAILS.
    Existing accounts are returned as they are.

    Args:
        session: Database session
        email: Email claim of the verified token
        first_name: Optional given name from the token
        last_name: Optional family name from the token

    Returns:
        User dictionary
    """
    email = (email or "").strip().lower()
    if not email:
        raise ValidationError("Email is required")

    existing = await get_user_by_email(session, email)
    if existing:
        return existing

    role = UserRole.ADMIN.value if email in admin_emails() else UserRole.PLAYER.value
    user = await create_user(session, email, first_name=first_name, last_name=last_name, role=role)
    logger.info(f"Provisioned {role} account {user['id']} for {email} on first login")
    return user


async def update_profile(session: AsyncSession, user_id: int, updates: Dict) -> Dict:
    """
    Update a player's own profile.

    Claiming a new skill level sends it back to admin review.
    """
    user = await _get_user_or_404(session, user_id)
    unknown = set(updates) - set(PROFILE_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

    if "gender" in updates and updates["gender"] is not None and updates["gender"] not in PLAYER_GENDERS:
        raise ValidationError(f"Invalid gender '{updates['gender']}'")

    if "claimed_level" in updates:
        level = updates["claimed_level"]
        if level is not None and str(level) not in SKILL_LEVELS:
            raise ValidationError(f"Invalid level '{level}': must be one of {', '.join(SKILL_LEVELS)}")
        level = str(level) if level is not None else None
        if level != user.claimed_level:
            user.claimed_level = level
            user.level_validation_status = (
                LevelValidationStatus.PENDING.value if level else LevelValidationStatus.NONE.value
            )
            user.level_validated_at = None
            user.level_validated_by = None
            user.level_validation_notes = None

    for field in ("first_name", "last_name", "phone", "gender"):
        if field in updates:
            setattr(user, field, updates[field])

    await session.flush()
    await session.refresh(user)
    return user_to_dict(user)


async def list_players(
    session: AsyncSession, level_validation_status: Optional[str] = None
) -> List[Dict]:
    """List player accounts, optionally filtered by level validation status."""
    query = select(User).where(User.role == UserRole.PLAYER.value)
    if level_validation_status:
        valid = [s.value for s in LevelValidationStatus]
        if level_validation_status not in valid:
            raise ValidationError(f"Invalid level_validation_status '{level_validation_status}'")
        query = query.where(User.level_validation_status == level_validation_status)
    result = await session.execute(query.order_by(User.id))
    return [user_to_dict(user) for user in result.scalars().all()]


async def validate_player_level(
    session: AsyncSession,
    user_id: int,
    status: str,
    admin_user_id: int,
    notes: Optional[str] = None,
) -> Dict:
    """Approve or reject a player's claimed level."""
    if status not in (LevelValidationStatus.APPROVED.value, LevelValidationStatus.REJECTED.value):
        raise ValidationError("status must be 'approved' or 'rejected'")

    user = await _get_user_or_404(session, user_id)
    if not user.claimed_level:
        raise ValidationError("Player has not claimed a level")

    user.level_validation_status = status
    user.level_validated_at = utcnow()
    user.level_validated_by = admin_user_id
    user.level_validation_notes = notes
    await session.flush()
    await session.refresh(user)

    logger.info(f"Level {user.claimed_level} of user {user_id} {status} by admin {admin_user_id}")
    return user_to_dict(user)


async def set_user_role(session: AsyncSession, email: str, role: str) -> Dict:
    """Change a user's role by email."""
    if role not in (UserRole.ADMIN.value, UserRole.PLAYER.value):
        raise ValidationError(f"Invalid role '{role}'")
    result = await session.execute(select(User).where(User.email == email.strip().lower()))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError(f"User {email} not found")
    user.role = role
    await session.flush()
    await session.refresh(user)
    return user_to_dict(user)


def player_summary(user: User) -> Dict:
    return {
        "id": user.id,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "gender": user.gender,
        "claimed_level": user.claimed_level,
        "level_validation_status": user.level_validation_status,
    }


async def search_players(
    session: AsyncSession,
    current_user_id: int,
    level: Optional[str] = None,
    gender: Optional[str] = None,
    league_id: Optional[int] = None,
) -> List[Dict]:
    """
    Players free to be recruited into a team.

    With a league, players already on a team of that league are left out.
    Otherwise, with a valid level and team gender, players already on a
    team of that level and gender are left out; with neither, every player
    on any team is left out.
    """
    if league_id is not None:
        await get_league_or_404(session, league_id)
        taken = (
            select(TeamMember.user_id)
            .join(Team, Team.id == TeamMember.team_id)
            .where(Team.league_id == league_id)
        )
    elif level in SKILL_LEVELS and gender in TEAM_GENDERS:
        taken = (
            select(TeamMember.user_id)
            .join(Team, Team.id == TeamMember.team_id)
            .where(Team.level == level, Team.gender == gender)
        )
    else:
        taken = select(TeamMember.user_id)

    query = select(User).where(
        User.id != current_user_id,
        User.role == UserRole.PLAYER.value,
        User.id.not_in(taken),
    )
    if gender in PLAYER_GENDERS:
        query = query.where(User.gender == gender)
    elif gender == "mixed":
        query = query.where(User.gender.in_(PLAYER_GENDERS))

    result = await session.execute(query.order_by(User.first_name, User.last_name, User.id))
    return [player_summary(user) for user in result.scalars().all()]
