"""
Team change notification service.

Every time a player joins or leaves a team an entry is added to the admin
feed, so admins can follow roster changes (for example to chase league
payments) without diffing team lists.
"""

from typing import Dict, List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from padel_backend.database.models import Team, TeamChangeNotification, User
from padel_backend.utils.constants import NOTIFICATION_FILTERS, TEAM_CHANGE_ACTIONS
from padel_backend.utils.datetime_utils import isoformat_or_none, utcnow
from padel_backend.utils.exceptions import NotFoundError, ValidationError
import logging

logger = logging.getLogger(__name__)


async def record_team_change(session: AsyncSession, user_id: int, team_id: int, action: str) -> None:
    """
    Add a roster change to the admin feed.

    Args:
        session: Database session
        user_id: The player who joined or was removed (not the acting user)
        team_id: The team whose roster changed
        action: 'joined' or 'removed'
    """
    if action not in TEAM_CHANGE_ACTIONS:
        raise ValidationError(f"Invalid team change action '{action}'")

    session.add(TeamChangeNotification(user_id=user_id, team_id=team_id, action=action, read=False))
    await session.flush()
    logger.debug(f"Team change recorded: user {user_id} {action} team {team_id}")


async def list_team_change_notifications(session: AsyncSession, filter: str = "unread") -> List[Dict]:
    """
    List the admin feed, newest first.

    Args:
        session: Database session
        filter: 'unread' (default), 'read' or 'all'

    Returns:
        List of notification dicts with player and team names
    """
    if filter not in NOTIFICATION_FILTERS:
        raise ValidationError(
            f"Invalid filter '{filter}': must be one of {', '.join(NOTIFICATION_FILTERS)}"
        )

    query = (
        select(TeamChangeNotification, User.first_name, User.last_name, User.email, Team.name)
        .join(User, User.id == TeamChangeNotification.user_id)
        .join(Team, Team.id == TeamChangeNotification.team_id)
    )
    if filter == "unread":
        query = query.where(TeamChangeNotification.read.is_(False))
    elif filter == "read":
        query = query.where(TeamChangeNotification.read.is_(True))

    result = await session.execute(
        query.order_by(TeamChangeNotification.created_at.desc(), TeamChangeNotification.id.desc())
    )
    return [
        {
            "id": notification.id,
            "user_id": notification.user_id,
            "player_name": " ".join(p for p in (first_name, last_name) if p) or email,
            "team_id": notification.team_id,
            "team_name": team_name,
            "action": notification.action,
            "date": isoformat_or_none(notification.created_at),
            "read": notification.read,
            "read_at": isoformat_or_none(notification.read_at),
        }
        for notification, first_name, last_name, email, team_name in result.all()
    ]


async def mark_as_read(session: AsyncSession, notification_id: int) -> Dict:
    """
    Mark a feed entry as read.

    Raises:
        NotFoundError: Unknown notification
    """
    result = await session.execute(
        select(TeamChangeNotification).where(TeamChangeNotification.id == notification_id)
    )
    notification = result.scalar_one_or_none()
    if not notification:
        raise NotFoundError(f"Notification {notification_id} not found")

    if not notification.read:
        notification.read = True
        notification.read_at = utcnow()
        await session.flush()

    return {
        "id": notification.id,
        "read": notification.read,
        "read_at": isoformat_or_none(notification.read_at),
    }
