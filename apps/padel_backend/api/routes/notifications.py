"""Admin feed of team roster changes."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from padel_backend.api.auth_dependencies import require_admin
from padel_backend.api.routes import DOMAIN_ERRORS, unexpected_error
from padel_backend.database.db import get_db_session
from padel_backend.services import notification_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/admin/team-change-notifications")
async def list_team_change_notifications(
    filter: str = "unread",
    admin: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Roster changes, newest first. ?filter=unread (default), read or all."""
    try:
        return await notification_service.list_team_change_notifications(session, filter=filter)
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("listing team change notifications", e)


@router.post("/api/admin/team-change-notifications/{notification_id}/read")
async def mark_team_change_notification_read(
    notification_id: int,
    admin: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Mark a roster change as read."""
    try:
        return await notification_service.mark_as_read(session, notification_id)
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("marking notification as read", e)
