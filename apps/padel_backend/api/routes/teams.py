"""Team route handlers."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from padel_backend.api.auth_dependencies import require_admin, require_user
from padel_backend.api.routes import DOMAIN_ERRORS, limiter, unexpected_error
from padel_backend.database.db import get_db_session
from padel_backend.models.schemas import (
    JoinTeamRequest,
    TeamAvailabilityUpdate,
    TeamCreate,
    TeamUpdate,
)
from padel_backend.services import team_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/teams")
async def create_team(
    payload: TeamCreate,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Create a team. Player creators become its first member.
    """
    try:
        return await team_service.create_team(
            session, name=payload.name, level=payload.level, gender=payload.gender, creator=user
        )
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("creating team", e)


@router.get("/api/teams/mine")
async def list_my_teams(
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Teams the current user belongs to.
    """
    try:
        return await team_service.list_user_teams(session, user["id"])
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("listing teams", e)


@router.post("/api/teams/join")
@limiter.limit("20/minute")
async def join_team(
    request: Request,
    payload: JoinTeamRequest,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Join a team by passcode.
    """
    try:
        return await team_service.join_team(session, payload.passcode, user)
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("joining team", e)


@router.get("/api/teams/{team_id}")
async def get_team(
    team_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Get a team with its members.
    """
    try:
        return await team_service.get_team(session, team_id, viewer=user)
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("getting team", e)


@router.delete("/api/teams/{team_id}/members/me")
async def leave_team(
    team_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Leave a team.
    """
    try:
        return await team_service.remove_team_member(session, team_id, user["id"])
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("leaving team", e)


@router.delete("/api/teams/{team_id}/members/{user_id}")
async def remove_team_member(
    team_id: int,
    user_id: int,
    admin: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Remove a member from a team (admin only).
    """
    try:
        return await team_service.remove_team_member(session, team_id, user_id)
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("removing team member", e)


@router.post("/api/teams/{team_id}/passcode")
async def regenerate_passcode(
    team_id: int,
    admin: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Issue a new passcode for a team (admin only).
    """
    try:
        return await team_service.regenerate_passcode(session, team_id)
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("regenerating passcode", e)


@router.put("/api/teams/{team_id}")
async def update_team(
    team_id: int,
    payload: TeamUpdate,
    admin: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Rename a team or change its level (admin only).
    """
    try:
        return await team_service.update_team(session, team_id, name=payload.name, level=payload.level)
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("updating team", e)


@router.delete("/api/teams/{team_id}")
async def delete_team(
    team_id: int,
    admin: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Delete a team (admin only). Fails while the team has fixtures.
    """
    try:
        return await team_service.delete_team(session, team_id)
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("deleting team", e)


@router.get("/api/teams/{team_id}/availability")
async def get_team_availability(
    team_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Weekly availability of a team (members and admins).
    """
    try:
        return await team_service.get_team_availability(session, team_id, viewer=user)
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("getting team availability", e)


@router.put("/api/teams/{team_id}/availability")
async def set_team_availability(
    team_id: int,
    payload: TeamAvailabilityUpdate,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Replace the weekly availability of a team (members and admins).
    """
    try:
        entries = [entry.model_dump() for entry in payload.availability]
        return await team_service.set_team_availability(session, team_id, entries, user)
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("updating team availability", e)


@router.get("/api/admin/teams")
async def list_teams(
    level: Optional[str] = None,
    gender: Optional[str] = None,
    admin: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """
    All teams with members and availability, e.g. ?level=3&gender=mixed (admin only).
    """
    try:
        return await team_service.list_teams(session, level=level, gender=gender)
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("listing teams", e)
