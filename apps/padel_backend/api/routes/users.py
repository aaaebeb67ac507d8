"""Player profile and level validation route handlers."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from padel_backend.api.auth_dependencies import require_admin, require_user
from padel_backend.api.routes import DOMAIN_ERRORS, unexpected_error
from padel_backend.database.db import get_db_session
from padel_backend.models.schemas import LevelValidationRequest, UserResponse, UserUpdate
from padel_backend.services import team_service, user_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/me", response_model=UserResponse)
async def get_me(user: dict = Depends(require_user)):
    """
    Get the current user's profile.
    """
    return user


@router.put("/api/me", response_model=UserResponse)
async def update_me(
    payload: UserUpdate,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Update the current user's profile. A new claimed level goes to admin review.
    """
    try:
        return await user_service.update_profile(
            session, user["id"], payload.model_dump(exclude_unset=True)
        )
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("updating profile", e)


@router.get("/api/admin/players", response_model=List[UserResponse])
async def list_players(
    level_validation_status: Optional[str] = None,
    admin: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """
    List players, e.g. ?level_validation_status=pending (admin only).
    """
    try:
        return await user_service.list_players(session, level_validation_status)
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("listing players", e)


@router.put("/api/admin/players/{user_id}/level-validation", response_model=UserResponse)
async def validate_player_level(
    user_id: int,
    payload: LevelValidationRequest,
    admin: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Approve or reject a player's claimed level (admin only).
    """
    try:
        return await user_service.validate_player_level(
            session, user_id, payload.status, admin["id"], payload.notes
        )
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("validating player level", e)


@router.get("/api/players/search")
async def search_players(
    level: Optional[str] = None,
    gender: Optional[str] = None,
    league_id: Optional[int] = None,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Players free to join a team, e.g. ?level=3&gender=mixed or ?league_id=2.
    """
    try:
        return await user_service.search_players(
            session, user["id"], level=level, gender=gender, league_id=league_id
        )
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("searching players", e)


@router.get("/api/admin/players/{user_id}/teams")
async def list_player_teams(
    user_id: int,
    admin: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Teams of a player with league and payment status (admin only).
    """
    try:
        return await team_service.list_player_teams(session, user_id)
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("listing player teams", e)
