"""League route handlers: leagues, their teams and payments."""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from padel_backend.api.auth_dependencies import require_admin, require_user
from padel_backend.api.routes import DOMAIN_ERRORS, unexpected_error
from padel_backend.database.db import get_db_session
from padel_backend.models.schemas import (
    LeagueCreate,
    LeagueDatesUpdate,
    LeaguePaymentUpdate,
    LeagueResponse,
    LeagueTeamAdd,
)
from padel_backend.services import data_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/leagues", response_model=LeagueResponse)
async def create_league(
    payload: LeagueCreate,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Create a new league (admin only).
    """
    try:
        return await data_service.create_league(
            session=session,
            name=payload.name,
            level=payload.level,
            gender=payload.gender,
            creator_user_id=user["id"],
            start_date=payload.start_date,
            end_date=payload.end_date,
        )
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("creating league", e)


@router.get("/api/leagues", response_model=List[LeagueResponse])
async def list_leagues(
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    List all leagues with their team counts.
    """
    try:
        return await data_service.list_leagues(session)
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("listing leagues", e)


@router.get("/api/leagues/{league_id}", response_model=LeagueResponse)
async def get_league(
    league_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Get a league.
    """
    try:
        return await data_service.get_league(session, league_id)
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("getting league", e)


@router.put("/api/leagues/{league_id}/dates", response_model=LeagueResponse)
async def update_league_dates(
    league_id: int,
    payload: LeagueDatesUpdate,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Update a league's start and end dates (admin only).
    """
    try:
        return await data_service.update_league_dates(
            session, league_id, payload.start_date, payload.end_date
        )
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("updating league dates", e)


@router.delete("/api/leagues/{league_id}")
async def delete_league(
    league_id: int,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Delete a league, its calendar and its payment records (admin only).
    """
    try:
        return await data_service.delete_league(session, league_id)
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("deleting league", e)


@router.get("/api/leagues/{league_id}/teams")
async def list_league_teams(
    league_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    List the teams enrolled in a league.
    """
    try:
        return await data_service.list_league_teams(session, league_id)
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("listing league teams", e)


@router.post("/api/leagues/{league_id}/teams")
async def add_team_to_league(
    league_id: int,
    payload: LeagueTeamAdd,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Enroll a team in a league (admin only).

    The team's level and gender must match the league's.
    """
    try:
        return await data_service.add_team_to_league(session, league_id, payload.team_id)
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("adding team to league", e)


@router.delete("/api/leagues/{league_id}/teams/{team_id}")
async def remove_team_from_league(
    league_id: int,
    team_id: int,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Remove a team from a league (admin only).
    """
    try:
        return await data_service.remove_team_from_league(session, league_id, team_id)
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("removing team from league", e)


@router.get("/api/leagues/{league_id}/payments")
async def list_league_payments(
    league_id: int,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Payment status of every team member in the league (admin only).
    """
    try:
        return await data_service.list_league_payments(session, league_id)
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("listing league payments", e)


@router.put("/api/leagues/{league_id}/payments")
async def set_league_payment(
    league_id: int,
    payload: LeaguePaymentUpdate,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Mark a team member as paid or unpaid (admin only).
    """
    try:
        return await data_service.set_league_payment(
            session,
            league_id=league_id,
            team_id=payload.team_id,
            user_id=payload.user_id,
            paid=payload.paid,
            paid_amount=payload.paid_amount,
        )
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("updating league payment", e)
