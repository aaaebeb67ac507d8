"""Calendar route handlers: generation, listing, rescheduling, results and standings."""

import logging
from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from padel_backend.api.auth_dependencies import require_admin, require_user
from padel_backend.api.routes import DOMAIN_ERRORS, limiter, unexpected_error
from padel_backend.database.db import get_db_session
from padel_backend.models.schemas import (
    CalendarMatchResponse,
    CalendarResponse,
    ClassificationRow,
    GenerateCalendarRequest,
    GenerateCalendarResponse,
    MatchResultRequest,
    UpdateMatchDateRequest,
)
from padel_backend.services import calendar_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "/api/leagues/{league_id}/generate-calendar",
    response_model=GenerateCalendarResponse,
)
@limiter.limit("10/minute")
async def generate_calendar(
    request: Request,
    league_id: int,
    payload: GenerateCalendarRequest,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Generate the round-robin calendar of a league (admin only).

    Body: {"start_date": "YYYY-MM-DD"}

    Fails with 409 if the league already has matches; clear the calendar first.
    """
    try:
        return await calendar_service.generate_calendar(session, league_id, payload.start_date)
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("generating calendar", e)


@router.get("/api/leagues/{league_id}/calendar", response_model=CalendarResponse)
async def get_calendar(
    league_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Get all matches of a league. Clients group them by week_number.
    """
    try:
        return await calendar_service.get_calendar(session, league_id)
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("getting calendar", e)


@router.delete("/api/leagues/{league_id}/calendar")
async def clear_calendar(
    league_id: int,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Delete every match of a league (admin only). Required before regenerating.
    """
    try:
        return await calendar_service.clear_calendar(session, league_id)
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("clearing calendar", e)


@router.put(
    "/api/leagues/{league_id}/matches/{match_id}/date",
    response_model=CalendarMatchResponse,
)
async def update_match_date(
    league_id: int,
    match_id: int,
    payload: UpdateMatchDateRequest,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Reschedule a match (admin only).

    Body: {"match_date": "YYYY-MM-DD" | null, "match_time": "HH:MM[:SS]"}
    """
    try:
        return await calendar_service.update_match_date(
            session, league_id, match_id, payload.match_date, payload.match_time
        )
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("updating match date", e)


@router.put(
    "/api/leagues/{league_id}/matches/{match_id}/result",
    response_model=CalendarMatchResponse,
)
async def record_match_result(
    league_id: int,
    match_id: int,
    payload: MatchResultRequest,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Record or clear a match result (admin only).
    """
    try:
        return await calendar_service.record_match_result(
            session, league_id, match_id, payload.home_score, payload.away_score
        )
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("recording match result", e)


@router.get(
    "/api/leagues/{league_id}/classifications",
    response_model=List[ClassificationRow],
)
async def get_classifications(
    league_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Standings table of a league, computed from the current results.
    """
    try:
        return await calendar_service.get_classification(session, league_id)
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        raise unexpected_error("computing classification", e)
