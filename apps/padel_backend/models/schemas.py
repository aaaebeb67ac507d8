"""
Pydantic models for API request/response validation.
"""

from typing import Optional, List, Literal
from pydantic import BaseModel, Field, ConfigDict, model_validator


SkillLevel = Literal["1", "2", "3", "4"]
TeamGender = Literal["male", "female", "mixed"]
PlayerGender = Literal["male", "female"]
DayOfWeek = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    message: str


class ErrorResponse(BaseModel):
    """Error body returned by every failing endpoint."""

    error: str


# ============================================================================
# Leagues
# ============================================================================


class LeagueCreate(BaseModel):
    """Request to create a league."""

    name: str = Field(..., min_length=1, max_length=120)
    level: SkillLevel
    gender: TeamGender
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class LeagueDatesUpdate(BaseModel):
    """Request to change a league's date range."""

    start_date: Optional[str] = None
    end_date: Optional[str] = None


class LeagueResponse(BaseModel):
    """League data."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    level: Optional[str] = None
    gender: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    team_count: Optional[int] = None
    match_count: Optional[int] = None


class LeagueTeamAdd(BaseModel):
    """Request to enroll a team in a league."""

    team_id: int


class LeaguePaymentUpdate(BaseModel):
    """Request to mark a team member as paid or unpaid for a league."""

    team_id: int
    user_id: int
    paid: bool
    paid_amount: Optional[float] = Field(default=None, ge=0)


# ============================================================================
# Calendar
# ============================================================================


class GenerateCalendarRequest(BaseModel):
    """Request to generate a league's round-robin calendar."""

    start_date: str


class UpdateMatchDateRequest(BaseModel):
    """Request to reschedule a match. A null date leaves it unscheduled."""

    match_date: Optional[str]
    match_time: Optional[str] = None


class MatchResultRequest(BaseModel):
    """Request to record or clear a match result."""

    home_score: Optional[int] = Field(default=None, ge=0)
    away_score: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def validate_scores(self):
        if (self.home_score is None) != (self.away_score is None):
            raise ValueError("home_score and away_score must be set together")
        if self.home_score is not None and self.home_score == self.away_score:
            raise ValueError("A match cannot end in a tie")
        return self


class CalendarMatchResponse(BaseModel):
    """A fixture in a league calendar."""

    id: int
    league_id: int
    week_number: Optional[int] = None
    home_team_id: int
    home_team_name: Optional[str] = None
    away_team_id: int
    away_team_name: Optional[str] = None
    match_date: Optional[str] = None
    match_time: Optional[str] = None
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    played: bool = False


class ByeResponse(BaseModel):
    """A team resting in a given week."""

    week_number: int
    team_id: int
    team_name: Optional[str] = None


class GenerateCalendarResponse(BaseModel):
    """Result of a calendar generation."""

    league_id: int
    matches: List[CalendarMatchResponse]
    byes: List[ByeResponse]
    total_weeks: int
    total_matches: int
    start_date: str
    end_date: str


class CalendarResponse(BaseModel):
    """A league calendar."""

    league_id: int
    matches: List[CalendarMatchResponse]
    needs_assignment: List[CalendarMatchResponse]
    byes: List[ByeResponse]
    total_weeks: int
    total_matches: int


class ClassificationRow(BaseModel):
    """One row of the standings table."""

    position: int
    team_id: int
    team_name: str
    played: int
    won: int
    lost: int
    points_for: int
    points_against: int
    point_difference: int
    points: int


# ============================================================================
# Teams
# ============================================================================


class TeamCreate(BaseModel):
    """Request to create a team."""

    name: str = Field(..., min_length=1, max_length=80)
    level: SkillLevel
    gender: TeamGender


class JoinTeamRequest(BaseModel):
    """Request to join a team by passcode."""

    passcode: str = Field(..., min_length=1)


class TeamUpdate(BaseModel):
    """Admin edit of a team. At least one field must be set."""

    name: Optional[str] = Field(default=None, max_length=80)
    level: Optional[SkillLevel] = None


class AvailabilityEntry(BaseModel):
    """Availability of a team on one day of the week."""

    day_of_week: DayOfWeek
    is_available: bool = False
    start_time: Optional[str] = None
    end_time: Optional[str] = None


class TeamAvailabilityUpdate(BaseModel):
    """Full weekly availability; replaces what is stored."""

    availability: List[AvailabilityEntry]


# ============================================================================
# Users
# ============================================================================


class UserUpdate(BaseModel):
    """Profile fields a player may change."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    gender: Optional[PlayerGender] = None
    claimed_level: Optional[SkillLevel] = None


class UserResponse(BaseModel):
    """User profile."""

    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    gender: Optional[str] = None
    role: str
    claimed_level: Optional[str] = None
    level_validation_status: str
    level_validated_at: Optional[str] = None
    level_validated_by: Optional[int] = None
    level_validation_notes: Optional[str] = None


class LevelValidationRequest(BaseModel):
    """Admin decision on a claimed level."""

    status: Literal["approved", "rejected"]
    notes: Optional[str] = None
