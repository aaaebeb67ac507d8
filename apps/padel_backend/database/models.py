"""
SQLAlchemy ORM models for the padel league system.
"""

import enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    Float,
    Date,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from padel_backend.database.db import Base


class UserRole(str, enum.Enum):
    """User role enum."""

    ADMIN = "admin"
    PLAYER = "player"


class LevelValidationStatus(str, enum.Enum):
    """Review state of a player's claimed skill level."""

    NONE = "none"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class User(Base):
    """User accounts. Identity is established by the bearer token issuer."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String, nullable=False, unique=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    gender = Column(String, nullable=True)  # 'male', 'female'
    role = Column(String, default=UserRole.PLAYER.value, nullable=False)
    claimed_level = Column(String, nullable=True)  # '1'..'4'
    level_validation_status = Column(
        String, default=LevelValidationStatus.NONE.value, nullable=False
    )
    level_validated_at = Column(DateTime(timezone=True), nullable=True)
    level_validated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    level_validation_notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("role IN ('admin', 'player')", name="ck_users_role"),
        Index("idx_users_level_validation_status", "level_validation_status"),
    )


class League(Base):
    """A competition with a date range, holding teams and their fixtures."""

    __tablename__ = "leagues"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    level = Column(String, nullable=True)  # '1'..'4'
    gender = Column(String, nullable=True)  # 'male', 'female', 'mixed'
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    teams = relationship("Team", back_populates="league")
    matches = relationship("Match", back_populates="league", cascade="all, delete-orphan")


class Team(Base):
    """A padel team. Players join it with its passcode."""

    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, unique=True)
    level = Column(String, nullable=False)  # '1'..'4'
    gender = Column(String, nullable=False)  # 'male', 'female', 'mixed'
    passcode = Column(String(6), nullable=False, unique=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    league = relationship("League", back_populates="teams")
    members = relationship("TeamMember", back_populates="team", cascade="all, delete-orphan")
    availability = relationship(
        "TeamAvailability", back_populates="team", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_teams_league", "league_id"),
        Index("idx_teams_level_gender", "level", "gender"),
    )


class TeamMember(Base):
    """Membership of a user in a team."""

    __tablename__ = "team_members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    joined_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    team = relationship("Team", back_populates="members")

    __table_args__ = (
        UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),
        Index("idx_team_members_user", "user_id"),
    )


class TeamAvailability(Base):
    """Weekly availability of a team, one row per day of the week."""

    __tablename__ = "team_availability"

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    day_of_week = Column(String, nullable=False)  # 'monday'..'sunday'
    is_available = Column(Boolean, default=False, nullable=False)
    start_time = Column(String, nullable=True)  # 'HH:MM:SS'
    end_time = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    team = relationship("Team", back_populates="availability")

    __table_args__ = (
        UniqueConstraint("team_id", "day_of_week", name="uq_team_availability_team_day"),
    )


class TeamChangeNotification(Base):
    """Admin feed entry: a player joined or left a team."""

    __tablename__ = "team_change_notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    action = Column(String, nullable=False)  # 'joined', 'removed'
    read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("action IN ('joined', 'removed')", name="ck_team_change_notifications_action"),
        Index("idx_team_change_notifications_read", "read"),
        Index("idx_team_change_notifications_created_at", "created_at"),
    )


class Match(Base):
    """A league fixture between two teams. Dates may be null until assigned."""

    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False)
    home_team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    away_team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    match_date = Column(Date, nullable=True)
    match_time = Column(String, nullable=True)  # 'HH:MM:SS'
    week_number = Column(Integer, nullable=True)
    home_score = Column(Integer, nullable=True)
    away_score = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    league = relationship("League", back_populates="matches")
    home_team = relationship("Team", foreign_keys=[home_team_id])
    away_team = relationship("Team", foreign_keys=[away_team_id])

    __table_args__ = (
        # One fixture per pairing per league; a concurrent second generation fails here
        UniqueConstraint(
            "league_id", "home_team_id", "away_team_id", name="uq_matches_league_pairing"
        ),
        CheckConstraint("home_team_id <> away_team_id", name="ck_matches_distinct_teams"),
        Index("idx_matches_league_week", "league_id", "week_number"),
    )


class LeaguePayment(Base):
    """Payment status of a team member for a league."""

    __tablename__ = "league_payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False)
    paid = Column(Boolean, default=False, nullable=False)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    paid_amount = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint(
            "user_id", "team_id", "league_id", name="uq_league_payments_user_team_league"
        ),
        Index("idx_league_payments_league", "league_id"),
    )
