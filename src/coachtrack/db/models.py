"""
SQLAlchemy ORM models for coachtrack.

The schema centres on a canonical coach record that belongs to one school.
Attendance rows link a coach to a game they were seen at. Duplicate coach
records are the main data-quality problem: parents log coaches on the fly
and bulk imports bring in the same people with slightly different names.

Tables:
- schools: Canonical school registry
- coaches: Coach records (one school each)
- attendance: Which coach was seen at which game
- update_log: Audit trail for merges and imports
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# =============================================================================
# School Models
# =============================================================================

class School(Base):
    """
    Canonical school (organization) record.

    ``school`` is the display name that import rows are resolved against.
    Location and athletics metadata are optional and get filled in when
    duplicate schools are merged.
    """
    __tablename__ = "schools"

    id: Mapped[int] = mapped_column(primary_key=True)

    school: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    division: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    conference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    coaches: Mapped[list["Coach"]] = relationship(back_populates="school")

    __table_args__ = (
        Index("idx_schools_school", "school"),
    )

    def __repr__(self) -> str:
        return f"<School(id={self.id}, school='{self.school}')>"


# =============================================================================
# Coach Models
# =============================================================================

class Coach(Base):
    """
    College coach record.

    First and last name are required. Contact fields are optional and are
    the fields reconciled when two records for the same coach are merged.
    """
    __tablename__ = "coaches"

    id: Mapped[int] = mapped_column(primary_key=True)
    school_id: Mapped[int] = mapped_column(ForeignKey("schools.id"), nullable=False)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    school: Mapped["School"] = relationship(back_populates="coaches")
    attendance: Mapped[list["Attendance"]] = relationship(back_populates="coach")

    __table_args__ = (
        Index("idx_coaches_school", "school_id"),
        Index("idx_coaches_last_name", "last_name"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Coach(id={self.id}, name='{self.full_name}', school_id={self.school_id})>"


class Attendance(Base):
    """
    A coach seen at a game.

    At most one row per (game, coach); logging the same coach twice for a
    game is an upsert on that pair.
    """
    __tablename__ = "attendance"

    id: Mapped[int] = mapped_column(primary_key=True)
    game_id: Mapped[int] = mapped_column(Integer, nullable=False)
    coach_id: Mapped[int] = mapped_column(ForeignKey("coaches.id"), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    coach: Mapped["Coach"] = relationship(back_populates="attendance")

    __table_args__ = (
        UniqueConstraint("game_id", "coach_id", name="uq_attendance_game_coach"),
        Index("idx_attendance_coach", "coach_id"),
    )

    def __repr__(self) -> str:
        return f"<Attendance(game_id={self.game_id}, coach_id={self.coach_id})>"


# =============================================================================
# Audit
# =============================================================================

class UpdateLog(Base):
    """
    Audit log for data-changing operations.

    Records merges and imports with enough detail to reconstruct what
    happened if an operator needs to clean up by hand.
    """
    __tablename__ = "update_log"

    id: Mapped[int] = mapped_column(primary_key=True)

    # 'coach_merge', 'school_merge', 'coach_import'
    update_type: Mapped[str] = mapped_column(String(50), nullable=False)

    details: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_update_log_type_date", "update_type", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<UpdateLog(type='{self.update_type}', success={self.success})>"
